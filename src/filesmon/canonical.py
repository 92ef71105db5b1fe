"""
Canonical request construction for SigV4.

The canonical request is the normalized form of an HTTP request that gets
hashed into the string to sign:

    <HTTPMethod>\\n
    <CanonicalURI>\\n
    <CanonicalQueryString>\\n
    <CanonicalHeaders>\\n
    \\n
    <SignedHeaders>\\n
    <HashedPayload>

https://docs.aws.amazon.com/IAM/latest/UserGuide/create-signed-request.html
"""
import re
from typing import List, Mapping, Tuple
from urllib.parse import quote, unquote

from .auth import UNSIGNED_PAYLOAD, get_hash
from .request import EXPIRES_HEADER, SigningRequest

CONTENT_SHA256_HEADER = "X-Amz-Content-Sha256"

UNSIGNABLE_HEADERS = frozenset(
    [
        "authorization",
        "content-type",
        "content-length",
        "user-agent",
        EXPIRES_HEADER,
        "expect",
        "x-amzn-trace-id",
    ]
)

_WHITESPACE_RE = re.compile(r"\s+")


def uri_encode(value: str, *, safe: str = "") -> str:
    # quote() never encodes the RFC 3986 unreserved set (A-Za-z0-9-_.~)
    return quote(value, safe=safe)


def is_signable_header(name: str) -> bool:
    lower_name = name.lower()
    if lower_name.startswith("x-amz-"):
        return True
    return lower_name not in UNSIGNABLE_HEADERS


def canonical_uri(path: str) -> str:
    if not path:
        return "/"
    if not path.startswith("/"):
        path = "/" + path
    return uri_encode(path, safe="/")


def canonical_query_string(query: str | None) -> str:
    if not query:
        return ""

    query_parts: List[Tuple[str, str]] = []
    for item in query.split("&"):
        if not item:
            continue
        key, _, value = item.partition("=")
        query_parts.append(
            (uri_encode(unquote(key)), uri_encode(unquote(value)))
        )

    # sort by encoded key first, value second
    return "&".join(f"{key}={value}" for key, value in sorted(query_parts))


def canonical_header_value(value: str) -> str:
    return _WHITESPACE_RE.sub(" ", str(value)).strip()


def canonical_headers(headers: Mapping[str, str]) -> str:
    lines = [
        f"{name.lower()}:{canonical_header_value(value)}"
        for name, value in headers.items()
        if is_signable_header(name)
    ]
    return "\n".join(sorted(lines)) + "\n"


def signed_headers(headers: Mapping[str, str]) -> str:
    names = [name.lower() for name in headers if is_signable_header(name)]
    return ";".join(sorted(names))


def payload_hash(request: SigningRequest) -> str:
    if request.is_presigned and not request.body:
        return UNSIGNED_PAYLOAD

    content_sha256 = request.get_header(CONTENT_SHA256_HEADER)
    if content_sha256:
        return content_sha256

    return get_hash(request.body or b"")


def canonical_request(request: SigningRequest) -> str:
    canonical_request_parts = [
        request.method.upper(),
        canonical_uri(request.path),
        canonical_query_string(request.query),
        canonical_headers(request.headers),
        signed_headers(request.headers),
        payload_hash(request),
    ]
    return "\n".join(canonical_request_parts)
