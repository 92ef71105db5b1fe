from datetime import datetime
from typing import Any, Dict, Mapping

import httpx
from httpx import BaseTransport, Client, Request, Response
from structlog import get_logger

from .auth import AwsCredentials
from .canonical import (
    CONTENT_SHA256_HEADER,
    canonical_query_string,
    payload_hash,
    uri_encode,
)
from .enums import Service
from .exceptions import TransportError
from .request import EXPIRES_HEADER, SigningRequest
from .signer import SignedRequest, SigV4Signer

logger = get_logger()

LOG_FIELD_LIMIT = 1000

# Set on the wire by httpx itself, or only meaningful to the signer
_LOCAL_HEADERS = frozenset(["host", EXPIRES_HEADER])


def truncate(value: str, limit: int = LOG_FIELD_LIMIT) -> str:
    if len(value) > limit:
        return value[:limit] + " ... [TRUNCATED]"
    return value


def format_exchange_log(request: Request, response: Response) -> str:
    request_fields = {
        "method": request.method,
        "url": str(request.url),
        "headers": str(dict(request.headers)),
        "payload": request.content.decode("utf-8", errors="replace"),
    }

    log_content = "\n-- REQUEST --\n"
    for name, value in request_fields.items():
        log_content += f"\t{name}: {truncate(value)}\n"

    log_content += "-- RESPONSE --\n"
    log_content += f"HTTP Status Code: {response.status_code}\n"
    log_content += "Headers:\n"
    for name, value in response.headers.items():
        log_content += f"\t{name}: {value}\n"
    log_content += "Body:\n" + truncate(response.text)

    return log_content


def build_query(params: Mapping[str, Any] | None) -> str:
    if not params:
        return ""
    query_parts = []
    for k, v in params.items():
        if v is None:
            continue
        query_parts.append(f"{uri_encode(str(k))}={uri_encode(str(v))}")
    return canonical_query_string("&".join(query_parts))


class AwsClient:
    """
    Sends SigV4 signed requests and keeps a log of the last exchange.

    A client is synchronous and not safe to share between threads: it holds
    one connection pool and `last_exchange_log` describes the most recent
    request only.
    """

    def __init__(
        self,
        *,
        credentials: AwsCredentials,
        region: str,
        service: Service,
        host: str,
        log_requests: bool = False,
    ):
        self.credentials = credentials
        self.region = region
        self.service = service
        self.host = host
        self.log_requests = log_requests
        self.signer = SigV4Signer(
            credentials=credentials, region=region, service=service
        )
        self.last_exchange_log = ""

        self._httpx: Client | None = None

    def connect(self, *, transport: BaseTransport | None = None):
        assert self._httpx is None, "AwsClient already connected"
        self._httpx = Client(transport=transport)

    def disconnect(self):
        assert self._httpx is not None, "AwsClient is not connected"
        self._httpx.close()
        self._httpx = None

    def _build_request(
        self,
        *,
        method: str,
        host: str | None = None,
        endpoint: str = "/",
        params: Mapping[str, Any] | None = None,
        extra_headers: Dict[str, str] | None = None,
        data: bytes | None = None,
        expires: int | None = None,
        content_sha256_header: bool = True,
    ) -> SigningRequest:
        request = SigningRequest(
            method=method,
            host=host or self.host,
            path=endpoint,
            query=build_query(params),
            body=data or b"",
        )
        if extra_headers:
            request = request.with_headers(extra_headers)
        if expires is not None:
            request = request.with_header(EXPIRES_HEADER, str(expires))

        request = request.with_header("Host", request.host)
        if content_sha256_header:
            request = request.with_header(
                CONTENT_SHA256_HEADER, payload_hash(request)
            )

        return request

    def _sign(
        self, request: SigningRequest, *, timestamp: datetime | None = None
    ) -> SignedRequest:
        return self.signer.sign(request, timestamp=timestamp)

    def _make_request(
        self,
        *,
        method: str,
        host: str | None = None,
        endpoint: str = "/",
        params: Mapping[str, Any] | None = None,
        extra_headers: Dict[str, str] | None = None,
        data: bytes | None = None,
        expires: int | None = None,
        timestamp: datetime | None = None,
    ) -> Response:
        assert isinstance(self._httpx, Client), "AwsClient is not connected"

        request = self._build_request(
            method=method,
            host=host,
            endpoint=endpoint,
            params=params,
            extra_headers=extra_headers,
            data=data,
            expires=expires,
        )
        signed = self._sign(request, timestamp=timestamp)

        headers = {
            k: v
            for k, v in signed.request.headers.items()
            if k.lower() not in _LOCAL_HEADERS
        }
        http_request = self._httpx.build_request(
            method=method,
            url=signed.url,
            headers=headers,
            content=signed.request.body or None,
        )

        try:
            res = self._httpx.send(http_request)
        except httpx.TransportError as e:
            logger.error(
                "HttpRequest failed", method=method, url=signed.url, error=str(e)
            )
            raise TransportError(method, signed.url, str(e)) from e

        self.last_exchange_log = format_exchange_log(http_request, res)
        if self.log_requests:
            logger.info("HttpRequest exchange", exchange=self.last_exchange_log)
        else:
            logger.debug(
                "HttpRequest exchange",
                method=method,
                url=signed.url,
                status_code=res.status_code,
            )

        return res
