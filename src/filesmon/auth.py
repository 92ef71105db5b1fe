import hashlib
import hmac
from dataclasses import dataclass, field
from datetime import datetime

from .enums import Service

ALGORITHM = "AWS4-HMAC-SHA256"
AMZ_DATE_FORMAT = "%Y%m%dT%H%M%SZ"
DATESTAMP_FORMAT = "%Y%m%d"
UNSIGNED_PAYLOAD = "UNSIGNED-PAYLOAD"
EMPTY_SHA256 = hashlib.sha256(b"").hexdigest()


@dataclass(frozen=True)
class AwsCredentials:
    access_key_id: str
    secret_access_key: str = field(repr=False)
    session_token: str | None = field(default=None, repr=False)


def get_signature_key(*, key: str, datestamp: str, region: str, service: Service):
    def sign(key, msg):
        return hmac.new(key, msg.encode("utf-8"), hashlib.sha256).digest()

    signature_key = sign(("AWS4" + key).encode("utf-8"), datestamp)
    signature_key = sign(signature_key, region)
    signature_key = sign(signature_key, service.value)
    signature_key = sign(signature_key, "aws4_request")

    return signature_key


def get_signature(*, signature_key: bytes, string_to_sign: str):
    return hmac.new(
        signature_key, (string_to_sign).encode("utf-8"), hashlib.sha256
    ).hexdigest()


def get_hash(value: str | bytes):
    encoded_value = value.encode("utf-8") if isinstance(value, str) else value
    hashed_value = hashlib.sha256(encoded_value).hexdigest()

    return hashed_value


def format_amz_date(timestamp: datetime) -> str:
    return timestamp.strftime(AMZ_DATE_FORMAT)


def get_credential_scope(*, datestamp: str, region: str, service: Service) -> str:
    return f"{datestamp}/{region}/{service.value}/aws4_request"


def get_string_to_sign(
    *, amz_date: str, credential_scope: str, canonical_request: str
) -> str:
    """
    The string to sign concatenates the algorithm, the request timestamp, the
    credential scope and the hash of the canonical request, one per line.
    """
    hashed_canonical_request = get_hash(canonical_request)

    return f"{ALGORITHM}\n{amz_date}\n{credential_scope}\n{hashed_canonical_request}"
