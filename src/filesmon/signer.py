from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict

from structlog import get_logger

from .auth import (
    ALGORITHM,
    DATESTAMP_FORMAT,
    AwsCredentials,
    format_amz_date,
    get_credential_scope,
    get_signature,
    get_signature_key,
    get_string_to_sign,
)
from .canonical import (
    canonical_query_string,
    canonical_request,
    is_signable_header,
    signed_headers,
    uri_encode,
)
from .enums import Service, SigningMode
from .request import EXPIRES_HEADER, SigningRequest

logger = get_logger()

# Plain headers that travel in the query string of a presigned url
PRESIGNED_QUERY_HEADERS = ("Content-Type", "Content-MD5", "Cache-Control")


@dataclass(frozen=True)
class SignatureMaterial:
    credential_scope: str
    canonical_request: str
    string_to_sign: str
    signature: str


@dataclass(frozen=True)
class SignedRequest:
    request: SigningRequest
    mode: SigningMode
    material: SignatureMaterial

    @property
    def url(self) -> str:
        return self.request.url


class SigV4Signer:
    """
    Signs `SigningRequest`s for one region and service.

    The signer holds no per-request state, so a single instance can sign any
    number of requests. The signing mode is picked from the request: when the
    `presigned-expires` header is present, the signature goes into the query
    string, otherwise into the `Authorization` header.
    """

    def __init__(
        self,
        *,
        credentials: AwsCredentials,
        region: str,
        service: Service = Service.S3,
    ):
        self.credentials = credentials
        self.region = region
        self.service = service

    def sign(
        self, request: SigningRequest, *, timestamp: datetime | None = None
    ) -> SignedRequest:
        timestamp = _normalize_timestamp(timestamp)
        amz_date = format_amz_date(timestamp)
        datestamp = timestamp.strftime(DATESTAMP_FORMAT)
        credential_scope = get_credential_scope(
            datestamp=datestamp, region=self.region, service=self.service
        )

        if request.is_presigned:
            return self._sign_query(
                request,
                amz_date=amz_date,
                datestamp=datestamp,
                credential_scope=credential_scope,
            )
        return self._sign_headers(
            request,
            amz_date=amz_date,
            datestamp=datestamp,
            credential_scope=credential_scope,
        )

    def _sign_headers(
        self,
        request: SigningRequest,
        *,
        amz_date: str,
        datestamp: str,
        credential_scope: str,
    ) -> SignedRequest:
        request = _without_signing_headers(request).with_header(
            "X-Amz-Date", amz_date
        )
        if self.credentials.session_token:
            request = request.with_header(
                "X-Amz-Security-Token", self.credentials.session_token
            )

        material = self._signature_material(
            request,
            amz_date=amz_date,
            datestamp=datestamp,
            credential_scope=credential_scope,
        )

        credential = f"{self.credentials.access_key_id}/{credential_scope}"
        authorization_header_parts = [
            f"{ALGORITHM} Credential={credential}",
            f"SignedHeaders={signed_headers(request.headers)}",
            f"Signature={material.signature}",
        ]
        authorization_header = ", ".join(authorization_header_parts)
        request = request.with_header("Authorization", authorization_header)

        return SignedRequest(
            request=request, mode=SigningMode.HEADER, material=material
        )

    def _sign_query(
        self,
        request: SigningRequest,
        *,
        amz_date: str,
        datestamp: str,
        credential_scope: str,
    ) -> SignedRequest:
        request = _without_signing_headers(request)

        params: Dict[str, str] = {
            "X-Amz-Date": amz_date,
            "X-Amz-Algorithm": ALGORITHM,
            "X-Amz-Credential": f"{self.credentials.access_key_id}/{credential_scope}",
            "X-Amz-Expires": str(request.get_header(EXPIRES_HEADER)),
            "X-Amz-SignedHeaders": signed_headers(request.headers),
        }
        if self.credentials.session_token:
            params["X-Amz-Security-Token"] = self.credentials.session_token

        for name in PRESIGNED_QUERY_HEADERS:
            value = request.get_header(name)
            if value:
                params[name] = value

        for name, value in request.headers.items():
            if name.lower() == EXPIRES_HEADER or not is_signable_header(name):
                continue
            lower_name = name.lower()
            # Metadata names are normalized
            if lower_name.startswith("x-amz-meta-"):
                params[lower_name] = value
            elif lower_name.startswith("x-amz-"):
                params[name] = value

        query_string = canonical_query_string(
            "&".join(f"{uri_encode(k)}={uri_encode(v)}" for k, v in params.items())
        )
        request = request.append_query(query_string)

        material = self._signature_material(
            request,
            amz_date=amz_date,
            datestamp=datestamp,
            credential_scope=credential_scope,
        )
        request = request.append_query(f"X-Amz-Signature={material.signature}")

        return SignedRequest(
            request=request, mode=SigningMode.PRESIGNED, material=material
        )

    def _signature_material(
        self,
        request: SigningRequest,
        *,
        amz_date: str,
        datestamp: str,
        credential_scope: str,
    ) -> SignatureMaterial:
        canonical = canonical_request(request)
        string_to_sign = get_string_to_sign(
            amz_date=amz_date,
            credential_scope=credential_scope,
            canonical_request=canonical,
        )
        signature_key = get_signature_key(
            key=self.credentials.secret_access_key,
            datestamp=datestamp,
            region=self.region,
            service=self.service,
        )
        signature = get_signature(
            signature_key=signature_key, string_to_sign=string_to_sign
        )
        logger.debug(
            "Signed request",
            canonical_request=canonical,
            string_to_sign=string_to_sign,
        )

        return SignatureMaterial(
            credential_scope=credential_scope,
            canonical_request=canonical,
            string_to_sign=string_to_sign,
            signature=signature,
        )


def _without_signing_headers(request: SigningRequest) -> SigningRequest:
    # a stale date would be signed next to the new one
    for name in ("Authorization", "Date", "X-Amz-Date"):
        request = request.without_header(name)
    return request


def _normalize_timestamp(timestamp: datetime | None) -> datetime:
    if timestamp is None:
        timestamp = datetime.now(timezone.utc)
    elif timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    else:
        timestamp = timestamp.astimezone(timezone.utc)

    return timestamp.replace(microsecond=0)
