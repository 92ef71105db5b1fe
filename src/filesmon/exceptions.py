from typing import Dict, Type


class FilesmonError(Exception):
    pass


class TransportError(FilesmonError):
    def __init__(self, method: str, url: str, reason: str):
        self.method = method
        self.url = url
        self.reason = reason

    def __str__(self):
        return f"Transport error on {self.method} {self.url}: {self.reason}"


class ApiError(FilesmonError):
    """
    An error document returned by S3.

    `details` holds every child element of the error document, keyed by the
    element name with its first character lowercased ("Code" -> "code").
    """

    def __init__(
        self,
        *,
        status: int,
        code: str | None = None,
        message: str = "",
        details: Dict[str, str] | None = None,
        exchange_log: str = "",
    ):
        self.status = status
        self.code = code
        self.message = message
        self.details = details or {}
        self.exchange_log = exchange_log

    @property
    def request_id(self) -> str | None:
        return self.details.get("requestId")

    def __str__(self):
        return f"AWS Error - {self.code or 'Unknown'}: {self.message}"


class NoSuchKeyError(ApiError):
    pass


class NoSuchBucketError(ApiError):
    pass


class AccessDeniedError(ApiError):
    pass


class SignatureDoesNotMatchError(ApiError):
    pass


class InvalidAccessKeyIdError(ApiError):
    pass


class ExpiredTokenError(ApiError):
    pass


class UnknownApiError(ApiError):
    pass


class MalformedErrorBodyError(ApiError):
    def __str__(self):
        return self.message


API_ERRORS_BY_CODE: Dict[str, Type[ApiError]] = {
    "NoSuchKey": NoSuchKeyError,
    "NoSuchBucket": NoSuchBucketError,
    "AccessDenied": AccessDeniedError,
    "SignatureDoesNotMatch": SignatureDoesNotMatchError,
    "InvalidAccessKeyId": InvalidAccessKeyIdError,
    "ExpiredToken": ExpiredTokenError,
}


class CredentialNotFoundError(FilesmonError):
    def __init__(self, access_key_id: str):
        self.access_key_id = access_key_id

    def __str__(self):
        return f"Secret access key not found for access key id '{self.access_key_id}'"


class ConfigError(FilesmonError):
    pass
