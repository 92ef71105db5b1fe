from dataclasses import dataclass, field, replace
from typing import Dict, Mapping
from urllib.parse import quote

EXPIRES_HEADER = "presigned-expires"


@dataclass(frozen=True)
class SigningRequest:
    """
    An HTTP request as seen by the signer.

    `path` is the unencoded resource path (it is percent-encoded when the
    canonical URI and the URL are built). `query` is the raw query string
    without the leading "?". Header names are matched case-insensitively.

    Instances are never mutated: every `with_*` method returns a new request.
    """

    method: str
    host: str
    path: str = "/"
    query: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""

    def get_header(self, name: str) -> str | None:
        lower_name = name.lower()
        for k, v in self.headers.items():
            if k.lower() == lower_name:
                return v
        return None

    def with_header(self, name: str, value: str) -> "SigningRequest":
        headers = self._headers_without(name)
        headers[name] = value
        return replace(self, headers=headers)

    def with_headers(self, headers: Mapping[str, str]) -> "SigningRequest":
        request = self
        for k, v in headers.items():
            request = request.with_header(k, v)
        return request

    def without_header(self, name: str) -> "SigningRequest":
        return replace(self, headers=self._headers_without(name))

    def append_query(self, query: str) -> "SigningRequest":
        if not query:
            return self
        if not self.query:
            return replace(self, query=query)
        return replace(self, query=f"{self.query}&{query}")

    @property
    def is_presigned(self) -> bool:
        return bool(self.get_header(EXPIRES_HEADER))

    @property
    def url(self) -> str:
        url = f"https://{self.host}{quote(self.path or '/', safe='/')}"
        if self.query:
            url = f"{url}?{self.query}"
        return url

    def _headers_without(self, name: str) -> Dict[str, str]:
        lower_name = name.lower()
        return {k: v for k, v in self.headers.items() if k.lower() != lower_name}
