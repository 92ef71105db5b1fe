import os
from typing import Mapping, Protocol

from .exceptions import CredentialNotFoundError


class CredentialResolver(Protocol):
    def resolve(self, access_key_id: str) -> str:
        """Return the secret access key paired with `access_key_id`."""
        ...


class StaticCredentialResolver:
    def __init__(self, secrets: Mapping[str, str]):
        self._secrets = dict(secrets)

    def resolve(self, access_key_id: str) -> str:
        secret_access_key = self._secrets.get(access_key_id)
        if not secret_access_key:
            raise CredentialNotFoundError(access_key_id)
        return secret_access_key


class EnvironmentCredentialResolver:
    """
    Reads secrets from environment variables named after the access key id,
    e.g. `FILESMON_SECRET_AKIAIOSFODNN7EXAMPLE`.
    """

    def __init__(self, *, prefix: str = "FILESMON_SECRET_"):
        self.prefix = prefix

    def resolve(self, access_key_id: str) -> str:
        secret_access_key = os.getenv(f"{self.prefix}{access_key_id}")
        if not secret_access_key:
            raise CredentialNotFoundError(access_key_id)
        return secret_access_key
