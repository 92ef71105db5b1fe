from .auth import AwsCredentials
from .credentials import (
    CredentialResolver,
    EnvironmentCredentialResolver,
    StaticCredentialResolver,
)
from .request import SigningRequest
from .s3.client import S3Client
from .signer import SignedRequest, SigV4Signer

__all__ = [
    "AwsCredentials",
    "CredentialResolver",
    "EnvironmentCredentialResolver",
    "S3Client",
    "SignedRequest",
    "SigV4Signer",
    "SigningRequest",
    "StaticCredentialResolver",
]
