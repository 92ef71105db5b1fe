from enum import Enum


class Service(Enum):
    S3 = "s3"


class SigningMode(Enum):
    HEADER = "header"
    PRESIGNED = "presigned"
