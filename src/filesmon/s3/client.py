from datetime import datetime
from typing import Any, Dict, Mapping

from httpx import Response
from structlog import get_logger

from filesmon.auth import AwsCredentials
from filesmon.core import AwsClient
from filesmon.enums import Service
from filesmon.exceptions import NoSuchKeyError

from .models import S3ListObjectsRes
from .parsers import parse_error, parse_list_objects

logger = get_logger()

DEFAULT_PRESIGNED_EXPIRES = 3600


def get_object_endpoint(bucket: str, key: str = "") -> str:
    # the key is used verbatim, "a.txt" and "/a.txt" are different objects
    if not key:
        return f"/{bucket.lower()}"
    return f"/{bucket.lower()}/{key}"


class S3Client(AwsClient):
    def __init__(
        self,
        *,
        access_key: str,
        secret_key: str,
        region: str,
        session_token: str | None = None,
        log_requests: bool = False,
    ):
        super().__init__(
            credentials=AwsCredentials(
                access_key_id=access_key,
                secret_access_key=secret_key,
                session_token=session_token,
            ),
            region=region,
            service=Service.S3,
            host=f"s3.{region}.amazonaws.com",
            log_requests=log_requests,
        )

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
        res = super()._make_request(
            method=method,
            host=host,
            endpoint=endpoint,
            params=params,
            extra_headers=extra_headers,
            data=data,
            expires=expires,
            timestamp=timestamp,
        )

        if res.status_code > 299:
            error = parse_error(
                status=res.status_code,
                content=res.content,
                exchange_log=self.last_exchange_log,
            )
            logger.error(
                "HttpRequest error",
                status_code=res.status_code,
                reason=res.reason_phrase,
                aws_code=error.code,
                aws_message=error.message,
            )
            raise error

        return res

    def get_object(
        self,
        bucket: str,
        key: str,
        *,
        expires: int | None = None,
        timestamp: datetime | None = None,
    ) -> bytes | None:
        """
        Download an object.

        Returns None when the object does not exist, any other error is raised.
        When `expires` is given the request is signed in the query string
        instead of the `Authorization` header.
        """
        try:
            res = self._make_request(
                method="GET",
                endpoint=get_object_endpoint(bucket, key),
                expires=expires,
                timestamp=timestamp,
            )
        except NoSuchKeyError:
            logger.info("Object not found", bucket=bucket, key=key)
            return None

        return res.content

    def list_objects(
        self,
        bucket: str,
        *,
        prefix: str | None = None,
        count: int | None = None,
        continuation_token: str | None = None,
        timestamp: datetime | None = None,
    ) -> S3ListObjectsRes:
        """
        List objects with ListObjectsV2.

        https://docs.aws.amazon.com/AmazonS3/latest/API/API_ListObjectsV2.html
        """
        res = self._make_request(
            method="GET",
            endpoint=get_object_endpoint(bucket),
            params={
                "list-type": 2,
                "prefix": prefix,
                "max-keys": count,
                "continuation-token": continuation_token,
            },
            timestamp=timestamp,
        )

        return parse_list_objects(res.content)

    def generate_presigned_url(
        self,
        bucket: str,
        key: str,
        *,
        expires: int = DEFAULT_PRESIGNED_EXPIRES,
        timestamp: datetime | None = None,
    ) -> str:
        request = self._build_request(
            method="GET",
            endpoint=get_object_endpoint(bucket, key),
            expires=expires,
            content_sha256_header=False,
        )
        signed = self._sign(request, timestamp=timestamp)

        return signed.url
