from typing import List
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from filesmon.auth import EMPTY_SHA256
from filesmon.exceptions import (
    MalformedErrorBodyError,
    NoSuchBucketError,
    TransportError,
)
from filesmon.s3.client import S3Client, get_object_endpoint

from .conftest import (
    ACCESS_KEY,
    DATE,
    LIST_BUCKET_RESULT,
    NO_SUCH_BUCKET,
    NO_SUCH_KEY,
    SECRET_KEY,
)


class Recorder:
    def __init__(self, response: httpx.Response):
        self.response = response
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.response


def make_client(response: httpx.Response, **kwargs):
    recorder = Recorder(response)
    s3 = S3Client(
        access_key=ACCESS_KEY, secret_key=SECRET_KEY, region="ap-northeast-1", **kwargs
    )
    s3.connect(transport=httpx.MockTransport(recorder))
    return s3, recorder


def test_get_object_endpoint():
    assert get_object_endpoint("MyBucket") == "/mybucket"
    assert get_object_endpoint("MyBucket", "a/b.txt") == "/mybucket/a/b.txt"
    assert get_object_endpoint("MyBucket", "/a/b.txt") == "/mybucket//a/b.txt"
    assert get_object_endpoint("bucket", "a b.txt") == "/bucket/a b.txt"


def test_list_objects():
    s3, recorder = make_client(httpx.Response(200, content=LIST_BUCKET_RESULT))

    res = s3.list_objects("ExampleBucket", prefix="logs/2024-01-01/", timestamp=DATE)

    assert [o.key for o in res.objects] == [
        "logs/2024-01-01/app.log",
        "logs/2024-01-01/db.log",
    ]
    request = recorder.requests[0]
    url = urlsplit(str(request.url))
    assert url.netloc == "s3.ap-northeast-1.amazonaws.com"
    assert url.path == "/examplebucket"
    assert parse_qs(url.query) == {
        "list-type": ["2"],
        "prefix": ["logs/2024-01-01/"],
    }
    assert request.headers["host"] == "s3.ap-northeast-1.amazonaws.com"
    assert request.headers["x-amz-date"] == "20130524T000000Z"
    assert request.headers["x-amz-content-sha256"] == EMPTY_SHA256
    assert request.headers["authorization"].startswith(
        f"AWS4-HMAC-SHA256 Credential={ACCESS_KEY}/20130524/ap-northeast-1/s3/"
        "aws4_request, SignedHeaders=host;x-amz-content-sha256;x-amz-date, "
        "Signature="
    )


def test_get_object():
    s3, recorder = make_client(httpx.Response(200, content=b"file content"))

    assert s3.get_object("bucket", "dir/file.txt") == b"file content"
    assert recorder.requests[0].url.path == "/bucket/dir/file.txt"


def test_get_object_missing_key_returns_none():
    s3, _ = make_client(httpx.Response(404, content=NO_SUCH_KEY))

    assert s3.get_object("bucket", "missing.txt") is None
    assert "HTTP Status Code: 404" in s3.last_exchange_log


def test_get_object_presigned():
    s3, recorder = make_client(httpx.Response(200, content=b"data"))

    assert s3.get_object("bucket", "file.txt", expires=60, timestamp=DATE) == b"data"

    request = recorder.requests[0]
    query = parse_qs(request.url.query.decode())
    assert "authorization" not in request.headers
    assert "presigned-expires" not in request.headers
    assert query["X-Amz-Expires"] == ["60"]
    assert query["X-Amz-Algorithm"] == ["AWS4-HMAC-SHA256"]
    assert query["X-Amz-Content-Sha256"] == ["UNSIGNED-PAYLOAD"]
    assert len(query["X-Amz-Signature"][0]) == 64


def test_api_error_is_raised():
    s3, _ = make_client(httpx.Response(404, content=NO_SUCH_BUCKET))

    with pytest.raises(NoSuchBucketError) as exc_info:
        s3.list_objects("nope", prefix="x")

    error = exc_info.value
    assert error.code == "NoSuchBucket"
    assert error.details["bucketName"] == "nope"
    assert "-- REQUEST --" in error.exchange_log
    assert "-- RESPONSE --" in error.exchange_log


def test_malformed_error_body():
    s3, _ = make_client(httpx.Response(500, content=b"Internal Server Error"))

    with pytest.raises(MalformedErrorBodyError) as exc_info:
        s3.get_object("bucket", "file.txt")

    assert exc_info.value.status == 500
    assert exc_info.value.exchange_log == s3.last_exchange_log


def test_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    s3 = S3Client(access_key=ACCESS_KEY, secret_key=SECRET_KEY, region="us-east-1")
    s3.connect(transport=httpx.MockTransport(handler))

    with pytest.raises(TransportError) as exc_info:
        s3.get_object("bucket", "file.txt")

    assert "connection refused" in str(exc_info.value)


def test_exchange_log_is_truncated():
    s3, _ = make_client(httpx.Response(200, content=b"x" * 5000))

    s3.get_object("bucket", "big.bin")

    assert "x" * 1000 + " ... [TRUNCATED]" in s3.last_exchange_log
    assert "x" * 1001 not in s3.last_exchange_log


def test_generate_presigned_url():
    s3 = S3Client(access_key=ACCESS_KEY, secret_key=SECRET_KEY, region="us-east-1")

    url = s3.generate_presigned_url("Bucket", "a/b.txt", expires=600, timestamp=DATE)

    parts = urlsplit(url)
    query = parse_qs(parts.query)
    assert parts.netloc == "s3.us-east-1.amazonaws.com"
    assert parts.path == "/bucket/a/b.txt"
    assert query["X-Amz-SignedHeaders"] == ["host"]
    assert query["X-Amz-Expires"] == ["600"]
    assert query["X-Amz-Date"] == ["20130524T000000Z"]
    assert query["X-Amz-Credential"] == [
        f"{ACCESS_KEY}/20130524/us-east-1/s3/aws4_request"
    ]
    assert "X-Amz-Content-Sha256" not in query


def test_connect_twice_fails():
    s3, _ = make_client(httpx.Response(200))

    with pytest.raises(AssertionError):
        s3.connect()

    s3.disconnect()
    with pytest.raises(AssertionError):
        s3.disconnect()


@pytest.mark.parametrize(
    "key, raw_path",
    [
        ("a.txt", b"/b/a.txt"),
        ("/a.txt", b"/b//a.txt"),
        ("//a.txt", b"/b///a.txt"),
    ],
)
def test_get_object_keeps_key_verbatim(key, raw_path):
    s3, recorder = make_client(httpx.Response(200, content=b"data"))

    s3.get_object("b", key)

    assert recorder.requests[0].url.raw_path == raw_path
