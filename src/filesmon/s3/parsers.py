from typing import Dict

from bs4 import BeautifulSoup, Tag
from bs4.builder import ParserRejectedMarkup
from structlog import get_logger

from filesmon.exceptions import (
    API_ERRORS_BY_CODE,
    ApiError,
    MalformedErrorBodyError,
    UnknownApiError,
)

from .models import S3ListObjectsRes, S3Object

logger = get_logger()


def _root_element(content: bytes | str) -> Tag | None:
    if not content:
        return None
    try:
        soup = BeautifulSoup(content, "xml")
    except ParserRejectedMarkup:
        return None
    root = soup.find(True)
    if not isinstance(root, Tag):
        return None
    return root


def _child_text(el: Tag, name: str) -> str | None:
    child_el = el.find(name, recursive=False)
    if not isinstance(child_el, Tag):
        return None
    return child_el.text


def _parse_size(value: str | None) -> int:
    try:
        return int((value or "").strip())
    except ValueError:
        return 0


def parse_list_objects(content: bytes | str) -> S3ListObjectsRes:
    """
    Read a `ListBucketResult` document.

    Only the `Contents` entries and the pagination markers are kept,
    everything else in the document is ignored.
    """
    root = _root_element(content)
    if root is None:
        return S3ListObjectsRes()

    s3_objects = []
    for content_el in root.find_all("Contents", recursive=False):
        s3_object = S3Object(
            key=_child_text(content_el, "Key") or "",
            last_modified=_child_text(content_el, "LastModified") or "",
            size=_parse_size(_child_text(content_el, "Size")),
        )
        s3_objects.append(s3_object)

    is_truncated = (_child_text(root, "IsTruncated") or "").strip() == "true"
    next_continuation_token = _child_text(root, "NextContinuationToken")

    return S3ListObjectsRes(
        objects=s3_objects,
        is_truncated=is_truncated,
        next_continuation_token=next_continuation_token,
    )


def parse_error(
    *, status: int, content: bytes | str, exchange_log: str = ""
) -> ApiError:
    """
    Map an S3 error document to an `ApiError` subclass.

    Never raises: a body without an XML root element carrying child elements
    gives a `MalformedErrorBodyError` holding just the status code. A document
    without a `Code` element is an `UnknownApiError`.
    """
    root = _root_element(content)

    details: Dict[str, str] = {}
    if root is not None:
        for child_el in root.find_all(True, recursive=False):
            name = child_el.name
            details[name[:1].lower() + name[1:]] = child_el.text

    if not details:
        logger.warning("Unparsable error body", status_code=status)
        return MalformedErrorBodyError(
            status=status,
            message=(
                f"AWS returned HTTP code {status}, "
                "but error content could not be parsed."
            ),
            exchange_log=exchange_log,
        )

    code = details.get("code")
    error_cls = API_ERRORS_BY_CODE.get(code or "", UnknownApiError)

    return error_cls(
        status=status,
        code=code,
        message=details.get("message", ""),
        details=details,
        exchange_log=exchange_log,
    )
