import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import List

from filesmon.s3.models import S3Object

DEFAULT_REGION = "us-east-1"

_PREFIX_TEMPLATE_RE = re.compile(r"\{(yesterday|today):(YYYYMMDD|YYYY-MM-DD)\}")

_DATE_FORMATS = {
    "YYYYMMDD": "%Y%m%d",
    "YYYY-MM-DD": "%Y-%m-%d",
}


@dataclass
class MonitorRule:
    channel: str
    time: str
    bucket: str
    prefix: str
    label: str = ""


@dataclass
class BucketSpec:
    name: str
    access_key_id: str
    region: str = DEFAULT_REGION


@dataclass
class MonitorTask:
    bucket: str
    prefix: str
    label: str
    channel: str
    access_key_id: str
    secret_key: str = field(repr=False)
    region: str
    objects: List[S3Object] = field(default_factory=list)
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None and len(self.objects) > 0


def _normalize_time(time: str) -> str:
    time = str(time).replace(":", "").strip()
    if len(time) in (1, 3):
        time = time.zfill(len(time) + 1)
    return time


def is_due(time: str, now: datetime) -> bool:
    """
    Check a rule time against the current minute.

    `time` is "HH" or "HHMM" ("09:30" is accepted too); "HH" means minute 00.
    """
    time = _normalize_time(time)
    if not time:
        return False

    hour = time[:2]
    minute = time[2:4] if len(time) == 4 else "00"

    return hour == f"{now.hour:02d}" and minute == f"{now.minute:02d}"


def build_prefix(template: str, today: date) -> str:
    """
    Expand `{today:YYYYMMDD}`, `{yesterday:YYYY-MM-DD}` and friends.
    """

    def replace(match: re.Match) -> str:
        day = today
        if match.group(1) == "yesterday":
            day = today - timedelta(days=1)
        return day.strftime(_DATE_FORMATS[match.group(2)])

    return _PREFIX_TEMPLATE_RE.sub(replace, template)
