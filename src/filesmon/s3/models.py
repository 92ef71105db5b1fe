from dataclasses import dataclass, field
from typing import List


@dataclass
class S3Object:
    key: str
    last_modified: str = ""
    size: int = 0


@dataclass
class S3ListObjectsRes:
    objects: List[S3Object] = field(default_factory=list)
    is_truncated: bool = False
    next_continuation_token: str | None = None
