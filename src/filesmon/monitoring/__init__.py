from .config import MonitorConfig
from .runner import Monitor
from .schedule import BucketSpec, MonitorRule, MonitorTask, build_prefix, is_due
from .slack import SlackNotifier, SlackSettings

__all__ = [
    "BucketSpec",
    "Monitor",
    "MonitorConfig",
    "MonitorRule",
    "MonitorTask",
    "SlackNotifier",
    "SlackSettings",
    "build_prefix",
    "is_due",
]
