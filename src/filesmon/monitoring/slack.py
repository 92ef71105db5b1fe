from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List

from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError
from structlog import get_logger

from .schedule import MonitorTask

logger = get_logger()

CONSOLE_URL = "https://s3.console.aws.amazon.com/s3/buckets"
AWS_ICON_URL = (
    "https://raw.githubusercontent.com/linyows/files-monitoring/main/misc/amazon.png"
)
SUCCESS_COLOR = "#36a64f"
FAILURE_COLOR = "#cc0033"


@dataclass
class SlackSettings:
    token: str
    username: str = "Files Monitoring"
    icon_emoji: str = ":floppy_disk:"
    text: str = "Hey, This is file monitoring results on cloud storage!"
    failure_message: str = "File does not exist, check it out :point_down:"
    suffix_message: str = ""


def build_attachment(task: MonitorTask) -> Dict[str, str]:
    text = f"{task.label} `{task.prefix}`"
    if not task.success:
        text += "\nHmm, file not found!? :thinking:"
    if task.error:
        text += f"\n{task.error}"

    return {
        "title": "",
        "color": SUCCESS_COLOR if task.success else FAILURE_COLOR,
        "text": text,
        "footer": f"{task.bucket} on <{CONSOLE_URL}|AWS S3>",
        "footer_icon": AWS_ICON_URL,
    }


class SlackNotifier:
    def __init__(
        self, *, settings: SlackSettings, client: WebClient | None = None
    ):
        self.settings = settings
        self.client = client or WebClient(token=settings.token)

    def build_text(self, tasks: List[MonitorTask]) -> str:
        text = self.settings.text
        if any(not task.success for task in tasks):
            text += f" {self.settings.failure_message}"
        return text + self.settings.suffix_message

    def notify(self, tasks: List[MonitorTask]):
        """
        Post one message per channel. A failing channel does not stop the rest.
        """
        tasks_per_channel: Dict[str, List[MonitorTask]] = defaultdict(list)
        for task in tasks:
            tasks_per_channel[task.channel].append(task)

        for channel, channel_tasks in tasks_per_channel.items():
            try:
                self.client.chat_postMessage(
                    channel=channel,
                    username=self.settings.username,
                    icon_emoji=self.settings.icon_emoji,
                    link_names=True,
                    text=self.build_text(channel_tasks),
                    attachments=[build_attachment(task) for task in channel_tasks],
                )
            except SlackApiError as e:
                logger.error(
                    "Failed to post Slack message", channel=channel, error=str(e)
                )
