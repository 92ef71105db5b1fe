from datetime import datetime
from typing import Callable, List

from structlog import get_logger

from filesmon.credentials import CredentialResolver
from filesmon.exceptions import CredentialNotFoundError, FilesmonError
from filesmon.s3.client import S3Client

from .config import MonitorConfig
from .schedule import MonitorTask, build_prefix, is_due
from .slack import SlackNotifier

logger = get_logger()

S3ClientFactory = Callable[[MonitorTask], S3Client]


def default_client_factory(task: MonitorTask) -> S3Client:
    return S3Client(
        access_key=task.access_key_id,
        secret_key=task.secret_key,
        region=task.region,
    )


class Monitor:
    """
    Checks every rule that is due at the current minute and reports the
    results to Slack.

    Tasks run one after the other; a failing task is logged and reported as
    a failure without stopping the others.
    """

    def __init__(
        self,
        *,
        config: MonitorConfig,
        resolver: CredentialResolver,
        notifier: SlackNotifier | None = None,
        client_factory: S3ClientFactory = default_client_factory,
    ):
        self.config = config
        self.resolver = resolver
        self.notifier = notifier or SlackNotifier(settings=config.slack)
        self.client_factory = client_factory

    def build_tasks(self, now: datetime) -> List[MonitorTask]:
        tasks = []
        for rule in self.config.rules:
            if not is_due(rule.time, now):
                continue

            bucket = self.config.buckets.get(rule.bucket)
            if bucket is None:
                logger.error("Bucket not configured", bucket=rule.bucket)
                continue

            try:
                secret_key = self.resolver.resolve(bucket.access_key_id)
            except CredentialNotFoundError as e:
                logger.error(str(e), bucket=rule.bucket)
                continue

            task = MonitorTask(
                bucket=rule.bucket,
                prefix=build_prefix(rule.prefix, now.date()),
                label=rule.label,
                channel=rule.channel,
                access_key_id=bucket.access_key_id,
                secret_key=secret_key,
                region=bucket.region,
            )
            tasks.append(task)

        return tasks

    def run_task(self, task: MonitorTask) -> MonitorTask:
        s3 = self.client_factory(task)
        s3.connect()
        try:
            res = s3.list_objects(task.bucket, prefix=task.prefix)
            task.objects = res.objects
        except FilesmonError as e:
            logger.error(
                "Monitoring task failed",
                bucket=task.bucket,
                prefix=task.prefix,
                error=str(e),
            )
            task.error = str(e)
        finally:
            s3.disconnect()

        logger.info(
            "Monitoring task done",
            bucket=task.bucket,
            prefix=task.prefix,
            objects=len(task.objects),
        )
        return task

    def run(self, now: datetime | None = None) -> List[MonitorTask]:
        now = now or datetime.now()
        tasks = self.build_tasks(now)
        if not tasks:
            logger.info("No monitoring rules due", time=now.strftime("%H:%M"))
            return tasks

        for task in tasks:
            self.run_task(task)

        self.notifier.notify(tasks)
        return tasks
