import argparse
import sys
from datetime import datetime
from pathlib import Path

from structlog import get_logger

from .credentials import EnvironmentCredentialResolver
from .exceptions import FilesmonError
from .log import configure_logging
from .monitoring import Monitor, MonitorConfig
from .s3.client import DEFAULT_PRESIGNED_EXPIRES, S3Client

logger = get_logger()


def _parse_at(value: str) -> datetime:
    try:
        at = datetime.strptime(value, "%H:%M")
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected HH:MM, got '{value}'")
    return datetime.now().replace(
        hour=at.hour, minute=at.minute, second=0, microsecond=0
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="filesmon",
        description="Check that expected files landed in S3 and report to Slack.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    parser.add_argument(
        "--secret-prefix",
        default="FILESMON_SECRET_",
        help="environment variable prefix for secret access keys",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="run the rules due now")
    run_parser.add_argument("--config", type=Path, required=True)
    run_parser.add_argument(
        "--at", type=_parse_at, help="pretend the current time is HH:MM"
    )

    presign_parser = subparsers.add_parser("presign", help="print a presigned url")
    presign_parser.add_argument("--bucket", required=True)
    presign_parser.add_argument("--key", required=True)
    presign_parser.add_argument("--region", required=True)
    presign_parser.add_argument("--access-key-id", required=True)
    presign_parser.add_argument(
        "--expires", type=int, default=DEFAULT_PRESIGNED_EXPIRES
    )

    return parser


def run(args: argparse.Namespace) -> int:
    config = MonitorConfig.from_yaml(args.config)
    monitor = Monitor(
        config=config,
        resolver=EnvironmentCredentialResolver(prefix=args.secret_prefix),
    )
    tasks = monitor.run(args.at)
    return 0 if all(task.error is None for task in tasks) else 1


def presign(args: argparse.Namespace) -> int:
    resolver = EnvironmentCredentialResolver(prefix=args.secret_prefix)
    s3 = S3Client(
        access_key=args.access_key_id,
        secret_key=resolver.resolve(args.access_key_id),
        region=args.region,
    )
    print(s3.generate_presigned_url(args.bucket, args.key, expires=args.expires))
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    commands = {"run": run, "presign": presign}
    try:
        return commands[args.command](args)
    except FilesmonError as e:
        logger.error("filesmon failed", error=str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
