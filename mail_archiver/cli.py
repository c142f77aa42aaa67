"""
Command line entry point.

    mail-archiver labels
    mail-archiver preview --label INBOX --limit 10
    mail-archiver archive Label_42 --max-results 100 --archive-root ./archive
    mail-archiver serve --port 8000
"""

import argparse
import asyncio
import sys
from typing import Callable, List, Optional

from mail_archiver.config import CFG, Config
from mail_archiver.errors import AuthExpired, MailArchiverError
from mail_archiver.models.archive import ArchiveResult, MessageStatus
from mail_archiver.services.auth import get_gmail_client
from mail_archiver.services.gmail import GmailClient
from mail_archiver.services.inbox import get_labels, preview_messages
from mail_archiver.services.pipeline import ArchivePipeline
from mail_archiver.utils.logger import logger, set_log_level
from mail_archiver.utils.utils import get_version


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mail-archiver",
        description="Archive Gmail messages to disk before moving them to the trash.",
    )
    parser.add_argument("--version", action="version", version=get_version())
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("labels", help="List the mailbox labels")

    preview = sub.add_parser("preview", help="Show subject and content of recent messages")
    preview.add_argument("--label", default="INBOX")
    preview.add_argument("--limit", type=int, default=10)

    archive = sub.add_parser("archive", help="Archive and trash every message of a label")
    archive.add_argument("label_id")
    archive.add_argument("--max-results", type=int, default=None)
    archive.add_argument("--archive-root", default=None)
    archive.add_argument("--collision-policy", choices=["suffix", "fail"], default=None)
    archive.add_argument("--concurrency", type=int, default=None)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    return parser


def _config_from_args(args: argparse.Namespace) -> Config:
    overrides = {}
    if getattr(args, "archive_root", None):
        overrides["archive_root"] = args.archive_root
    if getattr(args, "collision_policy", None):
        overrides["collision_policy"] = args.collision_policy
    if getattr(args, "concurrency", None):
        overrides["max_concurrent_messages"] = args.concurrency
    return CFG.model_copy(update=overrides)


async def _print_labels(client: GmailClient) -> None:
    labels = await get_labels(client)
    print("Available labels:")
    for index, label in enumerate(labels, start=1):
        print(f"{index}. {label.name} (ID: {label.id})")


async def _print_previews(client: GmailClient, label: str, limit: int, length: int) -> None:
    for preview in await preview_messages(client, label, limit):
        print("\n-------------------")
        print(f"Subject: {preview.subject}")
        print("Content preview:")
        print(preview.content[:length] + "...")


def _print_result(result: ArchiveResult) -> None:
    for outcome in result.outcomes:
        if outcome.status is MessageStatus.FAILED:
            print(f"[FAILED]  {outcome.message_id}: {outcome.failure.reason}")
        elif outcome.status is MessageStatus.ARCHIVED_PARTIAL:
            print(f"[PARTIAL] {outcome.message_id} -> {outcome.record.archive_dir}")
            for failure in outcome.attachment_failures:
                print(f"          missing {failure.filename}: {failure.reason}")
        else:
            print(f"[OK]      {outcome.message_id} -> {outcome.record.archive_dir}")

    print(
        f"\n{result.archived_count} archived, {result.partial_count} partial, "
        f"{result.failed_count} failed"
    )


def main(
    argv: Optional[List[str]] = None,
    client_factory: Callable[[Config], GmailClient] = get_gmail_client,
) -> int:
    args = build_parser().parse_args(argv)
    if args.log_level:
        set_log_level(args.log_level)

    config = _config_from_args(args)

    if args.command == "serve":
        import uvicorn

        uvicorn.run("mail_archiver.main:app", host=args.host, port=args.port)
        return 0

    try:
        client = client_factory(config)

        if args.command == "labels":
            asyncio.run(_print_labels(client))
        elif args.command == "preview":
            asyncio.run(
                _print_previews(client, args.label, args.limit, config.preview_length)
            )
        elif args.command == "archive":
            pipeline = ArchivePipeline(client, config)
            result = asyncio.run(pipeline.run(args.label_id, max_results=args.max_results))
            _print_result(result)
            return 1 if result.failed_count else 0

    except AuthExpired as e:
        logger.error(f"Authorization expired, re-run the authorization: {e}")
        return 2
    except MailArchiverError as e:
        logger.error(f"Error in {args.command}: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
