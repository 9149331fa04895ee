from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING
from uuid import UUID

from dotenv import load_dotenv

from storemigrate.adapters.sqlalchemy import is_started, shutdown
from storemigrate.app import (
    analyze_store,
    import_catalog_file,
    job_status,
    retry_stage,
    run_structure_import,
    skip_stage,
)
from storemigrate.common import configure_logging
from storemigrate.domain.cancellation import CancellationToken
from storemigrate.domain.model import EntityKind, SourcePlatform, StageName

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from types import FrameType

    from storemigrate.domain.structure import ImportJob

log = logging.getLogger(__name__)

_STAGE_CHOICES = [stage.value for stage in StageName]


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Migrate a storefront into a tenant")
    subparsers = parser.add_subparsers(dest="command", required=True)

    detect = subparsers.add_parser("detect", help="Detect the platform behind a storefront URL")
    detect.add_argument("url", type=str, help="Public storefront URL")

    import_file = subparsers.add_parser(
        "import-file", help="Import a product, customer or order export"
    )
    import_file.add_argument("path", type=Path, help="CSV or JSON export to import")
    import_file.add_argument("--tenant-id", type=str, required=True, help="Target tenant id")
    import_file.add_argument(
        "--kind",
        choices=[kind.value for kind in EntityKind],
        required=True,
        help="What the file contains",
    )
    import_file.add_argument(
        "--platform",
        choices=[platform.value for platform in SourcePlatform],
        default=SourcePlatform.UNKNOWN.value,
        help="Platform that produced the export (selects field aliases)",
    )
    import_file.add_argument(
        "--chunk-size",
        type=int,
        default=None,
        help="Entities per import call (defaults to config)",
    )

    structure = subparsers.add_parser(
        "import-structure", help="Import branding, categories, pages, menus and content blocks"
    )
    structure.add_argument("url", type=str, help="Public storefront URL")
    structure.add_argument("--tenant-id", type=str, required=True, help="Target tenant id")
    structure.add_argument(
        "--skip",
        action="append",
        choices=_STAGE_CHOICES,
        default=[],
        help="Stage to mark as skipped instead of running (repeatable)",
    )

    status = subparsers.add_parser("status", help="Show per-stage status of an import job")
    target = status.add_mutually_exclusive_group(required=True)
    target.add_argument("--job-id", type=str, help="Job to show")
    target.add_argument("--tenant-id", type=str, help="Show the tenant's latest job")

    retry = subparsers.add_parser("retry", help="Reset an errored stage and continue the job")
    retry.add_argument("job_id", type=str, help="Job to retry")
    retry.add_argument("stage", choices=_STAGE_CHOICES, help="Errored stage")
    retry.add_argument(
        "--no-resume",
        action="store_true",
        help="Only reset the stage to pending, do not run it",
    )

    skip = subparsers.add_parser("skip", help="Skip a pending or errored stage")
    skip.add_argument("job_id", type=str, help="Job to update")
    skip.add_argument("stage", choices=_STAGE_CHOICES, help="Stage to skip")
    skip.add_argument(
        "--resume",
        action="store_true",
        help="Continue with the remaining stages afterwards",
    )

    return parser.parse_args(list(argv))


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise ValueError(f"Invalid UUID: {value}") from exc


def _validate(args: argparse.Namespace) -> None:
    for name in ("tenant_id", "job_id"):
        value = getattr(args, name, None)
        if value is not None:
            setattr(args, name, _parse_uuid(value))
    chunk_size = getattr(args, "chunk_size", None)
    if chunk_size is not None and chunk_size < 1:
        raise ValueError("Chunk size must be positive")


def _print_job(job: ImportJob) -> None:
    print(
        json.dumps(
            {
                "id": str(job.id),
                "tenant_id": str(job.tenant_id),
                "source_url": job.source_url,
                "platform": job.platform.value,
                "confidence": job.confidence.value,
                "completed": job.completed_at is not None,
                "stages": job.status_surface(),
            },
            indent=2,
            ensure_ascii=False,
        )
    )


async def _dispatch(args: argparse.Namespace, cancellation: CancellationToken) -> None:
    try:
        if args.command == "detect":
            analysis = await analyze_store(args.url)
            print(
                json.dumps(
                    {
                        "platform": analysis.detection.platform.value,
                        "confidence": analysis.detection.confidence.value,
                    }
                )
            )
        elif args.command == "import-file":
            report = await import_catalog_file(
                args.path.read_bytes(),
                tenant_id=args.tenant_id,
                kind=EntityKind(args.kind),
                platform=SourcePlatform(args.platform),
                filename=args.path.name,
                chunk_size=args.chunk_size,
                cancellation=cancellation,
            )
            print(json.dumps({**report.as_stats(), "errors": report.errors}, indent=2))
            for error in report.errors:
                log.warning(error)
        elif args.command == "import-structure":
            job = await run_structure_import(
                args.tenant_id,
                args.url,
                skip=[StageName(stage) for stage in args.skip],
                cancellation=cancellation,
            )
            _print_job(job)
        elif args.command == "status":
            _print_job(await job_status(job_id=args.job_id, tenant_id=args.tenant_id))
        elif args.command == "retry":
            _print_job(
                await retry_stage(
                    args.job_id,
                    StageName(args.stage),
                    resume=not args.no_resume,
                    cancellation=cancellation,
                )
            )
        elif args.command == "skip":
            _print_job(
                await skip_stage(
                    args.job_id,
                    StageName(args.stage),
                    resume=args.resume,
                    cancellation=cancellation,
                )
            )
        else:
            raise ValueError(f"Unsupported command: {args.command}")
    finally:
        if is_started():
            await shutdown()


def main(
    argv: Sequence[str] | None = None, *, cancellation: CancellationToken | None = None
) -> None:
    """Main application entry point."""
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        _validate(parsed_args)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        asyncio.run(_dispatch(parsed_args, cancellation or CancellationToken()))
    except Exception:
        log.exception("Fatal error during migration")
        sys.exit(1)


def sigint_handler(
    cancellation: CancellationToken,
) -> Callable[[int, FrameType | None], None]:
    """Handle SIGINT (Ctrl+C) gracefully.

    The first Ctrl+C cancels the running job so the current stage is recorded
    as ``error`` and can be retried; a second one exits at once.
    """

    def handle(_signal_received: int, _frame: FrameType | None) -> None:
        if not cancellation.cancelled:
            log.info("Cancelling after the current step (Ctrl+C again to quit)")
            cancellation.cancel("interrupted by user (Ctrl+C)")
            return
        log.info("Closed by user (Ctrl+C)")
        sys.exit(0)

    return handle


def run() -> None:
    load_dotenv()
    cancellation = CancellationToken()
    signal(SIGINT, sigint_handler(cancellation))
    main(cancellation=cancellation)


if __name__ == "__main__":
    run()
