"""Command line client: validate and upload a CSV, then print the dashboard."""

import argparse
import asyncio
import logging
import sys

from learnlens.client.config import ClientConfig
from learnlens.client.dashboard import Dashboard
from learnlens.client.dataset_store import dataset_store
from learnlens.client.synchronizer import UploadStatus
from learnlens.client.validator import CandidateFile
from learnlens.logging_config import setup_logging

logger = logging.getLogger(__name__)


def _print_status(status, message):
    if status is UploadStatus.UPLOADING:
        print("⏳ Uploading and processing data...")
    elif status is UploadStatus.SUCCESS:
        print("✅ Dataset uploaded successfully! Refreshing data...")
    elif status is UploadStatus.ERROR:
        print(f"❌ {message}")


async def run_upload(dashboard, path):
    try:
        candidate = CandidateFile.from_path(path)
    except OSError as e:
        print(f"❌ Cannot open {path}: {e}")
        return 1

    await dashboard.mount()
    result = await dashboard.synchronizer.select_file(candidate)
    if result is None or not result.ok:
        return 1

    outcome = await dashboard.synchronizer.submit()
    if outcome is None or not outcome.ok:
        return 1

    await dashboard.wait_for_refresh()
    print()
    print(dashboard.render())
    return 0


async def run_show(dashboard):
    await dashboard.mount()
    cached = dashboard.store.get()
    if cached is not None:
        print(f"Local copy: {cached.filename} ({cached.record_count} records, uploaded {cached.uploaded_at})\n")
    print(dashboard.render())
    return 0


def build_parser():
    parser = argparse.ArgumentParser(prog="learnlens", description=__doc__)
    parser.add_argument("--api-url", help="Base URL of the dashboard API")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    upload = sub.add_parser("upload", help="Validate and upload a student CSV")
    upload.add_argument("file", help="Path to the CSV file")

    sub.add_parser("show", help="Print the dashboard for the active dataset")
    sub.add_parser("clear", help="Forget the locally cached dataset")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.WARNING)

    config = ClientConfig.from_env()
    if args.api_url:
        config = ClientConfig(
            api_url=args.api_url.rstrip("/"),
            store_path=config.store_path,
            refresh_delay_ms=config.refresh_delay_ms,
            request_timeout=config.request_timeout,
        )

    if args.command == "clear":
        dataset_store.clear()
        print("🧹 Local dataset cleared")
        return 0

    dashboard = Dashboard(config, store=dataset_store, on_change=_print_status)
    if args.command == "upload":
        return asyncio.run(run_upload(dashboard, args.file))
    return asyncio.run(run_show(dashboard))


if __name__ == "__main__":
    sys.exit(main())
