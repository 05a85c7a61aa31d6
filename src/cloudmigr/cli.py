"""Command-line entry point: `cloudmigr drive | photos | retry-failed | authorize`."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from typing import Optional, Sequence

import aiohttp

from cloudmigr.auth import (
    CredentialManager,
    GoogleTokenRefresher,
    MicrosoftTokenRefresher,
    Provider,
    RedisTokenStore,
    exchange_google_code,
    exchange_microsoft_code,
    google_authorization_url,
    microsoft_authorization_url,
)
from cloudmigr.config import MigrationSettings
from cloudmigr.destination import ExistenceChecker, OneDriveClient, UploadEngine
from cloudmigr.errors import CloudMigrError, InvalidArgumentError
from cloudmigr.models import Origin, RunResult
from cloudmigr.sources import GoogleDriveSource, GooglePhotosSource, build_drive_service
from cloudmigr.transfer import DestinationPathResolver, TransferLedger, TransferOrchestrator
from cloudmigr.transport import HttpTransport

logger = logging.getLogger("cloudmigr")

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_CONFIG = 2

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cloudmigr",
        description="Migrate Google Drive and Google Photos content to OneDrive.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="logging verbosity (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("drive", help="migrate every binary file of Google Drive")
    sub.add_parser("photos", help="migrate the Google Photos library")
    sub.add_parser("retry-failed", help="re-attempt every entry of the failed ledger")

    authorize = sub.add_parser("authorize", help="print a consent URL or store a credential")
    authorize.add_argument("provider", choices=[p.value for p in Provider])
    authorize.add_argument("--code", help="authorization code returned to the redirect URL")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format=LOG_FORMAT)

    try:
        settings = MigrationSettings.from_env()
    except InvalidArgumentError as exc:
        logger.error(f"Configuration error: {exc}")
        return EXIT_CONFIG

    try:
        return asyncio.run(_run(args, settings))
    except CloudMigrError as exc:
        logger.error(f"{exc.__class__.__name__}: {exc}")
        return EXIT_FATAL


async def _run(args: argparse.Namespace, settings: MigrationSettings) -> int:
    store = RedisTokenStore.from_url(settings.redis_url)
    try:
        async with aiohttp.ClientSession() as session:
            transport = HttpTransport(session)
            if args.command == "authorize":
                return await _authorize(args, settings, store, transport)
            return await _migrate(args.command, settings, store, transport)
    finally:
        await store.close()


async def _authorize(
    args: argparse.Namespace,
    settings: MigrationSettings,
    store: RedisTokenStore,
    transport: HttpTransport,
) -> int:
    provider = Provider(args.provider)

    if not args.code:
        if provider is Provider.GOOGLE:
            url = google_authorization_url(settings.google)
        else:
            url = microsoft_authorization_url(settings.microsoft)
        print(url)
        return EXIT_OK

    if provider is Provider.GOOGLE:
        await exchange_google_code(settings.google, args.code, store)
    else:
        await exchange_microsoft_code(settings.microsoft, args.code, store, transport)
    logger.info(f"{provider.value} credential stored")
    return EXIT_OK


async def _migrate(
    command: str,
    settings: MigrationSettings,
    store: RedisTokenStore,
    transport: HttpTransport,
) -> int:
    google = CredentialManager(Provider.GOOGLE, store, GoogleTokenRefresher(settings.google))
    microsoft = CredentialManager(
        Provider.MICROSOFT,
        store,
        MicrosoftTokenRefresher(settings.microsoft, transport),
    )

    ledger = TransferLedger.load(settings.ledger_dir)
    destination = OneDriveClient(transport, microsoft, root_folder=settings.root_folder)
    orchestrator = TransferOrchestrator(
        uploader=UploadEngine(destination, chunk_units=settings.chunk_units),
        existence=ExistenceChecker(destination, ledger),
        ledger=ledger,
        delete_after_transfer=settings.delete_after_transfer,
    )

    drive = GoogleDriveSource(
        await asyncio.to_thread(build_drive_service),
        google,
        transport,
        page_size=settings.drive_page_size,
    )
    photos = GooglePhotosSource(transport, google, page_size=settings.photos_page_size)
    resolver = DestinationPathResolver(drive.get_parent_link)

    owner_email = None
    if settings.delete_after_transfer and command in ("drive", "retry-failed"):
        owner_email = await drive.get_owner_email()
        logger.info(f"Source deletion enabled for files owned by {owner_email}")

    _install_stop_handlers(orchestrator)

    result: RunResult
    if command == "drive":
        result = await orchestrator.migrate_drive(drive, resolver, owner_email=owner_email)
    elif command == "photos":
        result = await orchestrator.migrate_photos(photos, concurrency=settings.photos_concurrency)
    else:
        result = await orchestrator.retry_failed(
            {Origin.GOOGLE_DRIVE: drive, Origin.GOOGLE_PHOTOS: photos},
            resolver=resolver,
            owner_email=owner_email,
        )

    summary = result.summary
    print(
        f"{result.status}: {summary['uploaded']} uploaded, "
        f"{summary['skipped']} skipped, {summary['failed']} failed"
    )
    return EXIT_OK


def _install_stop_handlers(orchestrator: TransferOrchestrator) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, orchestrator.request_stop)
        except (NotImplementedError, RuntimeError):
            # Windows event loops have no signal handler support.
            logger.debug(f"Cannot install a handler for {sig.name}")


if __name__ == "__main__":
    sys.exit(main())
