# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Run the persistent worker as a standalone process.

Usage:
    python -m lgscoach.worker [--coach-id ID --coach-name NAME]

Settings come from the environment (see lgscoach.core.config). Passing a
coach seeds the worker's storage with that coach and the configured
backend credentials, as a page would on login.
"""

import argparse
import asyncio
import signal

from lgscoach.core.config import Settings, get_settings
from lgscoach.infrastructure.cache import RedisClient
from lgscoach.models.coaching import CoachIdentity
from lgscoach.presentation.base import LogNotifier, PlatformNotifier
from lgscoach.presentation.push import WebPushNotifier
from lgscoach.utils.logging import bind_context, clear_context, get_logger, setup_logging
from lgscoach.worker.messages import SupabaseCredentials
from lgscoach.worker.service import PersistentWorker
from lgscoach.worker.storage import WorkerStorage

logger = get_logger(__name__)


def _build_notifier(settings: Settings) -> PlatformNotifier:
    if settings.push.project_id and settings.push.credentials_path:
        return WebPushNotifier(settings.push)
    logger.info("Web push not configured, notifications go to the log")
    return LogNotifier()


async def run(settings: Settings, coach: CoachIdentity | None = None) -> None:
    """Run the worker until SIGINT/SIGTERM."""
    redis = RedisClient.from_settings(settings)
    await redis.connect()
    storage = WorkerStorage(redis)

    notifier = _build_notifier(settings)
    await notifier.request_permission()

    if coach is not None:
        bind_context(coach_id=coach.id)
        await storage.set_coach(coach)
        await storage.set_credentials(
            SupabaseCredentials(
                url=settings.supabase.url,
                anon_key=settings.supabase.anon_key.get_secret_value(),
            )
        )

    worker = PersistentWorker.from_settings(settings, storage, notifier)
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    await worker.activate()
    logger.info("Worker running", namespace=settings.worker.storage_namespace)
    try:
        await stop.wait()
    finally:
        await worker.deactivate()
        await redis.close()
        logger.info("Worker stopped")
        clear_context()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="lgscoach-worker", description=__doc__.splitlines()[0])
    parser.add_argument("--coach-id", help="Coach to watch")
    parser.add_argument("--coach-name", default="", help="Coach display name")
    args = parser.parse_args(argv)

    settings = get_settings()
    setup_logging(settings)
    bind_context(component="worker")

    coach = None
    if args.coach_id:
        coach = CoachIdentity(id=args.coach_id, full_name=args.coach_name)

    asyncio.run(run(settings, coach))


if __name__ == "__main__":
    main()
