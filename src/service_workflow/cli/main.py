# src/service_workflow/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then runs the console (or, with the
console disabled, just keeps the selected date in sync until interrupted).
"""

from __future__ import annotations

import argparse
import asyncio
import logging

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..core.state import AppState
from ..logging_setup import setup_logging
from .console import run_console_loop

logger = logging.getLogger(__name__)


async def _run(state: AppState, date: str | None) -> None:
    board = state.board
    try:
        if date:
            await board.select_date(date)

        if getattr(state.settings, "console_enabled", True):
            await run_console_loop(state)
        else:
            if not date:
                logger.error("Console disabled and no --date given; nothing to do.")
                return
            logger.info("Console disabled. Syncing %s in the background. Press Ctrl+C to stop.", date)
            await asyncio.Event().wait()
    finally:
        await board.close()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="service-workflow")
    parser.add_argument("--date", help="service date to open (YYYY-MM-DD)")
    parser.add_argument("--role", help="act as this role (pastor, liturgy, translation, beamer, treasurer)")
    args = parser.parse_args(argv)

    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=getattr(settings, "data_dir", ".local/workflow"), console_level=console_level)

    logger.info("Starting %s...", getattr(settings, "app_name", "service-workflow"))

    state = create_initial_state(settings=settings)
    if args.role:
        state.role = args.role.strip().lower()

    try:
        asyncio.run(_run(state, args.date))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down...")
    logger.info("Bye.")


if __name__ == "__main__":
    main()
