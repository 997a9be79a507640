#!/usr/bin/env python3
"""
Run one refresh of the episode ranking and feeds.

This can be run directly without a Prefect server for testing.
"""
from dotenv import load_dotenv
from loguru import logger as log

load_dotenv()

import constants as C
from utils.logging import configure_logging

configure_logging(C.LOG_LEVEL)

from flows.refresh import refresh_episodes

if __name__ == "__main__":
    log.info("Starting XYZRank refresh via Prefect")
    log.info("=" * 60)

    result = refresh_episodes()

    log.info("=" * 60)
    if result.from_cache:
        log.warning(f"Live refresh failed, kept cached data: {result.error}")
    else:
        log.success(f"Refreshed from {result.api_endpoint}")
    log.info(f"{len(result.episodes)} episodes, {result.audio_count} with audio")
