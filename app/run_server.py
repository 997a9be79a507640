#!/usr/bin/env python3
"""Serve the feed over HTTP and refresh it every day.

Usage:
    uv run python app/run_server.py
    uv run python app/run_server.py --no-schedule   # HTTP only

This script:
1. Starts the Flask app in a background thread
2. Serves the refresh flow as a Prefect deployment with a daily cron schedule
"""
import argparse
import threading

from dotenv import load_dotenv

load_dotenv()

from loguru import logger as log
from prefect.client.schemas.schedules import CronSchedule

import constants as C
from flows.refresh import refresh_episodes
from pipeline import FeedPipeline
from server import create_app
from utils.logging import configure_logging


def build_parser():
    p = argparse.ArgumentParser(
        prog="xyzrank-feed",
        description="Republish the xyzrank hot-episodes ranking as a podcast feed."
    )
    p.add_argument("--host", default=C.HOST, help=f"Bind address (default: {C.HOST})")
    p.add_argument("--port", type=int, default=C.PORT, help=f"Port (default: {C.PORT})")
    p.add_argument("--no-schedule", action="store_true", help="Do not serve the daily refresh deployment")
    p.add_argument("--log-level", default=C.LOG_LEVEL,
                   choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], help="Console log level")
    return p


def main():
    args = build_parser().parse_args()
    configure_logging(args.log_level)

    app = create_app(FeedPipeline())

    log.info(f"XYZRank feed service on http://{args.host}:{args.port}")
    log.info(f"Podcast feed: {C.PUBLIC_BASE_URL}/public/{C.FEED_FILE}")
    log.info(f"Simple RSS:   {C.PUBLIC_BASE_URL}/rss")

    if args.no_schedule:
        app.run(host=args.host, port=args.port, debug=False, threaded=True)
        return

    server_thread = threading.Thread(
        target=app.run,
        kwargs={"host": args.host, "port": args.port, "debug": False, "use_reloader": False, "threaded": True},
        daemon=True,
    )
    server_thread.start()

    log.info(f"Daily refresh scheduled: '{C.REFRESH_CRON}' ({C.REFRESH_TIMEZONE})")
    refresh_episodes.serve(
        name="daily-refresh",
        schedules=[CronSchedule(cron=C.REFRESH_CRON, timezone=C.REFRESH_TIMEZONE)],
        tags=["xyzrank", "feed"],
    )


if __name__ == "__main__":
    main()
