#!/usr/bin/env python3
"""
Tumblebot launcher.

Runs the bot on Slack (Socket Mode) when SLACK_BOT_TOKEN and SLACK_APP_TOKEN
are set, otherwise in a local shell.

Usage:
    cd daemon && python3 tumblebot.py
    python3 tumblebot.py --verbose
    python3 tumblebot.py --shell        # Local shell even if Slack tokens are set
"""

import argparse
import asyncio
import logging
import os

from config import HTTP_TIMEOUT, LOG_DIR, TUMBLE_API_KEY, TUMBLE_BASEURL
from shell_adapter import ShellAdapter
from slack_adapter import SLACK_APP_TOKEN, SLACK_BOT_TOKEN, SlackAdapter
from tumble_client import TumbleClient

log = logging.getLogger("tumblebot")


def setup_logging(verbose: bool):
    """Configure logging to file + optional console."""
    os.makedirs(LOG_DIR, exist_ok=True)
    log_file = os.path.join(LOG_DIR, "tumblebot.log")

    handlers = [logging.FileHandler(log_file)]
    if verbose:
        handlers.append(logging.StreamHandler())

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        handlers=handlers,
    )


def build_client() -> TumbleClient:
    if not TUMBLE_BASEURL:
        log.warning("TUMBLE_BASEURL not set; links and quotes will not be posted")
    return TumbleClient(TUMBLE_BASEURL, api_key=TUMBLE_API_KEY, timeout=HTTP_TIMEOUT)


async def run(use_shell: bool):
    tumble = build_client()

    if not use_shell and SLACK_BOT_TOKEN and SLACK_APP_TOKEN:
        slack = SlackAdapter(tumble)
        print("Slack bot: connecting")
        try:
            await slack.start()
        finally:
            await slack.stop()
            log.info("Slack bot stopped")
        return

    shell = ShellAdapter(tumble)
    print(f"Tumblebot shell ({TUMBLE_BASEURL or 'no TUMBLE_BASEURL'}). Ctrl+D to quit.\n")
    await shell.input_loop()


def main():
    parser = argparse.ArgumentParser(description="Tumble link and quote bot")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging to console")
    parser.add_argument("--shell", action="store_true", help="Local shell, no Slack")
    args = parser.parse_args()

    setup_logging(args.verbose)

    try:
        asyncio.run(run(args.shell))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
