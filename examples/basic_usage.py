"""examples/basic_usage.py - sinklog integration demo.

Demonstrates two usage levels:
    Scenario A - console and file sinks, tag derived from the call stack
    Scenario B - every sink enabled, fixed tag, closed through ``with``

The error-tracking sink needs a real Bugsnag API key and the network sink a
reachable Logstash endpoint; set SINKLOG_BUGSNAG_KEY / SINKLOG_LOGSTASH_HOST
to try them.
"""

import logging
import os
from pathlib import Path

from sinklog import SinkLogger

# sinklog reports its own sink setup on the "sinklog.*" loggers.
logging.basicConfig(level=logging.DEBUG, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

LOG_DIR = Path("./data/logs")
ALL_LEVELS = ["trace", "warn", "info", "debug", "error"]


def base_config(transports):
    return {
        "transports": transports,
        "version": "5",
        "app_name": "app-logger",
        "env": "test",
    }


# ===========================================================================
# Scenario A: console + file, stack-derived tag
# ===========================================================================


def pay(logger: SinkLogger, user_id: int, amount: int) -> None:
    """Simulate a payment flow."""
    logger.info("payment attempt", {"user_id": user_id, "amount": amount})
    balance = 3_000
    if balance < amount:
        logger.error(ValueError("insufficient funds"), {"balance": balance, "requested": amount})
        return
    logger.info("payment successful")


def scenario_a() -> None:
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    logger = SinkLogger(
        base_config(
            {
                "console": {"level": ALL_LEVELS},
                "file": {"level": ["warn", "error"], "filepath": str(LOG_DIR / "test.log")},
            }
        )
    )
    try:
        pay(logger, user_id=101, amount=5_000)
        logger.debug("debug only goes to the console")
    finally:
        logger.close()


# ===========================================================================
# Scenario B: all sinks, fixed tag
# ===========================================================================


def scenario_b() -> None:
    transports = {"console": {"level": ALL_LEVELS}}
    if os.environ.get("SINKLOG_BUGSNAG_KEY"):
        transports["bugsnag"] = {"level": ["error"], "api_key": os.environ["SINKLOG_BUGSNAG_KEY"]}
    if os.environ.get("SINKLOG_LOGSTASH_HOST"):
        transports["logstash"] = {
            "level": ALL_LEVELS,
            "host": os.environ["SINKLOG_LOGSTASH_HOST"],
            "port": 28888,
            "type": "udp",
        }

    with SinkLogger(base_config(transports), tag="billing") as logger:
        err = ValueError("User is undefined")
        logger.error("test", {"key": "value"})
        logger.error(str(err), {"otherData": "data"})
        logger.error(err)
        logger.warn("some message", {"key": "value"})
        logger.info(
            "some message",
            {
                "body": {"provider": "google"},
                "headers": {"content-type": "application/json", "connection": "keep-alive"},
            },
        )
        logger.debug("some message", {"key": "value"})


# ---------------------------------------------------------------------------
# Run both scenarios
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    print("=" * 60)
    print("Scenario A: console + file, stack-derived tag")
    print("=" * 60)
    scenario_a()

    print()
    print("=" * 60)
    print("Scenario B: every configured sink, fixed tag")
    print("=" * 60)
    scenario_b()
