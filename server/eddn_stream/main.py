"""
EDDN Stream Service Entry Point

Subscribes to the EDDN relay, filters mining-relevant traffic and hands
every event to the configured sinks (log, optional Redis broadcast).

Usage:
    python -m eddn_stream.main                 # log + Redis when REDIS_URL is set
    python -m eddn_stream.main --no-redis      # log only
    python -m eddn_stream.main --rules r.json  # custom classifier rules
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import signal

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


async def main(*, no_redis: bool = False, rules_path: str | None = None) -> None:
    """
    Run the stream pipeline until SIGINT/SIGTERM.

    1. Loads classifier rules
    2. Connects the Redis broadcast sink (when REDIS_URL is set)
    3. Subscribes to the EDDN relay
    4. Waits for a shutdown signal, then tears everything down
    """
    from eddn_stream.classifier import MessageClassifier, load_rules
    from eddn_stream.config import load_settings
    from eddn_stream.core.types import ReconnectionState
    from eddn_stream.eddn_client import EDDNSubscriber
    from eddn_stream.sinks import EventSink, LoggingSink, RedisBroadcastSink

    settings = load_settings()
    logging.getLogger().setLevel(settings.log_level)

    logger.info("Starting EDDN mining stream")

    classifier = MessageClassifier(load_rules(rules_path or settings.eddn.classifier_rules_path or None))

    sinks: list[EventSink] = [LoggingSink()]
    redis_sink: RedisBroadcastSink | None = None
    if settings.redis.enabled and not no_redis:
        redis_sink = RedisBroadcastSink(settings.redis.url)
        await redis_sink.connect()
        sinks.append(redis_sink)
    else:
        logger.info("Redis broadcasting disabled")

    subscriber = EDDNSubscriber(
        settings.eddn.relay_url,
        classifier,
        sinks,
        reconnection=ReconnectionState(
            initial_delay_seconds=settings.eddn.reconnect_interval_seconds,
            max_delay_seconds=settings.eddn.reconnect_max_interval_seconds,
            multiplier=settings.eddn.reconnect_backoff,
        ),
        receive_timeout=settings.eddn.receive_timeout_seconds,
        stats_every=settings.eddn.stats_every,
    )

    await subscriber.connect()

    # Keep running until interrupted
    shutdown_event = asyncio.Event()

    def signal_handler() -> None:
        logger.info("Shutdown signal received")
        shutdown_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    try:
        await shutdown_event.wait()
    finally:
        logger.info("Shutting down...")

        await subscriber.disconnect()

        if redis_sink is not None:
            await redis_sink.close()

        stats = subscriber.get_stats()
        classifier_stats = classifier.stats
        logger.info(
            "Final stats",
            extra={
                "messages": stats["message_count"],
                "frames_dropped": stats["frames_dropped"],
                "relevant": classifier_stats.messages_relevant,
                "relevant_by_schema": dict(classifier_stats.relevant_by_schema),
            },
        )


def run(argv: list[str] | None = None) -> None:
    """Console script entry point."""
    parser = argparse.ArgumentParser(description="EDDN mining stream")
    parser.add_argument("--no-redis", action="store_true", help="Do not broadcast to Redis even if REDIS_URL is set")
    parser.add_argument("--rules", metavar="PATH", help="Classifier rules JSON (overrides EDDN_CLASSIFIER_RULES)")
    args = parser.parse_args(argv)

    load_dotenv()
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s — %(message)s",
    )
    asyncio.run(main(no_redis=args.no_redis, rules_path=args.rules))


if __name__ == "__main__":
    run()
