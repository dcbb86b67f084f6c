"""
Kiosk Client - Main entry point.

Starts the kiosk session components and listens for frontend/operator
commands on Redis pub/sub.
"""

import asyncio
import json
from typing import Final

from redis.asyncio import Redis

from kiosk_client.application.api_facade import KioskClientFacade
from kiosk_client.application.command_handler import CommandHandler
from kiosk_client.infrastructure.settings import get_settings
from kiosk_client.loggers import logger


# =============================================================================
# Constants
# =============================================================================

settings = get_settings()
COMMAND_CHANNEL: Final[str] = settings.commands.command_channel
RESPONSE_CHANNEL: Final[str] = settings.commands.response_channel


# =============================================================================
# Redis Command Listener
# =============================================================================


async def listen_to_redis(redis: Redis, handler: CommandHandler) -> None:
    """
    Listen for commands on Redis pub/sub and answer on the response channel.

    Args:
        redis: Redis client instance.
        handler: Command router.
    """
    pubsub = redis.pubsub()
    await pubsub.subscribe(COMMAND_CHANNEL)
    logger.info(f"Listening for commands on channel: {COMMAND_CHANNEL}")

    async for message in pubsub.listen():
        if message.get("type") != "message":
            continue

        raw_data = message.get("data")
        if raw_data == "ping":
            continue

        try:
            command = json.loads(raw_data)
            logger.info(f"Received command: {command}")

            response = await handler.execute(command)

            await redis.publish(RESPONSE_CHANNEL, json.dumps(response, default=str))
            logger.info(f"Response sent to {RESPONSE_CHANNEL}: {response}")

        except json.JSONDecodeError as e:
            logger.error(f"Command parsing error: {e}")
        except Exception as e:
            logger.error(f"Unexpected error processing command: {e}")


# =============================================================================
# Main Entry Point
# =============================================================================


async def main() -> None:
    """
    Main entry point for the kiosk client.

    Starts the first payment session, then serves commands until stopped.
    """
    redis = Redis(
        host=settings.redis.host,
        port=settings.redis.port,
        decode_responses=settings.redis.decode_responses,
    )
    api = KioskClientFacade(settings)

    try:
        await api.start()
        await listen_to_redis(redis, CommandHandler(api))
    finally:
        await api.shutdown()
        await redis.aclose()


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Application stopped by user")


if __name__ == "__main__":
    run()
