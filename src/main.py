"""
HeaterMeter Local Monitor - Main Entry Point
"""

import asyncio
import signal
import sys
import logging
import os

from services.monitor_server import MonitorServer

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = 'config/config.yaml'

def resolve_config_path() -> str:
    """CONFIG_FILE from the environment, or the default path"""
    config_path = os.environ.get('CONFIG_FILE')
    if config_path:
        logger.info(f"Using configuration file from CONFIG_FILE: {config_path}")
        return config_path

    logger.info(f"CONFIG_FILE not set, using default configuration file: {DEFAULT_CONFIG_PATH}")
    return DEFAULT_CONFIG_PATH

async def main():
    """Main entry point"""

    # Handle graceful shutdown
    server = None

    def signal_handler(signum, frame):
        logger.info(f"Received signal {signum}, shutting down...")
        if server:
            asyncio.create_task(server.stop())

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        server = MonitorServer(config_path=resolve_config_path())

        await server.start()

    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
    except Exception as e:
        logger.error(f"Server failed: {e}")
        return 1
    finally:
        if server:
            await server.stop()

    return 0

def run():
    try:
        exit_code = asyncio.run(main())
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("\nServer stopped by user")
        sys.exit(0)

if __name__ == "__main__":
    run()
