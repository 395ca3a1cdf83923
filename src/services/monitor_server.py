"""
Monitor Server - Main orchestrator for the HeaterMeter sync engine
Runs the foreground tick loop, the background alarm check and the local API
"""

import asyncio
import logging
import time
from typing import Optional

import uvicorn

# Local imports
from config_loader import load_config, setup_logging, settings_from_config, load_saved_history
from api.main_api import MonitorAPI
from heatermeter.alarms import evaluate_alarms, format_status_line
from heatermeter.fetcher import FailoverFetcher
from heatermeter.models import NamedSample
from heatermeter.scheduler import HeaterMeterClient

logger = logging.getLogger(__name__)

# Warn once this many ticks in a row have produced nothing
LOST_CONNECTION_TICKS = 3

class MonitorServer:
    """Main server wiring the sync engine to its scheduling and API"""

    def __init__(self, config_path: str = "config/config.yaml"):
        self.config = load_config(config_path)
        setup_logging(self.config)

        self.settings = settings_from_config(self.config)

        request_timeout = self.config['polling']['request_timeout_seconds']
        fetcher = FailoverFetcher(
            self.settings.servers,
            connect_timeout=request_timeout,
            read_timeout=request_timeout
        )

        self.client = HeaterMeterClient(
            self.settings,
            fetcher=fetcher,
            saved_history=load_saved_history(self.config)
        )
        self.client.add_listener(self._on_samples_updated)

        self.api = MonitorAPI(self.client)

        self.running = False
        self.tasks = []
        self._missed_ticks = 0

    async def start(self):
        """Start the tick loop, the alarm check and the API server"""
        logger.info("Starting HeaterMeter monitor...")
        logger.info(f"Servers: {', '.join(self.settings.servers)}")

        try:
            self.running = True

            self.tasks = [
                asyncio.create_task(self._polling_service()),
                asyncio.create_task(self._alarm_service())
            ]

            logger.info(f"All services started successfully ({len(self.tasks)} background tasks)")

            await self._start_api_server()

        except Exception as e:
            logger.error(f"Server startup failed: {e}")
            await self.stop()
            raise

    async def stop(self):
        """Stop all services gracefully"""
        logger.info("Stopping server...")
        self.running = False

        for task in self.tasks:
            task.cancel()

        if self.tasks:
            await asyncio.gather(*self.tasks, return_exceptions=True)
        self.tasks = []

        status = self.client.get_status()
        logger.info(f"Sync stats: {status['tick_count']} ticks, {status['failed_ticks']} without a sample")

        await self.client.close()
        logger.info("Server stopped")

    # ================== LISTENER ==================

    def _on_samples_updated(self, sample: Optional[NamedSample]):
        """Track lost connections and log the latest readings"""
        if sample is None:
            self._missed_ticks += 1
            if self._missed_ticks == LOST_CONNECTION_TICKS:
                logger.warning(f"No sample from the HeaterMeter for {self._missed_ticks} ticks")
            return

        if self._missed_ticks >= LOST_CONNECTION_TICKS:
            logger.info("HeaterMeter connection restored")
        self._missed_ticks = 0

        logger.debug(f"t={sample.time} set={sample.sample.set_point} {format_status_line(sample)}")

    # ================== FOREGROUND TICK LOOP ==================

    async def _polling_service(self):
        """Run one tick per interval, never overlapping"""
        poll_interval = self.config['polling']['interval_seconds']

        logger.info(f"Sync service started ({poll_interval}s interval)")

        while self.running:
            cycle_start_time = time.time()

            try:
                await self.client.tick()

                elapsed_time = time.time() - cycle_start_time
                remaining_time = poll_interval - elapsed_time

                # PILE-UP PREVENTION: start the next tick right away if this one overran
                if elapsed_time > poll_interval:
                    logger.warning(
                        f"Sync tick took {elapsed_time:.1f}s (>{poll_interval}s configured) - "
                        f"skipping sleep to prevent pile-up"
                    )
                    continue

                await asyncio.sleep(remaining_time)

            except asyncio.CancelledError:
                raise
            except Exception as e:
                elapsed_time = time.time() - cycle_start_time
                remaining_time = max(0, poll_interval - elapsed_time)

                logger.error(f"Sync service error: {e}")

                # Even on error, respect timing to prevent rapid error loops
                await asyncio.sleep(remaining_time)

    # ================== BACKGROUND ALARM CHECK ==================

    async def _alarm_service(self):
        """Periodic lightweight status check that reports alarms"""
        check_interval = self.settings.background_update_minutes * 60

        logger.info(f"Alarm service started (every {self.settings.background_update_minutes} minutes)")

        while self.running:
            try:
                await asyncio.sleep(check_interval)
                if not self.running:
                    break

                await self.check_alarms()

            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Alarm service error: {e}")

    async def check_alarms(self):
        """Fetch a fresh status sample and log any triggered alarm"""
        sample = await self.client.fetch_status()
        report = evaluate_alarms(sample, self.settings)

        if report.triggered:
            sound = " (sound)" if report.sound else ""
            logger.warning(f"HeaterMeter alarm{sound}: {report.text}")
        elif sample is not None:
            logger.info(f"HeaterMeter status: {format_status_line(sample)}")
        else:
            logger.info("Alarm check got no sample from the HeaterMeter")

        return report

    async def _start_api_server(self):
        """Start the FastAPI server"""
        config = uvicorn.Config(
            self.api.app,
            host=self.config['api']['host'],
            port=self.config['api']['port'],
            log_level="info",
            access_log=False  # We handle our own logging
        )

        server = uvicorn.Server(config)

        logger.info(f"Starting API server on {self.config['api']['host']}:{self.config['api']['port']}")
        logger.info(f"API documentation: http://localhost:{self.config['api']['port']}/docs")

        await server.serve()
