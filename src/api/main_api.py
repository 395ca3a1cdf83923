"""
Main FastAPI application setup

Local HTTP API for the HeaterMeter monitor
Exposes the synced samples, alarm state and set point control
"""

from fastapi import FastAPI
import logging

# Import modular route factories
from .system_routes import create_system_routes
from .status_routes import create_status_routes

logger = logging.getLogger(__name__)


class MonitorAPI:
    """Local HTTP API over a running HeaterMeterClient"""

    def __init__(self, client):
        self.client = client
        self.app = FastAPI(
            title="HeaterMeter Local Monitor",
            description="Local API for HeaterMeter samples, alarms and set point control",
            version="1.0.0"
        )
        self._setup_routes()

    def _setup_routes(self):
        """Setup FastAPI routes using modular approach"""
        self.app.include_router(create_status_routes(self.client))
        self.app.include_router(create_system_routes(self.client))
