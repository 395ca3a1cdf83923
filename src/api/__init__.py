"""
API module for HeaterMeter monitoring and control
"""

from .main_api import MonitorAPI
from .status_routes import create_status_routes
from .system_routes import create_system_routes

__all__ = ['MonitorAPI', 'create_status_routes', 'create_system_routes']
