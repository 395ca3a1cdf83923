"""
Configuration loader for the HeaterMeter monitor
Loads and validates configuration from YAML files
"""

import yaml
import logging
from typing import Dict, Any, Optional
from pathlib import Path
from datetime import datetime
import pytz

from heatermeter.decoders import parse_saved_history
from heatermeter.models import NUM_PROBES, SavedHistory
from heatermeter.settings import HeaterMeterSettings, DEFAULT_LO_ALARM, DEFAULT_HI_ALARM

logger = logging.getLogger(__name__)

def load_config(config_path: str = "config/config.yaml") -> Dict[str, Any]:
    """
    Load configuration from YAML file with validation
    """
    try:
        config_file = Path(config_path)
        if not config_file.exists():
            logger.error(f"Configuration file not found: {config_path}")
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_file, 'r') as f:
            config = yaml.safe_load(f) or {}

        # Validate required sections
        _validate_config(config)

        # Apply defaults
        config = _apply_defaults(config)

        logger.info(f"Configuration loaded from {config_path}")
        return config

    except Exception as e:
        logger.error(f"Failed to load configuration: {e}")
        raise

def _validate_config(config: Dict) -> None:
    """Validate that required configuration sections exist"""
    if not isinstance(config, dict):
        raise ValueError("Configuration must be a mapping")

    if 'servers' not in config or not isinstance(config['servers'], dict):
        raise ValueError("Missing required configuration section: servers")

    # The alternate server is optional, the primary is not
    if not config['servers'].get('primary'):
        raise ValueError("servers.primary is required and must not be empty")

    # Validate alarm thresholds if present
    if 'alarms' in config:
        _validate_alarms(config['alarms'])

    polling = config.get('polling', {})
    for key in ('interval_seconds', 'background_update_minutes', 'request_timeout_seconds'):
        if key in polling and (not isinstance(polling[key], (int, float)) or polling[key] <= 0):
            raise ValueError(f"polling.{key} must be a positive number")

def _validate_alarms(alarms: Dict) -> None:
    """Validate per-probe alarm thresholds"""
    probes = alarms.get('probes')
    if probes is None:
        return

    if not isinstance(probes, list) or len(probes) > NUM_PROBES:
        raise ValueError(f"alarms.probes must be a list of at most {NUM_PROBES} entries")

    for index, probe in enumerate(probes):
        if not isinstance(probe, dict):
            raise ValueError(f"alarms.probes[{index}] must be a mapping with lo/hi")
        for key in ('lo', 'hi'):
            if key in probe and not isinstance(probe[key], int):
                raise ValueError(f"alarms.probes[{index}].{key} must be an integer")

def _apply_defaults(config: Dict) -> Dict:
    """Apply default values to configuration"""

    # Alternate server falls back to the primary
    if not config['servers'].get('alternate'):
        config['servers']['alternate'] = config['servers']['primary']

    # Auth defaults
    if 'auth' not in config or config['auth'] is None:
        config['auth'] = {}
    if config['auth'].get('admin_password') is None:
        config['auth']['admin_password'] = ""

    # Polling defaults
    if 'polling' not in config:
        config['polling'] = {}
    polling_defaults = {
        'interval_seconds': 5,
        'background_update_minutes': 15,
        'request_timeout_seconds': 5
    }
    for key, default_value in polling_defaults.items():
        if key not in config['polling']:
            config['polling'][key] = default_value

    # Alarm defaults - negative thresholds are disabled
    if 'alarms' not in config:
        config['alarms'] = {}
    alarm_defaults = {
        'always_sound': True,
        'on_lost_connection': True
    }
    for key, default_value in alarm_defaults.items():
        if key not in config['alarms']:
            config['alarms'][key] = default_value

    probes = list(config['alarms'].get('probes') or [])
    probes += [{} for _ in range(NUM_PROBES - len(probes))]
    config['alarms']['probes'] = [
        {'lo': probe.get('lo', DEFAULT_LO_ALARM), 'hi': probe.get('hi', DEFAULT_HI_ALARM)}
        for probe in probes
    ]

    # Display settings are passed through untouched
    if 'display' not in config:
        config['display'] = {}
    if 'keep_screen_on' not in config['display']:
        config['display']['keep_screen_on'] = False

    if 'saved_history' not in config:
        config['saved_history'] = {}
    if 'file' not in config['saved_history']:
        config['saved_history']['file'] = None

    # API defaults
    if 'api' not in config:
        config['api'] = {}
    api_defaults = {
        'host': '0.0.0.0',
        'port': 8000
    }
    for key, default_value in api_defaults.items():
        if key not in config['api']:
            config['api'][key] = default_value

    # Logging defaults
    if 'logging' not in config:
        config['logging'] = {}
    logging_defaults = {
        'level': 'INFO',
        'file': 'logs/heatermeter.log',
        'console_output': True,
        'timezone': 'UTC'
    }
    for key, default_value in logging_defaults.items():
        if key not in config['logging']:
            config['logging'][key] = default_value

    return config

def settings_from_config(config: Dict) -> HeaterMeterSettings:
    """Build the typed settings the client and alarm helpers use"""
    probes = config['alarms']['probes']
    return HeaterMeterSettings(
        servers=[config['servers']['primary'], config['servers']['alternate']],
        admin_password=config['auth']['admin_password'],
        probe_lo_alarms=[probe['lo'] for probe in probes],
        probe_hi_alarms=[probe['hi'] for probe in probes],
        background_update_minutes=config['polling']['background_update_minutes'],
        always_sound_alarm=config['alarms']['always_sound'],
        alarm_on_lost_connection=config['alarms']['on_lost_connection'],
        keep_screen_on=config['display']['keep_screen_on']
    )

def load_saved_history(config: Dict) -> Optional[SavedHistory]:
    """Load the captured dataset named in saved_history.file, if any"""
    history_file = config.get('saved_history', {}).get('file')
    if not history_file:
        return None

    path = Path(history_file)
    if not path.exists():
        logger.warning(f"Saved history file not found: {history_file}")
        return None

    saved = parse_saved_history(path.read_text())
    logger.info(f"Loaded {len(saved.samples)} saved samples from {history_file}")
    return saved


class TimezoneFormatter(logging.Formatter):
    """Formatter that renders timestamps in a configured timezone"""

    def __init__(self, fmt=None, timezone_name: str = 'UTC'):
        super().__init__(fmt)
        self.tz = pytz.timezone(timezone_name)

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, tz=self.tz)
        if datefmt:
            return dt.strftime(datefmt)
        else:
            # Default format: YYYY-MM-DD HH:MM:SS TZ
            return dt.strftime('%Y-%m-%d %H:%M:%S %Z')

def setup_logging(config: Dict) -> None:
    """Setup logging based on configuration"""
    log_config = config.get('logging', {})
    level = log_config.get('level', 'INFO')
    timezone_name = log_config.get('timezone', 'UTC')

    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    formatter = TimezoneFormatter(log_format, timezone_name)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    # Console handler
    if log_config.get('console_output', True):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    # File handler
    log_file = log_config.get('file')
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    logger.info(f"Logging configured: level={level}, timezone={timezone_name}, console={log_config.get('console_output', True)}, file={log_file}")

def get_sample_config() -> Dict:
    """Return a sample configuration for reference"""
    return {
        "servers": {
            "primary": "heatermeter.local",
            "alternate": "https://my-house.example.com:8443"
        },
        "auth": {
            "admin_password": ""
        },
        "polling": {
            "interval_seconds": 5,
            "background_update_minutes": 15,
            "request_timeout_seconds": 5
        },
        "alarms": {
            "always_sound": True,
            "on_lost_connection": True,
            "probes": [
                {"lo": 200, "hi": 275},   # Pit
                {"lo": -70, "hi": 195},   # Brisket
                {"lo": -70, "hi": -200},
                {"lo": -70, "hi": -200}
            ]
        },
        "display": {
            "keep_screen_on": False
        },
        "saved_history": {
            "file": None
        },
        "api": {
            "host": "0.0.0.0",
            "port": 8000
        },
        "logging": {
            "level": "INFO",
            "file": "logs/heatermeter.log",
            "console_output": True,
            "timezone": "America/New_York"
        }
    }
