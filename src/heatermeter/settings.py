"""
User settings consumed by the HeaterMeter client and the alarm helpers
"""

from dataclasses import dataclass, field
from typing import List

from .models import NUM_PROBES, normalize_server_address

# Negative thresholds are disabled alarms that remember their last value
DEFAULT_LO_ALARM = -70
DEFAULT_HI_ALARM = -200


@dataclass
class HeaterMeterSettings:
    servers: List[str]
    admin_password: str = ""
    probe_lo_alarms: List[int] = field(default_factory=lambda: [DEFAULT_LO_ALARM] * NUM_PROBES)
    probe_hi_alarms: List[int] = field(default_factory=lambda: [DEFAULT_HI_ALARM] * NUM_PROBES)
    background_update_minutes: int = 15
    always_sound_alarm: bool = True
    alarm_on_lost_connection: bool = True
    keep_screen_on: bool = False

    def __post_init__(self):
        self.servers = [normalize_server_address(s) for s in self.servers]
