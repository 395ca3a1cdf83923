"""
Alarm evaluation and reading formatters

Pure helpers: thresholds come in as plain integers where a value <= 0
means the alarm is disabled (negative values keep the last setting around
so it can be re-enabled).
"""

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .models import NUM_PROBES, NamedSample

LOST_CONNECTION_MESSAGE = "Unable to connect to the HeaterMeter"


@dataclass
class AlarmReport:
    triggered: bool
    text: str
    sound: bool = False
    lines: Optional[List[str]] = None


def format_temperature(temperature: float) -> str:
    return f"{temperature:.1f}°"


def format_alarm(temperature: float, lo: int, hi: int) -> str:
    """Text for a triggered alarm, "off" for a missing probe, "" otherwise"""
    has_lo = lo > 0
    has_hi = hi > 0

    if (has_lo or has_hi) and math.isnan(temperature):
        return "off"
    elif has_lo and temperature < lo:
        return format_temperature(lo - temperature) + " below alarm point"
    elif has_hi and temperature > hi:
        return format_temperature(temperature - hi) + " above alarm point"

    return ""


def has_alarms(lo_alarms: Sequence[int], hi_alarms: Sequence[int]) -> bool:
    return any(lo > 0 for lo in lo_alarms) or any(hi > 0 for hi in hi_alarms)


def temperature_change_text(degrees_per_hour: float, current_temp: float, hi: int) -> Optional[str]:
    """Rate of change, plus time left until the high alarm when it can be estimated"""
    # Below one degree an hour the estimate is mostly noise
    if degrees_per_hour < 1.0:
        return None

    text = f"{degrees_per_hour:.1f}°/hr"

    if hi > 0 and not math.isnan(current_temp):
        minutes_remaining = int(((hi - current_temp) / degrees_per_hour) * 60)
        if minutes_remaining > 0:
            hours, minutes = divmod(minutes_remaining, 60)
            text += f", {hours}:{minutes:02d} to {hi}°"

    return text


def format_status_line(sample: Optional[NamedSample]) -> str:
    """One-line summary of every connected probe"""
    if sample is None:
        return ""
    parts = []
    for p in range(NUM_PROBES):
        if not math.isnan(sample.probes[p]):
            parts.append(f"{sample.probe_names[p]}: {format_temperature(sample.probes[p])}")
    return " ".join(parts)


def evaluate_alarms(sample: Optional[NamedSample], settings) -> AlarmReport:
    """Build the alarm report for the latest sample.

    `settings` needs probe_lo_alarms, probe_hi_alarms, always_sound_alarm and
    alarm_on_lost_connection. No sample at all counts as a lost connection.
    """
    if sample is None:
        triggered = settings.alarm_on_lost_connection
        return AlarmReport(
            triggered=triggered,
            text=LOST_CONNECTION_MESSAGE,
            sound=triggered and settings.always_sound_alarm,
            lines=[],
        )

    lines = []
    for p in range(NUM_PROBES):
        alarm_text = format_alarm(
            sample.probes[p],
            settings.probe_lo_alarms[p],
            settings.probe_hi_alarms[p],
        )
        if alarm_text:
            lines.append(f"{sample.probe_names[p]} {alarm_text}")

    triggered = bool(lines)
    return AlarmReport(
        triggered=triggered,
        text="\n".join(lines),
        sound=triggered and settings.always_sound_alarm,
        lines=lines,
    )
