from __future__ import annotations

import math

import pytest

from heatermeter.alarms import (
    LOST_CONNECTION_MESSAGE,
    evaluate_alarms,
    format_alarm,
    format_status_line,
    format_temperature,
    has_alarms,
    temperature_change_text,
)
from heatermeter.settings import HeaterMeterSettings

from conftest import make_named


@pytest.mark.parametrize(
    "lo,hi,reading,expected",
    [
        (150, 0, 140.0, "10.0° below alarm point"),
        (0, 225, 230.0, "5.0° above alarm point"),
        (150, 0, math.nan, "off"),
        (0, 0, 180.0, ""),
        (0, 0, math.nan, ""),
        (-70, -200, 10.0, ""),
        (150, 225, 180.0, ""),
        (150, 225, 150.0, ""),
    ],
)
def test_format_alarm(lo, hi, reading, expected):
    assert format_alarm(reading, lo, hi) == expected


def test_format_temperature():
    assert format_temperature(224.56) == "224.6°"
    assert format_temperature(10) == "10.0°"


def test_has_alarms():
    assert not has_alarms([-70] * 4, [-200] * 4)
    assert has_alarms([-70, 0, 0, 1], [0] * 4)
    assert has_alarms([0] * 4, [0, 0, 195, 0])


class TestTemperatureChangeText:
    def test_slow_change_is_hidden(self):
        assert temperature_change_text(0.5, 150.0, 195) is None

    def test_rate_only_without_alarm(self):
        assert temperature_change_text(12.0, 150.0, -200) == "12.0°/hr"

    def test_estimates_time_to_high_alarm(self):
        # 45 degrees to go at 12 degrees/hr -> 225 minutes
        assert temperature_change_text(12.0, 150.0, 195) == "12.0°/hr, 3:45 to 195°"

    def test_no_estimate_past_alarm(self):
        assert temperature_change_text(12.0, 200.0, 195) == "12.0°/hr"

    def test_no_estimate_without_reading(self):
        assert temperature_change_text(12.0, math.nan, 195) == "12.0°/hr"


def test_status_line_lists_connected_probes():
    sample = make_named(1, names=["Pit", "Brisket", "", ""], probes=[225.0, 160.25, math.nan, math.nan])
    assert format_status_line(sample) == "Pit: 225.0° Brisket: 160.2°"
    assert format_status_line(None) == ""


def _settings(**kwargs):
    return HeaterMeterSettings(servers=["a", "b"], **kwargs)


def test_evaluate_alarms_lists_each_triggered_probe():
    settings = _settings(probe_lo_alarms=[200, -70, -70, -70], probe_hi_alarms=[-200, 150, -200, -200])
    sample = make_named(1, names=["Pit", "Brisket", "", ""], probes=[190.0, 160.0, math.nan, math.nan])

    report = evaluate_alarms(sample, settings)

    assert report.triggered
    assert report.sound
    assert report.lines == ["Pit 10.0° below alarm point", "Brisket 10.0° above alarm point"]
    assert report.text == "Pit 10.0° below alarm point\nBrisket 10.0° above alarm point"


def test_evaluate_alarms_quiet_when_in_range():
    report = evaluate_alarms(make_named(1), _settings())
    assert not report.triggered
    assert report.text == ""


def test_lost_connection_triggers_when_enabled():
    report = evaluate_alarms(None, _settings(always_sound_alarm=False))
    assert report.triggered
    assert not report.sound
    assert report.text == LOST_CONNECTION_MESSAGE


def test_lost_connection_ignored_when_disabled():
    report = evaluate_alarms(None, _settings(alarm_on_lost_connection=False))
    assert not report.triggered
