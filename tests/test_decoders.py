from __future__ import annotations

import json
import math

import pytest

from heatermeter.decoders import parse_double, parse_history, parse_saved_history, parse_status
from heatermeter.exceptions import DecodeError, HistoryDecodeError, StatusDecodeError

from conftest import status_json


class TestParseStatus:
    def test_full_status(self):
        named = parse_status(status_json(time=1234, set_point=225))

        assert named.time == 1234
        assert named.sample.set_point == 225.0
        assert named.sample.fan_speed == 35.0
        assert named.sample.lid_open == 0.0
        assert named.probes[0] == 224.5
        assert named.probes[1] == 160.2
        assert named.probe_names == ["Pit", "Brisket", "Probe 3", "Probe 4"]
        assert named.degrees_per_hour == [1.5, 12.0, 0.0, 0.0]

    def test_null_and_missing_readings(self):
        named = parse_status(status_json())
        assert math.isnan(named.probes[2])
        assert math.isnan(named.probes[3])

    def test_fewer_than_four_probes_pads_with_nan(self):
        named = parse_status(status_json(temps=[{"n": "Pit", "c": 200}]))
        assert named.probes[0] == 200.0
        assert all(math.isnan(t) for t in named.probes[1:])
        assert named.probe_names == ["Pit", "", "", ""]

    def test_extra_probes_are_ignored(self):
        temps = [{"n": f"P{i}", "c": 100 + i} for i in range(6)]
        named = parse_status(status_json(temps=temps))
        assert named.probes == [100.0, 101.0, 102.0, 103.0]

    @pytest.mark.parametrize("field", ["time", "set", "fan", "lid", "temps"])
    def test_missing_required_field_fails(self, field):
        data = json.loads(status_json())
        del data[field]
        with pytest.raises(StatusDecodeError):
            parse_status(json.dumps(data))

    def test_wrong_type_fails(self):
        data = json.loads(status_json())
        data["set"] = "hot"
        with pytest.raises(StatusDecodeError):
            parse_status(json.dumps(data))

    @pytest.mark.parametrize("field", ["time", "set", "lid"])
    def test_infinite_required_field_fails(self, field):
        data = json.loads(status_json())
        data[field] = math.inf
        # json.dumps writes the Infinity literal, which json.loads accepts
        with pytest.raises(StatusDecodeError):
            parse_status(json.dumps(data))

    def test_infinite_probe_reading_fails(self):
        with pytest.raises(StatusDecodeError):
            parse_status(status_json(temps=[{"n": "Pit", "c": -math.inf}]))

    def test_infinite_rate_fails(self):
        with pytest.raises(StatusDecodeError):
            parse_status(status_json(temps=[{"n": "Pit", "c": 200.0, "dph": math.inf}]))

    def test_nan_probe_reading_is_missing(self):
        named = parse_status(status_json(temps=[{"n": "Pit", "c": math.nan}]))
        assert math.isnan(named.probes[0])

    @pytest.mark.parametrize("field", ["time", "set"])
    def test_huge_integer_fails(self, field):
        data = json.loads(status_json())
        data[field] = 10 ** 400
        with pytest.raises(StatusDecodeError):
            parse_status(json.dumps(data))

    def test_huge_probe_reading_fails(self):
        with pytest.raises(StatusDecodeError):
            parse_status(status_json(temps=[{"n": "Pit", "c": 10 ** 400}]))

    def test_malformed_json_fails(self):
        with pytest.raises(DecodeError):
            parse_status("{not json")

    def test_non_object_fails(self):
        with pytest.raises(StatusDecodeError):
            parse_status("[1, 2, 3]")


class TestParseHistory:
    def test_rows_in_file_order(self):
        text = "100,225,200.5,150,,,40\n110,225,201,151,,,42\n"
        history = parse_history(text)

        assert [s.time for s in history] == [100, 110]
        assert history[0].set_point == 225.0
        assert history[0].probes[0] == 200.5
        assert math.isnan(history[0].probes[2])
        assert history[1].fan_speed == 42.0
        assert history[1].lid_open == 0.0

    def test_row_without_set_point_is_skipped(self):
        history = parse_history("100,NaN,70,,,,-1\n200,225,70,,,,10\n")
        assert [s.time for s in history] == [200]

    def test_negative_fan_means_lid_open(self):
        history = parse_history("100,225,70,68,,,-5\n")
        assert history[0].lid_open == 1.0
        assert history[0].fan_speed == 0.0

    def test_unicode_minus_sign(self):
        history = parse_history("100,225,70,68,,,−5\n")
        assert history[0].lid_open == 1.0
        assert history[0].fan_speed == 0.0

    def test_garbage_probe_becomes_nan(self):
        history = parse_history("100,225,abc,68,U,,10\n")
        assert math.isnan(history[0].probes[0])
        assert history[0].probes[1] == 68.0
        assert math.isnan(history[0].probes[2])

    def test_short_row_is_padded(self):
        history = parse_history("100,225,70\n")
        assert len(history) == 1
        assert history[0].probes[0] == 70.0
        assert math.isnan(history[0].probes[3])

    @pytest.mark.parametrize("cell", ["inf", "Infinity", "-inf", "1e400"])
    def test_infinite_probe_becomes_nan(self, cell):
        history = parse_history(f"100,225,{cell},68,,,10\n")
        assert math.isnan(history[0].probes[0])
        assert history[0].probes[1] == 68.0

    @pytest.mark.parametrize("cell", ["inf", "Infinity", "1e400"])
    def test_infinite_set_point_or_time_skips_row(self, cell):
        text = f"100,{cell},70,,,,10\n{cell},225,70,,,,10\n200,225,70,,,,10\n"
        assert [s.time for s in parse_history(text)] == [200]

    def test_empty_input(self):
        assert parse_history("") == []

    def test_blank_lines_are_skipped(self):
        assert len(parse_history("\n100,225,70,,,,10\n\n")) == 1


def test_parse_saved_history():
    text = "Pit\nBrisket\n\nAmbient\n100,225,200,150,,70,30\n200,225,205,155,,71,25\n"
    saved = parse_saved_history(text)

    assert saved.probe_names == ["Pit", "Brisket", "", "Ambient"]
    assert [s.time for s in saved.samples] == [100, 200]


def test_parse_saved_history_needs_probe_names():
    with pytest.raises(HistoryDecodeError):
        parse_saved_history("Pit\nBrisket\n")


@pytest.mark.parametrize("value,expected", [("12.5", 12.5), (" 7 ", 7.0), ("-3", -3.0)])
def test_parse_double(value, expected):
    assert parse_double(value) == expected


@pytest.mark.parametrize("value", ["", "abc", None, "NaN", "inf", "-Infinity", "1e400"])
def test_parse_double_nan(value):
    assert math.isnan(parse_double(value))
