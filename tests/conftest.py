"""Shared pytest fixtures for the HeaterMeter client tests."""

from __future__ import annotations

import json
import math
from typing import Dict, List, Optional

import pytest

from heatermeter.models import NamedSample, ProbeMetadata, Sample
from heatermeter.settings import HeaterMeterSettings


def make_sample(time: int, set_point: float = 225.0, probes=None, fan_speed: float = 40.0) -> Sample:
    probes = list(probes) if probes is not None else [210.0, 150.0, math.nan, math.nan]
    return Sample(time=time, fan_speed=fan_speed, lid_open=0.0, set_point=set_point, probes=probes)


def make_named(time: int, names=None, **kwargs) -> NamedSample:
    names = list(names) if names is not None else ["Pit", "Brisket", "", ""]
    return NamedSample(make_sample(time, **kwargs), ProbeMetadata(probe_names=names))


def status_json(time: int = 1000, set_point: float = 225, temps: Optional[List[Dict]] = None) -> str:
    if temps is None:
        temps = [
            {"n": "Pit", "c": 224.5, "dph": 1.5},
            {"n": "Brisket", "c": 160.2, "dph": 12.0},
            {"n": "Probe 3", "c": None, "dph": None},
            {"n": "Probe 4", "c": None},
        ]
    return json.dumps({
        "time": time,
        "set": set_point,
        "lid": 0,
        "fan": {"c": 35, "a": 30},
        "temps": temps,
    })


class FakeFetcher:
    """Stands in for FailoverFetcher: canned bodies per path, None = failure."""

    def __init__(self, responses: Optional[Dict[str, List[Optional[str]]]] = None):
        self.responses = responses or {}
        self.calls: List[str] = []
        self.servers = ["http://primary", "http://alternate"]
        self.current_server = 0
        self.closed = False

    @property
    def base_url(self) -> str:
        return self.servers[self.current_server]

    def queue(self, path: str, body: Optional[str]) -> None:
        self.responses.setdefault(path, []).append(body)

    async def fetch(self, path, method="GET", data=None, headers=None):
        self.calls.append(path)
        bodies = self.responses.get(path)
        if not bodies:
            return None
        return bodies.pop(0)

    async def ensure_session(self):
        return object()

    async def close(self):
        self.closed = True


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def settings() -> HeaterMeterSettings:
    return HeaterMeterSettings(servers=["heatermeter.local", "http://backup.example.com"])


@pytest.fixture
def fake_fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
