"""
HeaterMeter data structures
Samples, probe metadata, saved history and the tagged result of a sync tick
"""

import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

# Protocol constant - the appliance always reports four probe slots
NUM_PROBES = 4

_SCHEME_RE = re.compile(r"^(https?)://.*$")


def _nan_probes() -> List[float]:
    return [math.nan] * NUM_PROBES


def normalize_server_address(address: str) -> str:
    """Prefix a bare host with http:// so it can be used as a base URL"""
    address = (address or "").strip()
    if not _SCHEME_RE.match(address):
        address = "http://" + address
    return address.rstrip("/")


@dataclass
class Sample:
    """One observation from the appliance"""
    time: int = 0
    fan_speed: float = 0.0
    lid_open: float = 0.0
    set_point: float = math.nan
    probes: List[float] = field(default_factory=_nan_probes)

    def copy(self) -> "Sample":
        return Sample(
            time=self.time,
            fan_speed=self.fan_speed,
            lid_open=self.lid_open,
            set_point=self.set_point,
            probes=list(self.probes),
        )


@dataclass
class ProbeMetadata:
    """Per-probe labels and rate of change, only known for the latest observation"""
    probe_names: List[str] = field(default_factory=lambda: [""] * NUM_PROBES)
    degrees_per_hour: List[float] = field(default_factory=lambda: [0.0] * NUM_PROBES)

    def copy(self) -> "ProbeMetadata":
        return ProbeMetadata(list(self.probe_names), list(self.degrees_per_hour))


@dataclass
class NamedSample:
    """A plain sample together with the probe metadata it was reported with"""
    sample: Sample
    metadata: ProbeMetadata = field(default_factory=ProbeMetadata)

    @property
    def time(self) -> int:
        return self.sample.time

    @property
    def probes(self) -> List[float]:
        return self.sample.probes

    @property
    def probe_names(self) -> List[str]:
        return self.metadata.probe_names

    @property
    def degrees_per_hour(self) -> List[float]:
        return self.metadata.degrees_per_hour


@dataclass
class SavedHistory:
    """A previously captured dataset that replaces live fetches while present"""
    samples: List[Sample]
    probe_names: List[str] = field(default_factory=lambda: [""] * NUM_PROBES)


class ResultKind(Enum):
    STATUS = "status"
    HISTORY = "history"
    FAILED = "failed"


@dataclass
class TickResult:
    """Outcome of the fetch phase of one tick, consumed by the apply step"""
    kind: ResultKind
    fetched_at: float
    history_attempted: bool = False
    status: Optional[NamedSample] = None
    history: Optional[List[Sample]] = None
    error: Optional[str] = None

    @classmethod
    def from_status(cls, sample: NamedSample, fetched_at: float) -> "TickResult":
        return cls(ResultKind.STATUS, fetched_at, status=sample)

    @classmethod
    def from_history(cls, samples: List[Sample], fetched_at: float) -> "TickResult":
        return cls(ResultKind.HISTORY, fetched_at, history_attempted=True, history=samples)

    @classmethod
    def failed(cls, error: str, fetched_at: float, history_attempted: bool = False) -> "TickResult":
        return cls(ResultKind.FAILED, fetched_at, history_attempted=history_attempted, error=error)

    @property
    def ok(self) -> bool:
        return self.kind is not ResultKind.FAILED
