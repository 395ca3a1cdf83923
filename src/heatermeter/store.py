"""
Sample store - bounded, time-ordered samples with min/max temperature tracking
"""

import logging
import math
from typing import List, Optional, Sequence

from .models import NUM_PROBES, NamedSample, ProbeMetadata, Sample

logger = logging.getLogger(__name__)


class SampleStore:
    """Ordered samples plus the temperature range used for display scaling.

    The range only ever widens while samples are appended; it is reset
    when the whole store is rebuilt from a history fetch.
    """

    def __init__(self):
        self._samples: List[Sample] = []
        self._metadata = ProbeMetadata()
        self.newest_time = 0
        self._min_temperature = math.inf
        self._max_temperature = -math.inf

    def __len__(self) -> int:
        return len(self._samples)

    def size(self) -> int:
        return len(self._samples)

    @property
    def samples(self) -> List[Sample]:
        return list(self._samples)

    @property
    def probe_names(self) -> List[str]:
        return list(self._metadata.probe_names)

    @property
    def degrees_per_hour(self) -> List[float]:
        return list(self._metadata.degrees_per_hour)

    @property
    def has_bounds(self) -> bool:
        return self._min_temperature <= self._max_temperature

    @property
    def min_temperature(self) -> Optional[float]:
        return self._min_temperature if self.has_bounds else None

    @property
    def max_temperature(self) -> Optional[float]:
        return self._max_temperature if self.has_bounds else None

    def min_time(self) -> int:
        return self._samples[0].time if self._samples else 0

    def max_time(self) -> int:
        return self._samples[-1].time if self._samples else 0

    def append_status(self, named: NamedSample) -> Optional[Sample]:
        """Append the latest status sample.

        Returns the stored plain sample, or None when a sample with the same
        time was already accepted (the appliance hasn't produced a new one).
        """
        sample = named.sample
        if sample.time == self.newest_time:
            logger.debug(f"Rejecting duplicate sample at time {sample.time}")
            return None

        self.newest_time = sample.time
        self._metadata = named.metadata.copy()
        self._fold_sample(sample)

        stored = sample.copy()
        self._samples.append(stored)
        return stored

    def rebuild_from_history(self, samples: Sequence[Sample]) -> None:
        """Replace every stored sample and recompute the temperature range"""
        self._samples = [s.copy() for s in samples]
        self._min_temperature = math.inf
        self._max_temperature = -math.inf

        for sample in self._samples:
            self.newest_time = max(self.newest_time, sample.time)
            self._fold_sample(sample)

        logger.debug(
            f"Store rebuilt with {len(self._samples)} samples "
            f"(range {self.min_temperature}..{self.max_temperature})"
        )

    def latest_sample(self) -> Optional[NamedSample]:
        """Newest stored sample with the current probe names re-attached"""
        if not self._samples:
            return None
        metadata = ProbeMetadata(probe_names=list(self._metadata.probe_names))
        return NamedSample(self._samples[-1].copy(), metadata)

    def normalize(self, temperature: float) -> float:
        return (temperature - self._min_temperature) / (self._max_temperature - self._min_temperature)

    def denormalize(self, normalized: float) -> float:
        return normalized * (self._max_temperature - self._min_temperature) + self._min_temperature

    def _fold_sample(self, sample: Sample) -> None:
        self._fold_temperature(sample.set_point)
        for p in range(NUM_PROBES):
            if not math.isnan(sample.probes[p]):
                self._fold_temperature(sample.probes[p])

    def _fold_temperature(self, temperature: float) -> None:
        # Snap to multiples of 10 with at least one degree of headroom
        # on each side, so a graph never touches its edges.
        if not math.isfinite(temperature):
            return
        rounded_up = math.ceil((temperature + 5.0) / 10.0) * 10.0
        rounded_down = math.floor((temperature - 5.0) / 10.0) * 10.0

        self._min_temperature = min(self._min_temperature, rounded_down)
        self._max_temperature = max(self._max_temperature, rounded_up)
