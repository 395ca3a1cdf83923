"""
HeaterMeter status and control API routes
"""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel
from typing import List, Optional
import logging
import math

from heatermeter.alarms import evaluate_alarms, format_status_line, temperature_change_text
from heatermeter.models import NUM_PROBES, NamedSample, Sample

logger = logging.getLogger(__name__)

# Request models
class SetPointRequest(BaseModel):
    set_point: int

# Response models
class SampleResponse(BaseModel):
    time: int
    set_point: Optional[float]
    fan_speed: Optional[float]
    lid_open: Optional[float]
    probes: List[Optional[float]]

class LatestSampleResponse(SampleResponse):
    probe_names: List[str]
    degrees_per_hour: List[Optional[float]]
    change_text: List[Optional[str]]

class HistoryResponse(BaseModel):
    samples: List[SampleResponse]
    probe_names: List[str]
    min_time: int
    max_time: int
    min_temperature: Optional[float]
    max_temperature: Optional[float]

class AlarmResponse(BaseModel):
    triggered: bool
    sound: bool
    text: str
    lines: List[str]
    status_line: str


def _finite(value: float) -> Optional[float]:
    """JSON has no NaN, report missing readings as null"""
    if value is None or math.isnan(value) or math.isinf(value):
        return None
    return value


def _sample_response(sample: Sample) -> SampleResponse:
    return SampleResponse(
        time=sample.time,
        set_point=_finite(sample.set_point),
        fan_speed=_finite(sample.fan_speed),
        lid_open=_finite(sample.lid_open),
        probes=[_finite(t) for t in sample.probes]
    )


def _latest_response(named: NamedSample, hi_alarms: List[int]) -> LatestSampleResponse:
    sample = named.sample
    return LatestSampleResponse(
        time=sample.time,
        set_point=_finite(sample.set_point),
        fan_speed=_finite(sample.fan_speed),
        lid_open=_finite(sample.lid_open),
        probes=[_finite(t) for t in sample.probes],
        probe_names=list(named.probe_names),
        degrees_per_hour=[_finite(d) for d in named.degrees_per_hour],
        change_text=[
            temperature_change_text(named.degrees_per_hour[p], sample.probes[p], hi_alarms[p])
            for p in range(NUM_PROBES)
        ]
    )


def create_status_routes(client):
    """Create HeaterMeter status and control routes"""
    router = APIRouter(prefix="/api", tags=["heatermeter"])

    @router.get("/status", response_model=LatestSampleResponse)
    async def get_status():
        """Latest sample with probe names"""
        if client.latest_sample is None:
            raise HTTPException(status_code=404, detail="No sample available")
        return _latest_response(client.latest_sample, client.settings.probe_hi_alarms)

    @router.get("/history", response_model=HistoryResponse)
    async def get_history():
        """All stored samples plus the display range"""
        store = client.store
        return HistoryResponse(
            samples=[_sample_response(s) for s in store.samples],
            probe_names=store.probe_names,
            min_time=store.min_time(),
            max_time=store.max_time(),
            min_temperature=store.min_temperature,
            max_temperature=store.max_temperature
        )

    @router.get("/alarms", response_model=AlarmResponse)
    async def get_alarms():
        """Alarm report for the latest sample"""
        report = evaluate_alarms(client.latest_sample, client.settings)
        return AlarmResponse(
            triggered=report.triggered,
            sound=report.sound,
            text=report.text,
            lines=report.lines or [],
            status_line=format_status_line(client.latest_sample)
        )

    @router.post("/setpoint")
    async def set_set_point(request: SetPointRequest):
        """Change the pit set point"""
        if not client.auth.is_authenticated:
            raise HTTPException(status_code=409, detail="Not authenticated with the HeaterMeter")

        success = await client.change_set_point(request.set_point)
        if not success:
            raise HTTPException(status_code=502, detail="HeaterMeter did not accept the request")

        return {"status": "success", "set_point": request.set_point}

    return router
