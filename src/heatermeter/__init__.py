"""
HeaterMeter sync engine - keeps a local sample store in step with the appliance
"""

from .models import NUM_PROBES, Sample, NamedSample, ProbeMetadata, SavedHistory, ResultKind, TickResult
from .settings import HeaterMeterSettings
from .store import SampleStore
from .fetcher import FailoverFetcher
from .auth import AuthSession
from .scheduler import HeaterMeterClient

__all__ = [
    'NUM_PROBES', 'Sample', 'NamedSample', 'ProbeMetadata', 'SavedHistory', 'ResultKind', 'TickResult',
    'HeaterMeterSettings', 'SampleStore', 'FailoverFetcher', 'AuthSession', 'HeaterMeterClient',
]
