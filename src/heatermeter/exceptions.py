"""HeaterMeter client exceptions."""


class HeaterMeterError(Exception):
    """Base exception for the HeaterMeter client."""


class DecodeError(HeaterMeterError, ValueError):
    """Appliance payload could not be decoded."""


class StatusDecodeError(DecodeError):
    """Status JSON is malformed or missing required fields."""


class HistoryDecodeError(DecodeError):
    """History CSV stream could not be read."""


class NotAuthenticatedError(HeaterMeterError):
    """A write command was attempted without a session cookie."""
