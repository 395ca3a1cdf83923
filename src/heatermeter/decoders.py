"""
Decoders for the appliance's two data formats
- /luci/lm/hmstatus: JSON status snapshot with probe names
- /luci/lm/hist: headerless CSV history, 7 columns per row
"""

import csv
import io
import json
import logging
import math
from typing import Any, Dict, List

from .exceptions import HistoryDecodeError, StatusDecodeError
from .models import NUM_PROBES, NamedSample, ProbeMetadata, Sample, SavedHistory

logger = logging.getLogger(__name__)

HISTORY_COLUMNS = 7


def parse_double(value: Any) -> float:
    """Lenient number parse, NaN for anything that isn't a finite number"""
    if value is None:
        return math.nan
    try:
        # Some exports write U+2212 instead of an ASCII minus
        number = float(str(value).strip().replace("−", "-"))
    except ValueError:
        return math.nan
    return number if math.isfinite(number) else math.nan


def _to_finite(key: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise StatusDecodeError(f"Field {key} is not a number: {value!r}")
    try:
        number = float(value)
    except OverflowError as e:
        raise StatusDecodeError(f"Field {key} is out of range") from e
    # json.loads accepts Infinity and NaN literals
    if not math.isfinite(number):
        raise StatusDecodeError(f"Field {key} is not finite: {value!r}")
    return number


def _require_number(obj: Dict[str, Any], key: str) -> float:
    if key not in obj:
        raise StatusDecodeError(f"Missing required field: {key}")
    return _to_finite(key, obj[key])


def _optional_number(obj: Dict[str, Any], key: str, default: float) -> float:
    value = obj.get(key)
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return default
    return _to_finite(key, value)


def parse_status(text: str) -> NamedSample:
    """Decode a status JSON document into a NamedSample.

    Raises StatusDecodeError on malformed JSON, a missing required field,
    a field of the wrong type, or a number that isn't finite. A NaN probe
    reading is treated like a missing one.
    """
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise StatusDecodeError(f"Invalid status JSON: {e}") from e

    if not isinstance(data, dict):
        raise StatusDecodeError("Status document is not a JSON object")

    sample = Sample()
    metadata = ProbeMetadata()

    sample.time = int(_require_number(data, "time"))
    sample.set_point = _require_number(data, "set")

    fan = data.get("fan")
    if not isinstance(fan, dict):
        raise StatusDecodeError("Missing required object: fan")
    sample.fan_speed = _require_number(fan, "c")

    sample.lid_open = _require_number(data, "lid")

    temps = data.get("temps")
    if not isinstance(temps, list):
        raise StatusDecodeError("Missing required array: temps")

    if len(temps) > NUM_PROBES:
        logger.debug(f"Status reported {len(temps)} probes, ignoring extras")

    for i, row in enumerate(temps[:NUM_PROBES]):
        if not isinstance(row, dict) or "n" not in row:
            raise StatusDecodeError(f"Malformed probe entry at index {i}")
        metadata.probe_names[i] = "" if row["n"] is None else str(row["n"])
        sample.probes[i] = _optional_number(row, "c", math.nan)
        metadata.degrees_per_hour[i] = _optional_number(row, "dph", 0.0)

    return NamedSample(sample, metadata)


def _row_to_sample(row: List[str]) -> Sample:
    row = list(row) + [""] * (HISTORY_COLUMNS - len(row))

    sample = Sample()
    sample.time = int(parse_double(row[0]))
    sample.set_point = parse_double(row[1])

    for i in range(NUM_PROBES):
        sample.probes[i] = parse_double(row[i + 2])

    # Last column is the fan speed, negative while the lid is open
    fan_or_lid = parse_double(row[6])
    if fan_or_lid < 0:
        sample.lid_open = 1.0
        sample.fan_speed = 0.0
    else:
        sample.lid_open = 0.0
        sample.fan_speed = fan_or_lid

    return sample


def parse_history(text: str) -> List[Sample]:
    """Decode history CSV into samples in file order.

    A row whose set point doesn't parse is dropped, since the graph can't
    use it. Unparseable probe columns become NaN. Only a failure to read the
    stream itself raises HistoryDecodeError.
    """
    history = []
    skipped = 0

    try:
        for row in csv.reader(io.StringIO(text)):
            if len(row) < 2 or math.isnan(parse_double(row[1])):
                skipped += 1
                continue
            if not math.isfinite(parse_double(row[0])):
                skipped += 1
                continue
            history.append(_row_to_sample(row))
    except (csv.Error, TypeError) as e:
        raise HistoryDecodeError(f"Unable to read history: {e}") from e

    if skipped:
        logger.debug(f"Skipped {skipped} history rows without a usable time or set point")

    return history


def parse_saved_history(text: str) -> SavedHistory:
    """Decode a captured dataset: four probe-name lines followed by history CSV"""
    lines = text.splitlines()
    if len(lines) < NUM_PROBES:
        raise HistoryDecodeError(
            f"Saved history needs {NUM_PROBES} probe name lines, got {len(lines)}"
        )

    probe_names = [line.strip() for line in lines[:NUM_PROBES]]
    samples = parse_history("\n".join(lines[NUM_PROBES:]))
    return SavedHistory(samples=samples, probe_names=probe_names)
