# runcoach/plans/codec.py

"""
Pipe-delimited day lines.

Two seven-field variants exist in stored plans:

    minimal:  DATE|DAY_OF_WEEK|SESSION_TYPE|DISTANCE_KM|DURATION_MIN|SESSION_LOAD|PURPOSE
    extended: DATE|SESSION_TYPE|MILEAGE_BREAKDOWN|PACE_TARGETS|DISTANCE_KM|AVG_PACE|MOVING_TIME

Absent values are written as N/A. A literal zero in a numeric field is a real
zero only on rest days; on any other session it means "not provided".
"""
import logging
import re
from datetime import date
from typing import List, Optional

from runcoach.plans.blocks import clean_value
from runcoach.plans.models import ParseDiagnostics, TrainingDay, is_rest_session

logger = logging.getLogger(__name__)

DELIMITER = "|"
ABSENT = "N/A"
MIN_FIELD_COUNT = 7

MINIMAL = "minimal"
EXTENDED = "extended"

_WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_NUMBER_RE = re.compile(r"^-?\d+(?:\.\d+)?")
_LEADING_MARKUP = "-*•> \t"


def is_weekday_label(value: str) -> bool:
    label = value.strip().lower().rstrip(".")
    if len(label) < 3:
        return False
    return any(day.startswith(label) for day in _WEEKDAYS) or label in _WEEKDAYS


def detect_variant(parts: List[str]) -> str:
    """A weekday in the second column marks the minimal variant."""
    if len(parts) > 1 and is_weekday_label(parts[1]):
        return MINIMAL
    return EXTENDED


def _sanitize(value) -> str:
    text = str(value)
    return text.replace("\r", " ").replace("\n", " ").replace(DELIMITER, "/").strip()


def _text_field(value: Optional[str]) -> str:
    if value is None or value == "":
        return ABSENT
    return _sanitize(value)


def _number_field(value: Optional[float]) -> str:
    if value is None:
        return ABSENT
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


def encode_line(day: TrainingDay, variant: str = MINIMAL) -> str:
    """Encode one day. Delimiters and newlines inside values are replaced."""
    if variant == MINIMAL:
        parts = [
            day.date.isoformat(),
            day.date.strftime("%a"),
            _text_field(day.session_type),
            _number_field(day.estimated_distance_km),
            _number_field(day.duration_min),
            _text_field(day.session_load),
            _text_field(day.purpose),
        ]
    elif variant == EXTENDED:
        parts = [
            day.date.isoformat(),
            _text_field(day.session_type),
            _text_field(day.mileage_breakdown),
            _text_field(day.pace_targets),
            _number_field(day.estimated_distance_km),
            _text_field(day.estimated_avg_pace),
            _text_field(day.estimated_moving_time),
        ]
    else:
        raise ValueError(f"Unknown pipe variant: {variant}")
    return DELIMITER.join(parts)


def _decode_text(value: str) -> Optional[str]:
    return clean_value(value)


def _decode_number(value: str, session_type: str) -> Optional[float]:
    value = value.strip()
    if not value or value.upper() == ABSENT:
        return None
    match = _NUMBER_RE.match(value)
    if not match:
        return None
    number = float(match.group(0))
    if number == 0 and not is_rest_session(session_type):
        return None
    return number


def _decode_moving_time(value: str) -> Optional[str]:
    text = _decode_text(value)
    if text in ("0:00", "0:00:00", "0"):
        return None
    return text


def _parse_date(value: str) -> Optional[date]:
    value = value.strip()
    if not _DATE_RE.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def decode_line(line: str, variant: Optional[str] = None,
                diagnostics: Optional[ParseDiagnostics] = None,
                line_number: int = 0) -> Optional[TrainingDay]:
    """
    Decode one pipe line into a TrainingDay.

    Returns None (and records why in diagnostics) for lines with too few
    fields or an unparseable date. Never raises on bad input.
    """
    text = line.strip().lstrip(_LEADING_MARKUP)
    parts = [part.strip() for part in text.split(DELIMITER)]

    def drop(reason):
        if diagnostics is not None:
            diagnostics.drop(line_number, line, reason)
        logger.warning(f"Skipping malformed plan line {line_number}: {reason}")
        return None

    if len(parts) < MIN_FIELD_COUNT:
        return drop(f"expected {MIN_FIELD_COUNT} fields, found {len(parts)}")

    day_date = _parse_date(parts[0])
    if day_date is None:
        return drop(f"invalid date {parts[0]!r}")

    variant = variant or detect_variant(parts)

    if variant == MINIMAL:
        if len(parts) > MIN_FIELD_COUNT:
            # Free-text purpose may itself have contained the delimiter.
            parts = parts[:6] + [" | ".join(parts[6:])]
        _, _, session_type, distance, duration, load, purpose = parts
        session_type = _decode_text(session_type)
        if not session_type:
            return drop("missing session type")
        return TrainingDay(
            date=day_date,
            session_type=session_type,
            estimated_distance_km=_decode_number(distance, session_type),
            duration_min=_decode_number(duration, session_type),
            session_load=_decode_text(load),
            purpose=_decode_text(purpose),
        )

    if len(parts) > MIN_FIELD_COUNT:
        return drop(f"expected {MIN_FIELD_COUNT} fields, found {len(parts)}")
    _, session_type, breakdown, paces, distance, avg_pace, moving_time = parts
    session_type = _decode_text(session_type)
    if not session_type:
        return drop("missing session type")
    return TrainingDay(
        date=day_date,
        session_type=session_type,
        mileage_breakdown=_decode_text(breakdown),
        pace_targets=_decode_text(paces),
        estimated_distance_km=_decode_number(distance, session_type),
        estimated_avg_pace=_decode_text(avg_pace),
        estimated_moving_time=_decode_moving_time(moving_time),
    )
