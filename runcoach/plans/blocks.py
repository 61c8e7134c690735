# runcoach/plans/blocks.py

"""
Canonical plan document: a format header followed by sentinel-delimited
day blocks.

    #PLAN-FORMAT: day-blocks/1
    ===DAY_START===
    date: 2025-09-04

    WORKOUT OVERVIEW
    training_session: Easy Run
    ...
    detailed_fields_generated: false
    ===DAY_END===

Splitting on the start sentinel and joining back reproduces the input
exactly, so one block can be replaced without touching any other byte.
"""
import logging
from datetime import date
from typing import Dict, List, Optional, Tuple

from runcoach.plans.models import (
    COLUMN_NAMES,
    FLOAT_FIELDS,
    INTEGER_FIELDS,
    ParseDiagnostics,
    TrainingDay,
    content_fields,
)

logger = logging.getLogger(__name__)

FORMAT_HEADER_PREFIX = "#PLAN-FORMAT:"
DAY_BLOCKS_FORMAT = "day-blocks/1"
DAY_START = "===DAY_START==="
DAY_END = "===DAY_END==="

ABSENT_VALUES = {"", "n/a", "not specified", "unknown"}

SECTIONS = (
    ("WORKOUT OVERVIEW", ("session_type", "purpose", "session_load", "description")),
    ("WORKOUT STRUCTURE", ("mileage_breakdown", "pace_targets", "heart_rate_zones")),
    ("TRAINING NOTES", ("notes",)),
    ("NUTRITION & RECOVERY", ("what_to_eat_drink", "additional_training", "recovery_training")),
    ("ESTIMATED METRICS", (
        "estimated_distance_km",
        "duration_min",
        "estimated_avg_pace",
        "estimated_moving_time",
        "estimated_elevation_gain_m",
        "estimated_avg_power_w",
        "estimated_cadence_spm",
        "estimated_calories",
    )),
    ("DAILY NUTRITION", ("daily_nutrition_advice",)),
)

# Block label -> TrainingDay attribute
_ATTRIBUTES = {COLUMN_NAMES.get(name, name): name for name in content_fields()}


def format_header(fmt: str) -> str:
    return f"{FORMAT_HEADER_PREFIX} {fmt}"


def read_format_header(text: str) -> Optional[str]:
    """Return the declared format tag from the first non-blank line, if any."""
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        if stripped.startswith(FORMAT_HEADER_PREFIX):
            return stripped[len(FORMAT_HEADER_PREFIX):].strip()
        return None
    return None


def has_day_blocks(text: str) -> bool:
    return DAY_START in text


def clean_value(value: Optional[str]) -> Optional[str]:
    """
    Free text as a block stores it: one line, single spaces, no day
    sentinels. Placeholders such as "N/A" read as absent (None).

    Anything that becomes a training_days row goes through here first, so
    re-parsing the document gives back the row's values.
    """
    if value is None:
        return None
    text = str(value)
    while DAY_START in text or DAY_END in text:
        text = text.replace(DAY_START, " ").replace(DAY_END, " ")
    text = " ".join(text.split())
    if text.startswith(FORMAT_HEADER_PREFIX):
        text = text[len(FORMAT_HEADER_PREFIX):].strip()
    if text.lower() in ABSENT_VALUES:
        return None
    return text


def _format_value(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    return clean_value(value) or ""


def render_block(day: TrainingDay) -> str:
    """Render the body that sits between DAY_START and DAY_END."""
    lines = ["", f"date: {day.date.isoformat()}"]
    for heading, names in SECTIONS:
        present = []
        for name in names:
            value = getattr(day, name)
            formatted = _format_value(value) if value is not None else ""
            if formatted:
                present.append((name, formatted))
        if not present:
            continue
        lines.append("")
        lines.append(heading)
        for name, formatted in present:
            lines.append(f"{COLUMN_NAMES.get(name, name)}: {formatted}")
    lines.append("")
    lines.append(f"{COLUMN_NAMES['detail_fields_generated']}: {_format_value(day.detail_fields_generated)}")
    lines.append("")
    return "\n".join(lines)


def render_document(days: List[TrainingDay], preamble: str = "") -> str:
    parts = [format_header(DAY_BLOCKS_FORMAT), "\n"]
    if preamble.strip():
        parts.append(preamble.strip() + "\n")
    for day in days:
        parts.append(f"{DAY_START}{render_block(day)}{DAY_END}\n")
    return "".join(parts)


def split_document(text: str) -> Tuple[str, List[str]]:
    """
    Split into (preamble, segments). Each segment is everything after one
    DAY_START up to the next, so DAY_START.join([preamble] + segments) == text.
    """
    pieces = text.split(DAY_START)
    return pieces[0], pieces[1:]


def join_document(preamble: str, segments: List[str]) -> str:
    return DAY_START.join([preamble] + segments)


def block_body(segment: str) -> str:
    return segment.split(DAY_END, 1)[0]


def splice_block(text: str, index: int, new_body: str) -> str:
    """
    Replace the body of block `index`, keeping every other segment and any
    text after the block's end marker unchanged.
    """
    preamble, segments = split_document(text)
    if index < 0 or index >= len(segments):
        raise IndexError(f"Day {index + 1} not found in plan ({len(segments)} days)")
    segment = segments[index]
    if DAY_END in segment:
        trailing = segment.split(DAY_END, 1)[1]
    else:
        trailing = "\n"
    segments = list(segments)
    segments[index] = f"{new_body}{DAY_END}{trailing}"
    return join_document(preamble, segments)


def parse_block_fields(body: str) -> Dict[str, str]:
    """Collect `label: value` lines; section headings and prose are ignored."""
    values = {}
    for line in body.splitlines():
        stripped = line.strip()
        label, sep, value = stripped.partition(": ")
        if not sep:
            if stripped.endswith(":") and " " not in stripped:
                values[stripped[:-1]] = ""
            continue
        if " " in label:
            continue
        values[label] = value.strip()
    return values


def _coerce(attribute: str, value: str):
    value = clean_value(value)
    if value is None:
        return None
    if attribute == "detail_fields_generated":
        return value.lower() == "true"
    if attribute in FLOAT_FIELDS:
        try:
            return float(value)
        except ValueError:
            return None
    if attribute in INTEGER_FIELDS:
        try:
            return int(value)
        except ValueError:
            return None
    return value


def day_from_block(body: str, diagnostics: Optional[ParseDiagnostics] = None,
                   block_number: int = 0) -> Optional[TrainingDay]:
    raw = parse_block_fields(body)
    kwargs = {}
    for label, value in raw.items():
        attribute = _ATTRIBUTES.get(label)
        if attribute is None:
            continue
        if attribute == "date":
            try:
                kwargs["date"] = date.fromisoformat(value.strip()[:10])
            except ValueError:
                pass
            continue
        coerced = _coerce(attribute, value)
        if coerced is not None:
            kwargs[attribute] = coerced

    if "date" not in kwargs or not kwargs.get("session_type"):
        reason = "missing date" if "date" not in kwargs else "missing training_session"
        if diagnostics is not None:
            diagnostics.drop(block_number, body.strip()[:200], reason)
        logger.warning(f"Skipping day block {block_number}: {reason}")
        return None
    return TrainingDay(**kwargs)


def parse_day_blocks(text: str, diagnostics: Optional[ParseDiagnostics] = None) -> List[TrainingDay]:
    _, segments = split_document(text)
    days = []
    for index, segment in enumerate(segments):
        day = day_from_block(block_body(segment), diagnostics, block_number=index)
        if day is not None:
            days.append(day)
    return days
