# runcoach/plans/parser.py

"""
Plan document parsing.

Model output is untrusted: every decoder drops what it cannot read (and
records it in ParseDiagnostics) instead of raising. Days come back in
source order.
"""
import logging
import re
from datetime import date
from typing import Optional

from runcoach.plans import blocks
from runcoach.plans.codec import DELIMITER, EXTENDED, MINIMAL, decode_line
from runcoach.plans.models import ParseDiagnostics, ParseResult, TrainingDay, is_rest_session

logger = logging.getLogger(__name__)

FORMAT_PIPE = "pipe"
FORMAT_PIPE_MINIMAL = "pipe-minimal/1"
FORMAT_PIPE_EXTENDED = "pipe-extended/1"
FORMAT_DAY_HEADERS = "day-headers"
FORMAT_DAY_BLOCKS = blocks.DAY_BLOCKS_FORMAT
FORMAT_TEXT = "text"

_PIPE_VARIANTS = {
    FORMAT_PIPE_MINIMAL: MINIMAL,
    FORMAT_PIPE_EXTENDED: EXTENDED,
}

# "Day N" block format
_DAY_HEADER_RE = re.compile(r"^[#*\s]*Day\s+(\d+)\b")
_LABELS = {
    "Date: ": "date",
    "Workout type: ": "session_type",
    "Distance: ": "distance",
    "Duration: ": "duration",
    "Detailed description: ": "description",
    "Details: ": "description",
}
_DESCRIPTION_LABELS = ("Detailed description:", "Details:")
_TERMINAL_SENTINELS = ("ADDITIONAL GUIDANCE", "TRAINING PLAN OVERVIEW", "WEEKLY STRUCTURE", "DAY-BY-DAY SCHEDULE")
_BULLETS = "-*• \t"
_ISO_DATE_RE = re.compile(r"(\d{4}-\d{2}-\d{2})")
_NUMBER_RE = re.compile(r"(\d+(?:\.\d+)?)")
_MILES_RE = re.compile(r"\bmi(?:les?)?\b", re.IGNORECASE)
_MINUTES_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(?:min|minutes?)\b", re.IGNORECASE)
_HOURS_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(?:h|hr|hrs|hours?)\b", re.IGNORECASE)

KM_PER_MILE = 1.60934


def parse_pipe_document(text: str, variant: Optional[str] = None,
                        diagnostics: Optional[ParseDiagnostics] = None) -> ParseResult:
    """
    Parse one-day-per-line pipe text. Lines without a delimiter are prose
    and ignored; column header rows are skipped.
    """
    diagnostics = diagnostics if diagnostics is not None else ParseDiagnostics()
    declared = blocks.read_format_header(text or "")
    if variant is None and declared in _PIPE_VARIANTS:
        variant = _PIPE_VARIANTS[declared]

    days = []
    for number, line in enumerate((text or "").splitlines(), start=1):
        if DELIMITER not in line:
            continue
        first = line.strip().lstrip(_BULLETS).split(DELIMITER, 1)[0].strip().upper()
        if first == "DATE":
            continue
        day = decode_line(line, variant=variant, diagnostics=diagnostics, line_number=number)
        if day is not None:
            days.append(day)

    fmt = declared if declared in _PIPE_VARIANTS else FORMAT_PIPE
    return ParseResult(days=days, format=fmt, diagnostics=diagnostics)


def _label_of(line: str):
    for prefix, name in _LABELS.items():
        if line.startswith(prefix):
            return name, line[len(prefix):].strip()
        if line == prefix.rstrip():
            return name, ""
    return None, None


def _is_terminal(line: str) -> bool:
    """A section heading on a line of its own, e.g. "## WEEKLY STRUCTURE:"."""
    return line.strip(" #*:").upper() in _TERMINAL_SENTINELS


def _is_boundary(line: str) -> bool:
    if _DAY_HEADER_RE.match(line):
        return True
    if _is_terminal(line):
        return True
    label, _ = _label_of(line.lstrip(_BULLETS))
    return label is not None


def _distance_km(value: str, session_type: str) -> Optional[float]:
    match = _NUMBER_RE.search(value or "")
    if not match:
        return None
    km = float(match.group(1))
    if _MILES_RE.search(value):
        km = round(km * KM_PER_MILE, 2)
    if km == 0 and not is_rest_session(session_type):
        return None
    return km


def _duration_min(value: str) -> Optional[float]:
    total = 0.0
    hours = _HOURS_RE.search(value or "")
    minutes = _MINUTES_RE.search(value or "")
    if hours:
        total += float(hours.group(1)) * 60
    if minutes:
        total += float(minutes.group(1))
    return total or None


def _flush(current, diagnostics, block_number) -> Optional[TrainingDay]:
    if current is None:
        return None
    raw_date = current.get("date")
    session_type = blocks.clean_value(current.get("session_type"))
    day_date = None
    if raw_date:
        match = _ISO_DATE_RE.search(raw_date)
        if match:
            try:
                day_date = date.fromisoformat(match.group(1))
            except ValueError:
                day_date = None
    if day_date is None or not session_type:
        reason = "missing or invalid date" if day_date is None else "missing workout type"
        diagnostics.drop(block_number, f"Day {current.get('number')}", reason)
        logger.warning(f"Skipping Day {current.get('number')} block: {reason}")
        return None

    duration = blocks.clean_value(current.get("duration"))
    return TrainingDay(
        date=day_date,
        session_type=session_type,
        estimated_distance_km=_distance_km(current.get("distance"), session_type),
        duration_min=_duration_min(duration),
        estimated_moving_time=duration,
        description=blocks.clean_value(" ".join(current.get("description_parts", []))),
    )


def parse_day_header_document(text: str, diagnostics: Optional[ParseDiagnostics] = None) -> ParseResult:
    """
    Parse the "Day N" block format: a header line per day followed by
    `Label: value` lines. A description keeps consuming following lines
    until another label, a new day header, a section sentinel or the end.
    """
    diagnostics = diagnostics if diagnostics is not None else ParseDiagnostics()
    lines = (text or "").splitlines()
    days = []
    current = None
    i = 0
    while i < len(lines):
        line = lines[i].strip()
        header = _DAY_HEADER_RE.match(line)
        if header:
            day = _flush(current, diagnostics, i + 1)
            if day is not None:
                days.append(day)
            current = {"number": int(header.group(1))}
            i += 1
            continue

        if current is None:
            i += 1
            continue

        if _is_terminal(line):
            day = _flush(current, diagnostics, i + 1)
            if day is not None:
                days.append(day)
            current = None
            i += 1
            continue

        label, value = _label_of(line.lstrip(_BULLETS))
        if label == "description":
            parts = [value] if value else []
            i += 1
            while i < len(lines):
                following = lines[i].strip()
                if following and _is_boundary(following):
                    break
                if following:
                    parts.append(following)
                i += 1
            current["description_parts"] = parts
            continue
        if label is not None:
            current[label] = value
        i += 1

    day = _flush(current, diagnostics, len(lines))
    if day is not None:
        days.append(day)
    return ParseResult(days=days, format=FORMAT_DAY_HEADERS, diagnostics=diagnostics)


def parse_day_blocks_document(text: str, diagnostics: Optional[ParseDiagnostics] = None) -> ParseResult:
    diagnostics = diagnostics if diagnostics is not None else ParseDiagnostics()
    days = blocks.parse_day_blocks(text or "", diagnostics)
    return ParseResult(days=days, format=FORMAT_DAY_BLOCKS, diagnostics=diagnostics)


def detect_format(text: str) -> str:
    declared = blocks.read_format_header(text or "")
    if declared == FORMAT_DAY_BLOCKS or blocks.has_day_blocks(text or ""):
        return FORMAT_DAY_BLOCKS
    if declared in _PIPE_VARIANTS:
        return declared
    if any(DELIMITER in line for line in (text or "").splitlines()):
        return FORMAT_PIPE
    if any(_DAY_HEADER_RE.match(line.strip()) for line in (text or "").splitlines()):
        return FORMAT_DAY_HEADERS
    return FORMAT_TEXT


def parse_plan_text(text: str, fmt: Optional[str] = None) -> ParseResult:
    """
    Parse a plan document in any supported format.

    With no explicit format: a declared header wins, then sentinel blocks,
    then pipe lines (denser, less ambiguous), then "Day N" blocks.
    """
    fmt = fmt or detect_format(text)
    if fmt == FORMAT_DAY_BLOCKS:
        return parse_day_blocks_document(text)
    if fmt in (FORMAT_PIPE, FORMAT_PIPE_MINIMAL, FORMAT_PIPE_EXTENDED):
        result = parse_pipe_document(text, variant=_PIPE_VARIANTS.get(fmt))
        if result.days or fmt != FORMAT_PIPE:
            return result
        # Delimiters were only in prose; try the block format before giving up.
        fallback = parse_day_header_document(text)
        if fallback.days:
            return fallback
        return result
    if fmt == FORMAT_DAY_HEADERS:
        return parse_day_header_document(text)
    return ParseResult(days=[], format=FORMAT_TEXT)
