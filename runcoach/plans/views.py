# runcoach/plans/views.py

"""
Read-side projections of training days for the calendar, week and text
views. Input records are never modified; every projection builds new
dicts. An empty day list yields an empty state, never an error.
"""
import calendar
import math
import re
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Tuple

from runcoach.plans import blocks
from runcoach.plans.errors import PlanNotFound
from runcoach.plans.models import TrainingDay

CALL_TO_ACTION = "generate_details"
EMPTY_MESSAGE = "No training plan data yet."

_SECTION_HEADINGS = (
    "TRAINING PLAN OVERVIEW",
    "WEEKLY STRUCTURE",
    "DAY-BY-DAY SCHEDULE",
    "ADDITIONAL GUIDANCE",
) + tuple(heading for heading, _ in blocks.SECTIONS)
_WEEK_RE = re.compile(r"^Week \d+", re.IGNORECASE)
_DAY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}")
_SUBSECTION_RE = re.compile(r"^[A-Z][^:]*:$")
_BULLETS = ("- ", "• ", "* ")


def classify_session(session_type: Optional[str]) -> Tuple[str, str]:
    """Return (category, intensity) for a session type by keyword."""
    kind = (session_type or "").lower()
    if "rest" in kind:
        return "rest", "Easy"
    if "easy" in kind or "recovery" in kind:
        return "easy", "Easy"
    if "tempo" in kind or "threshold" in kind:
        return "tempo", "Hard"
    if "interval" in kind or "speed" in kind or "track" in kind:
        return "interval", "Hard"
    if "long" in kind:
        return "long", "Moderate"
    return "other", "Moderate"


def project_day(day: TrainingDay, day_index: int) -> Dict[str, Any]:
    category, intensity = classify_session(day.session_type)
    projected = day.to_dict()
    projected.update({
        "day_index": day_index,
        "category": category,
        "intensity": intensity,
        "details_available": day.has_details,
        "call_to_action": None if day.has_details else CALL_TO_ACTION,
    })
    return projected


def _indexed(days: List[TrainingDay]) -> Dict[date, Dict[str, Any]]:
    """Project every day, keyed by date. The first day wins on duplicate dates."""
    by_date = {}
    for index, day in enumerate(days):
        if day.date not in by_date:
            by_date[day.date] = project_day(day, index)
    return by_date


def flat_view(days: List[TrainingDay]) -> List[Dict[str, Any]]:
    projected = [project_day(day, index) for index, day in enumerate(days)]
    return sorted(projected, key=lambda d: d["date"])


def calendar_view(days: List[TrainingDay], month: Optional[str] = None) -> Dict[str, Any]:
    """
    Group days by YYYY-MM. Each month lists every calendar date, with the
    workout for that date or None.
    """
    if not days:
        return {"months": [], "empty": True, "message": EMPTY_MESSAGE}

    by_date = _indexed(days)
    months = sorted({d.strftime("%Y-%m") for d in by_date})
    if month:
        months = [m for m in months if m == month]

    result = []
    for key in months:
        year, number = (int(part) for part in key.split("-"))
        _, last = calendar.monthrange(year, number)
        entries = []
        for day_number in range(1, last + 1):
            current = date(year, number, day_number)
            entries.append({"date": current.isoformat(), "workout": by_date.get(current)})
        result.append({"month": key, "days": entries})
    return {"months": result, "empty": not result, "message": None if result else EMPTY_MESSAGE}


def _plan_start(days: List[TrainingDay], plan_start: Optional[date]) -> date:
    first = min(d.date for d in days)
    return min(plan_start, first) if plan_start else first


def total_weeks(days: List[TrainingDay], plan_start: Optional[date] = None) -> int:
    if not days:
        return 0
    start = _plan_start(days, plan_start)
    last = max(d.date for d in days)
    return math.ceil(((last - start).days + 1) / 7)


def week_view(days: List[TrainingDay], week: int, plan_start: Optional[date] = None) -> Dict[str, Any]:
    """Week `week` (0-based) of the plan: seven dates from plan start + 7 * week."""
    weeks = total_weeks(days, plan_start)
    if not weeks:
        return {"week": week, "total_weeks": 0, "days": [], "empty": True, "message": EMPTY_MESSAGE}
    if week < 0 or week >= weeks:
        raise PlanNotFound(f"Week {week} outside 0..{weeks - 1}", user_message="Week not found.")

    start = _plan_start(days, plan_start) + timedelta(days=7 * week)
    by_date = _indexed(days)
    entries = []
    for offset in range(7):
        current = start + timedelta(days=offset)
        entries.append({"date": current.isoformat(), "workout": by_date.get(current)})
    return {
        "week": week,
        "total_weeks": weeks,
        "start_date": start.isoformat(),
        "end_date": (start + timedelta(days=6)).isoformat(),
        "days": entries,
        "empty": False,
    }


def classify_line(line: str) -> str:
    stripped = line.strip()
    if not stripped:
        return "blank"
    if stripped.startswith(blocks.FORMAT_HEADER_PREFIX):
        return "meta"
    if stripped in (blocks.DAY_START, blocks.DAY_END):
        return "marker"
    if stripped.upper() in _SECTION_HEADINGS:
        return "section"
    if _DAY_RE.match(stripped):
        return "day"
    if _WEEK_RE.match(stripped):
        return "week"
    if _SUBSECTION_RE.match(stripped):
        return "subsection"
    if stripped.startswith(_BULLETS):
        return "bullet"
    return "paragraph"


def document_lines(raw_text: Optional[str]) -> List[Dict[str, str]]:
    return [{"kind": classify_line(line), "text": line.strip()} for line in (raw_text or "").splitlines()]


def text_view(days: List[TrainingDay], raw_text: Optional[str]) -> Dict[str, Any]:
    lines = document_lines(raw_text)
    return {
        "days": flat_view(days),
        "lines": lines,
        "empty": not days and not any(line["kind"] != "blank" for line in lines),
        "message": EMPTY_MESSAGE if not days else None,
    }
