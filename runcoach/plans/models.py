# runcoach/plans/models.py

"""
Training plan records.

A TrainingDay is an immutable value: parsers build new ones, the merger
returns a replaced copy, projectors only read. Free-text pace and duration
fields stay strings; parsed seconds are exposed as properties.
"""
from dataclasses import dataclass, field, fields, replace, asdict
from datetime import date
from typing import Any, Dict, List, Optional

from runcoach.plans.durations import parse_duration, parse_pace


# Attribute name -> training_days column name, where they differ.
COLUMN_NAMES = {
    "session_type": "training_session",
    "estimated_avg_pace": "estimated_avg_pace_min_per_km",
    "detail_fields_generated": "detailed_fields_generated",
}

# Fields filled in by the enhancement step.
ENHANCED_FIELDS = (
    "heart_rate_zones",
    "notes",
    "what_to_eat_drink",
    "additional_training",
    "recovery_training",
    "estimated_elevation_gain_m",
    "estimated_avg_power_w",
    "estimated_cadence_spm",
    "estimated_calories",
    "daily_nutrition_advice",
)

INTEGER_FIELDS = (
    "estimated_elevation_gain_m",
    "estimated_avg_power_w",
    "estimated_cadence_spm",
    "estimated_calories",
)

FLOAT_FIELDS = ("estimated_distance_km", "duration_min")


@dataclass(frozen=True)
class TrainingDay:
    date: date
    session_type: str
    mileage_breakdown: Optional[str] = None
    pace_targets: Optional[str] = None
    estimated_distance_km: Optional[float] = None
    estimated_avg_pace: Optional[str] = None
    estimated_moving_time: Optional[str] = None
    duration_min: Optional[float] = None
    session_load: Optional[str] = None
    purpose: Optional[str] = None
    description: Optional[str] = None
    heart_rate_zones: Optional[str] = None
    notes: Optional[str] = None
    what_to_eat_drink: Optional[str] = None
    additional_training: Optional[str] = None
    recovery_training: Optional[str] = None
    estimated_elevation_gain_m: Optional[int] = None
    estimated_avg_power_w: Optional[int] = None
    estimated_cadence_spm: Optional[int] = None
    estimated_calories: Optional[int] = None
    daily_nutrition_advice: Optional[str] = None
    detail_fields_generated: bool = False
    # Storage identity, not part of the day's content.
    id: Optional[str] = field(default=None, compare=False)

    @property
    def is_rest(self) -> bool:
        return is_rest_session(self.session_type)

    @property
    def moving_time_seconds(self) -> Optional[int]:
        return parse_duration(self.estimated_moving_time)

    @property
    def avg_pace_seconds_per_km(self) -> Optional[int]:
        return parse_pace(self.estimated_avg_pace)

    @property
    def has_details(self) -> bool:
        return self.detail_fields_generated

    def with_fields(self, **changes) -> "TrainingDay":
        return replace(self, **changes)

    def to_row(self, plan_id: str, user_id: str) -> Dict[str, Any]:
        """Serialize to a training_days row."""
        row = {
            "training_plan_id": plan_id,
            "user_id": user_id,
        }
        for f in fields(self):
            if f.name == "id":
                continue
            value = getattr(self, f.name)
            if f.name == "date":
                value = value.isoformat()
            row[COLUMN_NAMES.get(f.name, f.name)] = value
        return row

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "TrainingDay":
        kwargs = {}
        for f in fields(cls):
            column = COLUMN_NAMES.get(f.name, f.name)
            if column not in row:
                continue
            value = row[column]
            if f.name == "date" and isinstance(value, str):
                value = date.fromisoformat(value[:10])
            elif f.name in FLOAT_FIELDS and value is not None:
                value = float(value)
            elif f.name in INTEGER_FIELDS and value is not None:
                value = int(value)
            elif f.name == "detail_fields_generated":
                value = bool(value)
            kwargs[f.name] = value
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["date"] = self.date.isoformat()
        data["moving_time_seconds"] = self.moving_time_seconds
        data["avg_pace_seconds_per_km"] = self.avg_pace_seconds_per_km
        return data


def is_rest_session(session_type: Optional[str]) -> bool:
    return "rest" in (session_type or "").lower()


def content_fields() -> List[str]:
    """Field names that make up a day's content (everything except storage id)."""
    return [f.name for f in fields(TrainingDay) if f.name != "id"]


@dataclass(frozen=True)
class TrainingPlan:
    id: str
    user_id: str
    raw_text: str
    version: int = 1
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    format: str = "text"
    is_current: bool = True
    rows_stale: bool = False

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "TrainingPlan":
        return cls(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            raw_text=row.get("raw_text") or "",
            version=int(row.get("version") or 1),
            start_date=_to_date(row.get("start_date")),
            end_date=_to_date(row.get("end_date")),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
            format=row.get("format") or "text",
            is_current=bool(row.get("is_current", True)),
            rows_stale=bool(row.get("rows_stale", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "version": self.version,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "format": self.format,
            "is_current": self.is_current,
            "rows_stale": self.rows_stale,
        }


def _to_date(value) -> Optional[date]:
    if not value:
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


@dataclass
class MalformedLine:
    line_number: int
    text: str
    reason: str


@dataclass
class ParseDiagnostics:
    """Side channel for input the parsers dropped."""
    dropped: List[MalformedLine] = field(default_factory=list)

    @property
    def dropped_count(self) -> int:
        return len(self.dropped)

    def drop(self, line_number: int, text: str, reason: str) -> None:
        self.dropped.append(MalformedLine(line_number, text, reason))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dropped_count": self.dropped_count,
            "dropped": [asdict(d) for d in self.dropped],
        }


@dataclass
class ParseResult:
    days: List[TrainingDay]
    format: str
    diagnostics: ParseDiagnostics = field(default_factory=ParseDiagnostics)

    def __len__(self):
        return len(self.days)
