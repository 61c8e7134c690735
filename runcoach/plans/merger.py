# runcoach/plans/merger.py

"""
Folding per-day enhancement responses into a day and its document.

Everything here is pure: (old day, response text) -> new day, or None when
the response carried nothing usable. Retrying is the caller's business.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Optional

from runcoach.plans import blocks
from runcoach.plans.models import INTEGER_FIELDS, TrainingDay

logger = logging.getLogger(__name__)

# Enhancement response label -> TrainingDay attribute. Matched case-sensitively.
ENHANCEMENT_LABELS = {
    "HEART_RATE_ZONES": "heart_rate_zones",
    "PURPOSE": "purpose",
    "SESSION_LOAD": "session_load",
    "NOTES": "notes",
    "WHAT_TO_EAT_DRINK": "what_to_eat_drink",
    "ADDITIONAL_TRAINING": "additional_training",
    "RECOVERY_TRAINING": "recovery_training",
    "ESTIMATED_ELEVATION_GAIN_M": "estimated_elevation_gain_m",
    "ESTIMATED_AVG_POWER_W": "estimated_avg_power_w",
    "ESTIMATED_CADENCE_SPM": "estimated_cadence_spm",
    "ESTIMATED_CALORIES": "estimated_calories",
    "DAILY_NUTRITION_ADVICE": "daily_nutrition_advice",
    "MILEAGE_BREAKDOWN": "mileage_breakdown",
    "PACE_TARGETS": "pace_targets",
}


def _parse_int(value: str) -> Optional[int]:
    cleaned = value.strip().replace(",", "")
    try:
        return int(cleaned)
    except ValueError:
        pass
    try:
        number = float(cleaned)
    except ValueError:
        return None
    return int(number) if number.is_integer() else None


def parse_enhancement_response(text: Optional[str]) -> Dict[str, object]:
    """
    Extract recognized `LABEL: value` lines. Unknown labels, placeholder
    values such as "N/A" and integers that don't parse are left out.
    """
    fields = {}
    for line in (text or "").splitlines():
        stripped = line.strip()
        label, sep, value = stripped.partition(":")
        if not sep or label not in ENHANCEMENT_LABELS:
            continue
        value = blocks.clean_value(value)
        if value is None:
            continue
        attribute = ENHANCEMENT_LABELS[label]
        if attribute in INTEGER_FIELDS:
            number = _parse_int(value)
            if number is None:
                logger.debug(f"Ignoring non-integer {label}: {value!r}")
                continue
            fields[attribute] = number
        else:
            fields[attribute] = value
    return fields


def merge_fields(day: TrainingDay, fields: Dict[str, object]) -> Optional[TrainingDay]:
    """Overwrite only the given fields and mark the day as enhanced."""
    if not fields:
        return None
    return day.with_fields(detail_fields_generated=True, **fields)


def merge_enhancement(day: TrainingDay, response_text: Optional[str]) -> Optional[TrainingDay]:
    """
    Merge a model response into a day. Returns None (day unchanged, flag
    untouched) when the response is empty or has no recognized label.
    """
    return merge_fields(day, parse_enhancement_response(response_text))


@dataclass
class DocumentMerge:
    text: str
    day: TrainingDay
    index: int


def day_at(text: str, index: int) -> Optional[TrainingDay]:
    _, segments = blocks.split_document(text)
    if index < 0 or index >= len(segments):
        return None
    return blocks.day_from_block(blocks.block_body(segments[index]), block_number=index)


def find_block_index(text: str, day_date) -> Optional[int]:
    _, segments = blocks.split_document(text)
    for index, segment in enumerate(segments):
        fields = blocks.parse_block_fields(blocks.block_body(segment))
        if fields.get("date", "")[:10] == day_date.isoformat():
            return index
    return None


def merge_into_document(text: str, index: int, response_text: Optional[str]) -> Optional[DocumentMerge]:
    """
    Merge a response into block `index` of a canonical document.

    Returns None when the block is missing or unreadable, or the response
    has nothing to apply; the document is then left as it was.
    """
    day = day_at(text, index)
    if day is None:
        logger.warning(f"No readable day block at index {index}")
        return None
    merged = merge_enhancement(day, response_text)
    if merged is None:
        return None
    new_text = blocks.splice_block(text, index, blocks.render_block(merged))
    return DocumentMerge(text=new_text, day=merged, index=index)
