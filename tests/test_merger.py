from datetime import date

from runcoach.plans import blocks
from runcoach.plans.merger import (
    day_at,
    find_block_index,
    merge_enhancement,
    merge_into_document,
    parse_enhancement_response,
)
from runcoach.plans.models import TrainingDay

FULL_RESPONSE = """Here are the details:
MILEAGE_BREAKDOWN: 1km warm-up, 6km easy, 1km cool-down
PACE_TARGETS: 5:45-6:00/km
HEART_RATE_ZONES: Z1-Z2
NOTES:   Relaxed shoulders, quick feet
WHAT_TO_EAT_DRINK: Banana 30 min before
ESTIMATED_ELEVATION_GAIN_M: 45
ESTIMATED_AVG_POWER_W: 210
ESTIMATED_CADENCE_SPM: 172
ESTIMATED_CALORIES: 1,050
DAILY_NUTRITION_ADVICE: Carbs at lunch
"""


def _two_day_document():
    days = [
        TrainingDay(date=date(2025, 9, 4), session_type="Easy Run", estimated_distance_km=8.0,
                    session_load="Medium", purpose="Build aerobic base"),
        TrainingDay(date=date(2025, 9, 5), session_type="Recovery Run", estimated_distance_km=5.0,
                    session_load="Low", purpose="Recovery"),
    ]
    return days, blocks.render_document(days)


def test_parse_response_recognizes_labels():
    fields = parse_enhancement_response(FULL_RESPONSE)
    assert fields["heart_rate_zones"] == "Z1-Z2"
    assert fields["notes"] == "Relaxed shoulders, quick feet"
    assert fields["estimated_cadence_spm"] == 172
    assert fields["estimated_calories"] == 1050
    assert "purpose" not in fields


def test_labels_are_case_sensitive():
    assert parse_enhancement_response("heart_rate_zones: Z2\nPurpose: base") == {}


def test_unparseable_integer_is_skipped():
    fields = parse_enhancement_response("ESTIMATED_CALORIES: about 900\nNOTES: easy")
    assert fields == {"notes": "easy"}


def test_merge_preserves_untouched_fields(easy_day):
    merged = merge_enhancement(easy_day, "PURPOSE: Aerobic endurance")
    assert merged.purpose == "Aerobic endurance"
    assert merged.session_load == easy_day.session_load
    assert merged.estimated_distance_km == easy_day.estimated_distance_km
    assert merged.detail_fields_generated is True


def test_merge_failure_leaves_the_day_alone(easy_day):
    assert merge_enhancement(easy_day, "") is None
    assert merge_enhancement(easy_day, None) is None
    assert merge_enhancement(easy_day, "Sorry, I can't help with that.") is None
    assert easy_day.detail_fields_generated is False


def test_re_enhancement_with_same_values_is_idempotent(easy_day):
    once = merge_enhancement(easy_day, FULL_RESPONSE)
    twice = merge_enhancement(once, FULL_RESPONSE)
    assert twice == once

    changed = merge_enhancement(once, "NOTES: Hills today")
    assert changed == once.with_fields(notes="Hills today")


def test_second_day_enhancement_leaves_first_day_unchanged():
    days, document = _two_day_document()
    _, before = blocks.split_document(document)

    result = merge_into_document(document, 1, "HEART_RATE_ZONES: Z1-Z2\nPURPOSE: aerobic base")
    assert result is not None
    _, after = blocks.split_document(result.text)

    assert after[0] == before[0]
    assert day_at(result.text, 0) == days[0]
    assert result.day == days[1].with_fields(
        heart_rate_zones="Z1-Z2",
        purpose="aerobic base",
        detail_fields_generated=True,
    )
    assert day_at(result.text, 1) == result.day


def test_merge_into_document_without_labels_returns_none():
    _, document = _two_day_document()
    assert merge_into_document(document, 0, "nothing useful") is None


def test_merge_into_missing_block_returns_none():
    _, document = _two_day_document()
    assert merge_into_document(document, 5, "NOTES: x") is None


def test_find_block_index_by_date():
    _, document = _two_day_document()
    assert find_block_index(document, date(2025, 9, 5)) == 1
    assert find_block_index(document, date(2025, 9, 9)) is None


def test_placeholder_values_do_not_overwrite():
    fields = parse_enhancement_response("HEART_RATE_ZONES: Z2\nADDITIONAL_TRAINING: N/A\nNOTES: not specified")
    assert fields == {"heart_rate_zones": "Z2"}


def test_day_sentinels_in_a_response_cannot_split_the_block():
    days, document = _two_day_document()
    merged = merge_into_document(document, 0, f"NOTES: end with {blocks.DAY_START} marker {blocks.DAY_END}")

    _, segments = blocks.split_document(merged.text)
    assert len(segments) == 2
    assert merged.day.notes == "end with marker"
    assert day_at(merged.text, 0) == merged.day
    assert day_at(merged.text, 0).detail_fields_generated is True
    assert day_at(merged.text, 1) == days[1]
