from datetime import date

from runcoach.plans import blocks
from runcoach.plans.parser import (
    FORMAT_DAY_BLOCKS,
    FORMAT_DAY_HEADERS,
    FORMAT_PIPE,
    FORMAT_PIPE_EXTENDED,
    FORMAT_TEXT,
    detect_format,
    parse_day_header_document,
    parse_pipe_document,
    parse_plan_text,
)
from conftest import EXTENDED_PLAN, MINIMAL_PLAN

DAY_HEADER_PLAN = """TRAINING PLAN OVERVIEW
Build gradually towards race day.

DAY-BY-DAY SCHEDULE
Day 1
Date: 2025-09-04
Workout type: Easy Run
Distance: 5 miles
Duration: 45 minutes
Detailed description: Keep it conversational.
Stay relaxed on the hills.
Finish with four strides.

Day 2
Date: 2025-09-05
Workout type: Rest
Distance: 0 km
Duration: N/A
Details: Full rest.

ADDITIONAL GUIDANCE
Sleep well.
"""


def test_minimal_pipe_document_skips_prose():
    result = parse_plan_text(MINIMAL_PLAN)
    assert result.format == FORMAT_PIPE
    assert [d.session_type for d in result.days] == ["Easy Run", "Rest", "Long Run"]
    assert result.diagnostics.dropped_count == 0


def test_extended_pipe_document_uses_header_tag():
    result = parse_plan_text(EXTENDED_PLAN)
    assert result.format == FORMAT_PIPE_EXTENDED
    assert len(result.days) == 3
    assert result.days[2].mileage_breakdown == "2km wu, 5km tempo, 1km cd"
    assert result.days[1].estimated_moving_time is None


def test_header_row_is_skipped():
    text = "DATE|DAY_OF_WEEK|SESSION_TYPE|DISTANCE_KM|DURATION_MIN|SESSION_LOAD|PURPOSE\n" + MINIMAL_PLAN
    result = parse_pipe_document(text)
    assert len(result.days) == 3
    assert result.diagnostics.dropped_count == 0


def test_truncated_last_line_is_the_same_as_no_last_line():
    lines = MINIMAL_PLAN.strip().splitlines()
    without_last = "\n".join(lines[:-1])
    truncated = without_last + "\n2025-09-06|Sat|Long Ru"

    full = parse_plan_text(without_last)
    cut = parse_plan_text(truncated)
    assert cut.days == full.days
    assert cut.diagnostics.dropped_count == 1


def test_day_order_is_source_order():
    text = "2025-09-06|Sat|Long Run|18|110|High|Endurance\n2025-09-04|Thu|Easy Run|8|45|Medium|Base\n"
    days = parse_plan_text(text).days
    assert [d.date for d in days] == [date(2025, 9, 6), date(2025, 9, 4)]


def test_day_header_document():
    result = parse_plan_text(DAY_HEADER_PLAN)
    assert result.format == FORMAT_DAY_HEADERS
    assert len(result.days) == 2

    first, second = result.days
    assert first.session_type == "Easy Run"
    assert first.estimated_distance_km == 8.05
    assert first.duration_min == 45.0
    assert first.description == "Keep it conversational. Stay relaxed on the hills. Finish with four strides."

    assert second.is_rest
    assert second.estimated_distance_km == 0.0
    assert second.description == "Full rest."


def test_description_stops_at_next_day_header():
    text = (
        "Day 1\nDate: 2025-09-04\nWorkout type: Easy Run\n"
        "Detailed description: line one\nline two\nline three\n"
        "Day 2\nDate: 2025-09-05\nWorkout type: Rest\n"
    )
    days = parse_day_header_document(text).days
    assert days[0].description == "line one line two line three"
    assert days[1].description is None


def test_day_block_without_date_is_dropped():
    text = "Day 1\nWorkout type: Easy Run\n\nDay 2\nDate: 2025-09-05\nWorkout type: Rest\n"
    result = parse_day_header_document(text)
    assert [d.date for d in result.days] == [date(2025, 9, 5)]
    assert result.diagnostics.dropped_count == 1


def test_canonical_document_is_detected():
    days = parse_plan_text(MINIMAL_PLAN).days
    document = blocks.render_document(days)
    assert detect_format(document) == FORMAT_DAY_BLOCKS
    assert parse_plan_text(document).days == days


def test_unstructured_text_yields_no_days():
    result = parse_plan_text("Run a lot. Rest sometimes.")
    assert result.format == FORMAT_TEXT
    assert result.days == []


def test_empty_text():
    assert parse_plan_text("").days == []
    assert parse_plan_text(None).days == []


def test_pipe_in_prose_falls_back_to_day_headers():
    text = "Tips: easy | hard balance\n" + DAY_HEADER_PLAN
    result = parse_plan_text(text)
    assert result.format == FORMAT_DAY_HEADERS
    assert len(result.days) == 2


def test_section_words_inside_a_description_do_not_end_the_day():
    text = (
        "Day 1\nDate: 2025-09-04\nWorkout type: Easy Run\n"
        "Detailed description: Keep it easy.\n"
        "Weekly structure stays easy until the taper.\n"
        "## Weekly Structure:\n"
        "Three runs a week.\n"
    )
    days = parse_day_header_document(text).days
    assert len(days) == 1
    assert days[0].description == "Keep it easy. Weekly structure stays easy until the taper."
