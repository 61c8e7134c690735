from datetime import date

import pytest

from runcoach.plans import views
from runcoach.plans.errors import PlanNotFound
from runcoach.plans.models import TrainingDay


def _days():
    return [
        TrainingDay(date=date(2025, 9, 29), session_type="Easy Run", estimated_distance_km=6.0),
        TrainingDay(date=date(2025, 9, 30), session_type="Rest"),
        TrainingDay(date=date(2025, 10, 1), session_type="Track Intervals", heart_rate_zones="Z4",
                    detail_fields_generated=True),
        TrainingDay(date=date(2025, 10, 7), session_type="Long Run"),
    ]


@pytest.mark.parametrize("session_type, expected", [
    ("Rest", ("rest", "Easy")),
    ("Easy Run", ("easy", "Easy")),
    ("Recovery jog", ("easy", "Easy")),
    ("Tempo Run", ("tempo", "Hard")),
    ("Threshold reps", ("tempo", "Hard")),
    ("Speed work", ("interval", "Hard")),
    ("Track Intervals", ("interval", "Hard")),
    ("LONG RUN", ("long", "Moderate")),
    ("Cross Training", ("other", "Moderate")),
    (None, ("other", "Moderate")),
])
def test_classify_session(session_type, expected):
    assert views.classify_session(session_type) == expected


def test_minimal_day_gets_a_call_to_action():
    projected = views.project_day(_days()[0], 0)
    assert projected["details_available"] is False
    assert projected["call_to_action"] == "generate_details"
    assert projected["heart_rate_zones"] is None
    assert projected["day_index"] == 0


def test_enhanced_day_has_no_call_to_action():
    projected = views.project_day(_days()[2], 2)
    assert projected["details_available"] is True
    assert projected["call_to_action"] is None


def test_calendar_lists_every_date_of_each_month():
    view = views.calendar_view(_days())
    assert [m["month"] for m in view["months"]] == ["2025-09", "2025-10"]

    september, october = view["months"]
    assert len(september["days"]) == 30
    assert len(october["days"]) == 31
    assert september["days"][28]["workout"]["session_type"] == "Easy Run"
    assert september["days"][0]["workout"] is None
    assert october["days"][0]["workout"]["day_index"] == 2


def test_calendar_single_month():
    view = views.calendar_view(_days(), month="2025-10")
    assert [m["month"] for m in view["months"]] == ["2025-10"]


def test_week_view():
    days = _days()
    first = views.week_view(days, 0)
    assert first["total_weeks"] == 2
    assert first["start_date"] == "2025-09-29"
    assert [d["workout"]["session_type"] if d["workout"] else None for d in first["days"]] == [
        "Easy Run", "Rest", "Track Intervals", None, None, None, None,
    ]
    second = views.week_view(days, 1)
    assert second["days"][1]["workout"]["session_type"] == "Long Run"

    with pytest.raises(PlanNotFound):
        views.week_view(days, 2)


def test_week_view_counts_from_plan_start():
    view = views.week_view(_days(), 0, plan_start=date(2025, 9, 25))
    assert view["days"][4]["workout"]["session_type"] == "Easy Run"
    assert view["total_weeks"] == 2


def test_empty_plan_renders_empty_state():
    assert views.calendar_view([])["empty"] is True
    assert views.week_view([], 0)["empty"] is True
    text = views.text_view([], "")
    assert text["empty"] is True
    assert text["days"] == []


def test_text_view_classifies_lines():
    raw = "TRAINING PLAN OVERVIEW\nWeek 1\n2025-09-29 Easy run\nKey points:\n- Hydrate\n\nJust enjoy it."
    lines = views.text_view(_days(), raw)["lines"]
    assert [line["kind"] for line in lines] == [
        "section", "week", "day", "subsection", "bullet", "blank", "paragraph",
    ]


def test_projection_does_not_touch_records():
    days = _days()
    snapshot = list(days)
    view = views.calendar_view(days)
    view["months"][0]["days"][28]["workout"]["session_type"] = "changed"
    assert days == snapshot
    assert days[0].session_type == "Easy Run"


def test_flat_view_is_chronological_and_keeps_document_index():
    days = list(reversed(_days()))
    flat = views.flat_view(days)
    assert [d["date"] for d in flat] == ["2025-09-29", "2025-09-30", "2025-10-01", "2025-10-07"]
    assert flat[0]["day_index"] == 3
