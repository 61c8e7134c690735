# runcoach/plans/service.py

import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from runcoach.plans import store
from runcoach.plans.errors import (
    EnhancementFailed,
    EnhancementTimeout,
    GenerationFailed,
    GenerationTimeout,
    IncompleteProfile,
    PlanNotFound,
    StalePlanReference,
    StoreInconsistency,
    WriteConflict,
)
from runcoach.plans.lifecycle import DayStatus, tracker
from runcoach.plans.models import ParseResult, TrainingDay, TrainingPlan
from runcoach.plans.parser import parse_plan_text
from runcoach.supabase_client import supabase
from runcoach.utils.llm_utils import LLMError, LLMTimeout, generate_chat_response
from runcoach.utils.prompts import (
    COACH_GENERATE_PLAN_PROMPT,
    COACH_SYSTEM_PROMPT,
    DAY_DETAILS_PROMPT,
    DAY_DETAILS_SYSTEM_PROMPT,
    RUNNER_PROFILE_TEMPLATE,
)
from runcoach.config import Config

logger = logging.getLogger(__name__)

PROFILES_TABLE = "profiles"

MANDATORY_PROFILE_FIELDS = (
    "goal",
    "race_date",
    "race_distance_km",
    "current_weekly_mileage",
    "days_per_week",
)

TRAINING_RELEVANT_FIELDS = (
    "goal",
    "race_date",
    "race_distance_km",
    "current_weekly_mileage",
    "days_per_week",
    "age",
    "height",
    "training_history",
    "injuries",
    "further_notes",
    "current_5k_time",
    "current_10k_time",
    "current_half_marathon_time",
    "current_marathon_time",
)

NOT_SPECIFIED = "Not specified"


# --- profile ---------------------------------------------------------------

def missing_profile_fields(profile: Optional[Dict[str, Any]]) -> List[str]:
    profile = profile or {}
    return [name for name in MANDATORY_PROFILE_FIELDS if not profile.get(name)]


def has_complete_profile(profile: Optional[Dict[str, Any]]) -> bool:
    return not missing_profile_fields(profile)


def training_relevant_changes(old: Optional[Dict[str, Any]], new: Optional[Dict[str, Any]]) -> List[str]:
    """Fields whose change should trigger a plan regeneration."""
    old = old or {}
    new = new or {}
    return [name for name in TRAINING_RELEVANT_FIELDS if old.get(name) != new.get(name)]


def get_profile(user_id: str) -> Optional[Dict[str, Any]]:
    response = supabase.table(PROFILES_TABLE).select("*").eq("user_id", user_id).execute()
    return response.data[0] if response.data else None


def save_profile(user_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
    updates = dict(updates)
    updates.pop("id", None)
    updates["user_id"] = user_id
    updates["updated_at"] = datetime.now(timezone.utc).isoformat()

    existing = get_profile(user_id)
    if existing:
        response = supabase.table(PROFILES_TABLE).update(updates).eq("user_id", user_id).execute()
    else:
        response = supabase.table(PROFILES_TABLE).insert(updates).execute()
    return response.data[0] if response.data else {**(existing or {}), **updates}


def _race_date(profile: Dict[str, Any]) -> Optional[date]:
    value = profile.get("race_date")
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except (TypeError, ValueError):
        return None


def format_runner_profile(profile: Dict[str, Any], today: Optional[date] = None) -> str:
    today = today or date.today()
    race_date = _race_date(profile)
    values = {
        key: profile.get(key) if profile.get(key) not in (None, "") else NOT_SPECIFIED
        for key in (
            "goal", "race_name", "race_distance_km", "race_surface", "race_date", "age",
            "gender", "height", "weight_kg", "training_history", "experience_years",
            "current_weekly_mileage", "longest_run_km", "days_per_week", "goal_pace_per_km",
            "race_results", "strength_notes", "elevation_context",
        )
    }
    values["injuries"] = profile.get("injuries") or "None reported"
    values["further_notes"] = profile.get("further_notes") or "None"
    values["days_to_race"] = (race_date - today).days if race_date else "?"
    return RUNNER_PROFILE_TEMPLATE.format(**values)


# --- language model collaborators -----------------------------------------

def generate_plan_text(profile: Dict[str, Any], today: Optional[date] = None) -> str:
    """
    Ask the model for a whole plan. The reply is untrusted text.

    Raises GenerationTimeout / GenerationFailed; never returns empty content.
    """
    today = today or date.today()
    prompt = COACH_GENERATE_PLAN_PROMPT.format(
        today=today.isoformat(),
        race_date=profile.get("race_date"),
        runner_profile=format_runner_profile(profile, today),
    )
    try:
        return generate_chat_response(
            [{"role": "user", "content": prompt}],
            system_prompt=COACH_SYSTEM_PROMPT,
            max_tokens=Config.PLAN_MAX_COMPLETION_TOKENS,
        )
    except LLMTimeout as e:
        raise GenerationTimeout(str(e))
    except LLMError as e:
        raise GenerationFailed(str(e))


def _or_na(value, suffix=""):
    if value is None or value == "":
        return NOT_SPECIFIED
    return f"{value}{suffix}"


def generate_day_enhancement(profile: Dict[str, Any], day: TrainingDay) -> str:
    prompt = DAY_DETAILS_PROMPT.format(
        runner_profile=format_runner_profile(profile or {}),
        date=day.date.isoformat(),
        session_type=day.session_type,
        distance=_or_na(day.estimated_distance_km),
        moving_time=_or_na(day.estimated_moving_time or (day.duration_min and f"{day.duration_min:g} min")),
        mileage_breakdown=_or_na(day.mileage_breakdown),
        pace_targets=_or_na(day.pace_targets),
        session_load=_or_na(day.session_load),
        purpose=_or_na(day.purpose),
    )
    try:
        return generate_chat_response(
            [{"role": "user", "content": prompt}],
            system_prompt=DAY_DETAILS_SYSTEM_PROMPT,
            max_tokens=Config.ENHANCEMENT_MAX_COMPLETION_TOKENS,
        )
    except LLMTimeout as e:
        raise EnhancementTimeout(str(e))
    except LLMError as e:
        raise EnhancementFailed(str(e))


# --- flows -----------------------------------------------------------------

def generate_plan(user_id: str, profile: Optional[Dict[str, Any]] = None,
                  today: Optional[date] = None) -> Tuple[TrainingPlan, ParseResult]:
    """
    Generate and persist a new current plan for the user.

    Nothing is written unless the model returned content.
    """
    if profile is None:
        profile = get_profile(user_id)
    missing = missing_profile_fields(profile)
    if missing:
        raise IncompleteProfile(f"Missing profile fields: {', '.join(missing)}")

    today = today or date.today()
    logger.info(f"Generating training plan for user {user_id}")
    raw_text = generate_plan_text(profile, today)

    plan, result = store.save_generated_plan(
        user_id,
        raw_text,
        start_date=today,
        end_date=_race_date(profile),
        profile_id=profile.get("id"),
    )
    logger.info(f"Plan {plan.id}: {len(result.days)} days parsed as {result.format}")
    return plan, result


def enhance_day(user_id: str, plan_id: str, day_index: int,
                profile: Optional[Dict[str, Any]] = None,
                retry: bool = False) -> Tuple[TrainingDay, DayStatus]:
    """
    Fill in the detail fields of one day.

    The model call runs without holding the plan lock; the merge is one
    guarded read-modify-write in the store.
    """
    plan = store.get_plan(plan_id, user_id)
    if not plan.is_current:
        logger.warning(f"Refusing enhancement for superseded plan {plan_id}")
        raise StalePlanReference(f"Plan {plan_id} is no longer current")

    day = store.read_day(plan, day_index)
    if day is None:
        raise PlanNotFound(f"Plan {plan_id} has no day {day_index}",
                           user_message="Training day not found.")
    if day.has_details and not retry:
        return day, tracker.state_of(plan_id, day_index, day)

    if profile is None:
        profile = get_profile(user_id) or {}

    tracker.begin(plan_id, day_index)
    try:
        response_text = generate_day_enhancement(profile, day)
        merged = store.apply_enhancement(plan_id, user_id, day_index, response_text, day_date=day.date)
    except StalePlanReference:
        tracker.forget_plan(plan_id)
        raise
    except StoreInconsistency:
        # The text carries the details; only the row copy is behind.
        tracker.succeed(plan_id, day_index)
        raise
    except (EnhancementFailed, WriteConflict) as e:
        tracker.fail(plan_id, day_index, e.detail or str(e))
        raise
    except Exception as e:
        logger.error(f"Enhancement of plan {plan_id}, day {day_index} failed unexpectedly: {e}")
        tracker.fail(plan_id, day_index, str(e))
        raise

    status = tracker.succeed(plan_id, day_index)
    logger.info(f"Enhanced plan {plan_id}, day {day_index} ({day.date})")
    return merged, status


def dismiss_day(user_id: str, plan_id: str, day_index: int) -> DayStatus:
    plan = store.get_plan(plan_id, user_id)
    tracker.dismiss(plan.id, day_index)
    return tracker.state_of(plan.id, day_index, store.read_day(plan, day_index))


def enhancement_progress(user_id: str, plan_id: str) -> Dict[str, int]:
    plan = store.get_plan(plan_id, user_id)
    days = parse_plan_text(plan.raw_text).days
    total = len(days)
    enhanced = sum(1 for d in days if d.has_details)
    return {
        "enhanced": enhanced,
        "total": total,
        "percentage": round(enhanced * 100 / total) if total else 0,
    }


def delete_plan(user_id: str, plan_id: str) -> None:
    store.delete_plan(plan_id, user_id)
    tracker.forget_plan(plan_id)
