# runcoach/plans/store.py

"""
Plan persistence.

A plan lives twice: the raw document in training_plans.raw_text (source of
truth) and one training_days row per parsed day (a derived cache). Text is
always written first. Writes to a plan's text are compare-and-swap on its
version column, and within this process also serialized per plan.
"""
import logging
import threading
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Tuple

from runcoach.config import Config
from runcoach.plans import blocks
from runcoach.plans.errors import (
    EnhancementFailed,
    PlanNotFound,
    StalePlanReference,
    StoreInconsistency,
    WriteConflict,
)
from runcoach.plans.merger import find_block_index, merge_into_document
from runcoach.plans.models import ParseResult, TrainingDay, TrainingPlan, content_fields
from runcoach.plans.parser import FORMAT_DAY_BLOCKS, parse_plan_text
from runcoach.supabase_client import supabase

logger = logging.getLogger(__name__)

PLANS_TABLE = "training_plans"
DAYS_TABLE = "training_days"

_plan_locks: Dict[str, threading.Lock] = {}
_registry_lock = threading.Lock()


def plan_lock(plan_id: str) -> threading.Lock:
    """One logical writer per plan within this process."""
    with _registry_lock:
        lock = _plan_locks.get(str(plan_id))
        if lock is None:
            lock = threading.Lock()
            _plan_locks[str(plan_id)] = lock
        return lock


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# --- plans -----------------------------------------------------------------

def get_plan(plan_id: str, user_id: Optional[str] = None) -> TrainingPlan:
    query = supabase.table(PLANS_TABLE).select("*").eq("id", plan_id)
    if user_id is not None:
        query = query.eq("user_id", user_id)
    response = query.execute()
    if not response.data:
        raise PlanNotFound(f"Plan {plan_id} not found for user {user_id}")
    return TrainingPlan.from_row(response.data[0])


def get_current_plan(user_id: str) -> Optional[TrainingPlan]:
    response = supabase.table(PLANS_TABLE).select("*") \
        .eq("user_id", user_id) \
        .eq("is_current", True) \
        .order("created_at", desc=True) \
        .limit(1) \
        .execute()
    if not response.data:
        return None
    return TrainingPlan.from_row(response.data[0])


def create_plan(user_id: str, raw_text: str, start_date: Optional[date] = None,
                end_date: Optional[date] = None, profile_id: Optional[str] = None) -> TrainingPlan:
    """Insert a new current plan and supersede the user's previous ones."""
    supabase.table(PLANS_TABLE).update({"is_current": False, "updated_at": _now()}) \
        .eq("user_id", user_id) \
        .eq("is_current", True) \
        .execute()

    plan_doc = {
        "user_id": user_id,
        "profile_id": profile_id,
        "raw_text": raw_text,
        "format": "text",
        "version": 1,
        "is_current": True,
        "rows_stale": False,
        "start_date": start_date.isoformat() if start_date else None,
        "end_date": end_date.isoformat() if end_date else None,
        "created_at": _now(),
        "updated_at": _now(),
    }
    response = supabase.table(PLANS_TABLE).insert(plan_doc).execute()
    if not response.data:
        raise StoreInconsistency("Plan insert returned no row")
    return TrainingPlan.from_row(response.data[0])


def write_plan_text(plan: TrainingPlan, new_text: str, fmt: Optional[str] = None) -> Optional[TrainingPlan]:
    """
    Compare-and-swap the document. Returns the updated plan, or None if
    someone else wrote since `plan` was read.
    """
    updates = {
        "raw_text": new_text,
        "version": plan.version + 1,
        "updated_at": _now(),
    }
    if fmt:
        updates["format"] = fmt
    response = supabase.table(PLANS_TABLE).update(updates) \
        .eq("id", plan.id) \
        .eq("version", plan.version) \
        .execute()
    if not response.data:
        logger.warning(f"Version conflict writing plan {plan.id} at version {plan.version}")
        return None
    return TrainingPlan.from_row(response.data[0])


def mark_rows_stale(plan_id: str, stale: bool = True) -> None:
    try:
        supabase.table(PLANS_TABLE).update({"rows_stale": stale}).eq("id", plan_id).execute()
    except Exception as e:
        logger.error(f"Could not flag rows_stale={stale} on plan {plan_id}: {e}")


def delete_plan(plan_id: str, user_id: str) -> None:
    plan = get_plan(plan_id, user_id)
    supabase.table(DAYS_TABLE).delete().eq("training_plan_id", plan.id).execute()
    supabase.table(PLANS_TABLE).delete().eq("id", plan.id).execute()
    logger.info(f"Deleted plan {plan.id} for user {user_id}")


# --- day rows --------------------------------------------------------------

def replace_day_rows(plan: TrainingPlan, days: List[TrainingDay]) -> int:
    supabase.table(DAYS_TABLE).delete().eq("training_plan_id", plan.id).execute()

    rows = [day.to_row(plan.id, plan.user_id) for day in days]
    chunk_size = Config.DAY_INSERT_CHUNK_SIZE
    inserted = 0
    for i in range(0, len(rows), chunk_size):
        chunk = rows[i:i + chunk_size]
        response = supabase.table(DAYS_TABLE).insert(chunk).execute()
        inserted += len(response.data or [])
    return inserted


def get_day_rows(plan_id: str, start_date: Optional[date] = None,
                 end_date: Optional[date] = None) -> List[TrainingDay]:
    query = supabase.table(DAYS_TABLE).select("*").eq("training_plan_id", plan_id)
    if start_date:
        query = query.gte("date", start_date.isoformat())
    if end_date:
        query = query.lte("date", end_date.isoformat())
    response = query.order("date").execute()
    return [TrainingDay.from_row(row) for row in response.data or []]


def update_day_row(plan: TrainingPlan, day: TrainingDay) -> None:
    row = day.to_row(plan.id, plan.user_id)
    row["updated_at"] = _now()
    response = supabase.table(DAYS_TABLE).update(row) \
        .eq("training_plan_id", plan.id) \
        .eq("date", day.date.isoformat()) \
        .execute()
    if not response.data:
        # No row yet for this day (e.g. rows never got inserted); add it.
        supabase.table(DAYS_TABLE).insert(row).execute()


# --- flows -----------------------------------------------------------------

def in_date_order(days: List[TrainingDay]) -> List[TrainingDay]:
    """Canonical block order: by date, source order among equal dates."""
    return sorted(days, key=lambda d: d.date)


def _canonical_text(plan: TrainingPlan) -> Tuple[str, ParseResult, bool]:
    """
    The plan's document in the canonical block format, its parse, and
    whether it had to be converted from a legacy format.
    """
    if plan.format == FORMAT_DAY_BLOCKS or blocks.has_day_blocks(plan.raw_text):
        return plan.raw_text, parse_plan_text(plan.raw_text, FORMAT_DAY_BLOCKS), False
    result = parse_plan_text(plan.raw_text)
    if not result.days:
        return plan.raw_text, result, False
    result = ParseResult(in_date_order(result.days), result.format, result.diagnostics)
    return blocks.render_document(result.days), result, True


def save_generated_plan(user_id: str, raw_text: str, start_date: Optional[date] = None,
                        end_date: Optional[date] = None,
                        profile_id: Optional[str] = None) -> Tuple[TrainingPlan, ParseResult]:
    """
    Persist freshly generated text, then derive the canonical document and
    rows from it. Failures after the first insert leave a usable text-only
    plan behind rather than undoing it.
    """
    plan = create_plan(user_id, raw_text, start_date, end_date, profile_id)
    logger.info(f"Saved plan {plan.id} for user {user_id} ({len(raw_text)} chars)")

    result = parse_plan_text(raw_text)
    if result.diagnostics.dropped_count:
        logger.warning(f"Plan {plan.id}: dropped {result.diagnostics.dropped_count} unparseable lines")
    if not result.days:
        logger.warning(f"Plan {plan.id}: no days parsed, keeping text-only plan")
        return plan, result

    result = ParseResult(in_date_order(result.days), result.format, result.diagnostics)
    canonical = blocks.render_document(result.days)
    with plan_lock(plan.id):
        updated = write_plan_text(plan, canonical, FORMAT_DAY_BLOCKS)
    if updated is None:
        logger.error(f"Plan {plan.id} changed while it was being saved; rows left for rebuild")
        mark_rows_stale(plan.id)
        return plan, result
    plan = updated

    try:
        inserted = replace_day_rows(plan, result.days)
        logger.info(f"Plan {plan.id}: inserted {inserted} training days")
    except Exception as e:
        logger.error(f"Plan {plan.id}: failed to insert training days, text-only mode: {e}")
        mark_rows_stale(plan.id)
        plan = replace(plan, rows_stale=True)
    return plan, result


def get_days(plan_id: str, user_id: str, start_date: Optional[date] = None,
             end_date: Optional[date] = None) -> Tuple[List[TrainingDay], str]:
    """
    Days for a range, preferring structured rows and falling back to
    re-parsing the text. Returns (days, source).
    """
    plan = get_plan(plan_id, user_id)
    if not plan.rows_stale:
        try:
            rows = get_day_rows(plan.id, start_date, end_date)
        except Exception as e:
            logger.error(f"Plan {plan.id}: failed to read day rows, falling back to text: {e}")
            rows = []
        if rows:
            return rows, "rows"

    days = in_date_order(parse_plan_text(plan.raw_text).days)
    if start_date:
        days = [d for d in days if d.date >= start_date]
    if end_date:
        days = [d for d in days if d.date <= end_date]
    return days, "text"


def read_day(plan: TrainingPlan, day_index: int) -> Optional[TrainingDay]:
    _, result, _ = _canonical_text(plan)
    if 0 <= day_index < len(result.days):
        return result.days[day_index]
    return None


def apply_enhancement(plan_id: str, user_id: str, day_index: int, response_text: str,
                      day_date: Optional[date] = None) -> TrainingDay:
    """
    Merge an enhancement response into one day: a single read-modify-write
    of the document per attempt, retried on version conflicts, then the
    matching row. Raises StalePlanReference if the plan was superseded.
    """
    retries = max(1, Config.PLAN_WRITE_RETRIES)
    with plan_lock(plan_id):
        for attempt in range(1, retries + 1):
            plan = get_plan(plan_id, user_id)
            if not plan.is_current:
                logger.warning(f"Discarding enhancement for superseded plan {plan_id}, day {day_index}")
                raise StalePlanReference(f"Plan {plan_id} is no longer current")

            text, _, converted = _canonical_text(plan)
            index = day_index
            if day_date is not None:
                located = find_block_index(text, day_date)
                if located is None:
                    raise EnhancementFailed(f"No day {day_date} in plan {plan_id}")
                index = located

            merged = merge_into_document(text, index, response_text)
            if merged is None:
                raise EnhancementFailed(f"Nothing to merge for plan {plan_id}, day {index}")

            updated = write_plan_text(plan, merged.text, FORMAT_DAY_BLOCKS)
            if updated is None:
                logger.info(f"Retrying enhancement write for plan {plan_id} (attempt {attempt}/{retries})")
                continue

            if converted:
                # The document was just canonicalized; rebuild every row from it.
                try:
                    replace_day_rows(updated, parse_plan_text(merged.text).days)
                except Exception as e:
                    mark_rows_stale(plan_id)
                    raise StoreInconsistency(f"Rows not rebuilt for plan {plan_id}: {e}")
                if plan.rows_stale:
                    mark_rows_stale(plan_id, False)
                return merged.day

            try:
                update_day_row(updated, merged.day)
            except Exception as e:
                logger.error(f"Plan {plan_id}: text updated but day row failed: {e}")
                mark_rows_stale(plan_id)
                raise StoreInconsistency(f"Row update failed for plan {plan_id}, day {index}: {e}")
            return merged.day

    raise WriteConflict(f"Gave up writing plan {plan_id} after {retries} attempts")


def check_consistency(plan_id: str, user_id: str, enforce: bool = False) -> Dict[str, object]:
    """Compare stored rows against a fresh parse of the text."""
    plan = get_plan(plan_id, user_id)
    text_days = {d.date: d for d in parse_plan_text(plan.raw_text).days}
    row_days = {d.date: d for d in get_day_rows(plan.id)}

    missing = sorted(d.isoformat() for d in text_days.keys() - row_days.keys())
    extra = sorted(d.isoformat() for d in row_days.keys() - text_days.keys())
    mismatched = {}
    for day_date in sorted(text_days.keys() & row_days.keys()):
        text_day, row_day = text_days[day_date], row_days[day_date]
        diff = [name for name in content_fields() if getattr(text_day, name) != getattr(row_day, name)]
        if diff:
            mismatched[day_date.isoformat()] = diff

    consistent = not (missing or extra or mismatched) and not plan.rows_stale
    report = {
        "plan_id": plan.id,
        "version": plan.version,
        "consistent": consistent,
        "rows_stale": plan.rows_stale,
        "text_days": len(text_days),
        "row_days": len(row_days),
        "missing_rows": missing,
        "extra_rows": extra,
        "mismatched": mismatched,
    }
    if not consistent:
        logger.warning(f"Plan {plan.id} representations diverge: {report}")
        if enforce:
            raise StoreInconsistency(f"Plan {plan.id} rows differ from text")
    return report


def rebuild_rows(plan_id: str, user_id: str) -> int:
    """Re-derive every row from the text and clear the stale flag."""
    with plan_lock(plan_id):
        plan = get_plan(plan_id, user_id)
        days = parse_plan_text(plan.raw_text).days
        count = replace_day_rows(plan, days)
        mark_rows_stale(plan.id, False)
    logger.info(f"Rebuilt {count} rows for plan {plan_id}")
    return count
