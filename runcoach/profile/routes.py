# runcoach/profile/routes.py
from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required, get_jwt_identity
from runcoach.plans import service
from runcoach.plans.errors import GenerationFailed
import logging

profile_bp = Blueprint('profile', __name__)
logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "full_name", "goal", "race_name", "race_date", "race_distance_km", "race_surface",
    "age", "gender", "height", "weight_kg", "units", "training_history", "experience_years",
    "current_weekly_mileage", "longest_run_km", "days_per_week", "goal_pace_per_km",
    "race_results", "injuries", "strength_notes", "elevation_context", "time_limits",
    "further_notes", "current_5k_time", "current_10k_time", "current_half_marathon_time",
    "current_marathon_time",
)


@profile_bp.route("", methods=["GET"], strict_slashes=False)
@jwt_required()
def get_profile():
    user_id = get_jwt_identity()
    profile = service.get_profile(user_id)
    return jsonify({
        "profile": profile,
        "complete": service.has_complete_profile(profile),
        "missing_fields": service.missing_profile_fields(profile),
    }), 200


@profile_bp.route("", methods=["PUT"], strict_slashes=False)
@jwt_required()
def update_profile():
    user_id = get_jwt_identity()
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Profile data is required."}), 400

    updates = {k: v for k, v in data.items() if k in EDITABLE_FIELDS}
    if not updates:
        return jsonify({"error": "No editable profile fields provided."}), 400

    old_profile = service.get_profile(user_id) or {}
    profile = service.save_profile(user_id, updates)

    changed = service.training_relevant_changes(old_profile, profile)
    result = {"profile": profile, "regenerated": False, "changed_fields": changed}
    if not changed:
        logger.info(f"Profile for user {user_id} updated without training-relevant changes")
        return jsonify(result), 200
    if not service.has_complete_profile(profile):
        result["missing_fields"] = service.missing_profile_fields(profile)
        return jsonify(result), 200

    logger.info(f"Training-relevant profile change for user {user_id}: {changed}, regenerating plan")
    try:
        plan, parsed = service.generate_plan(user_id, profile)
    except GenerationFailed as e:
        # The profile is saved either way; report the plan failure alongside it.
        logger.error(f"Plan regeneration failed for user {user_id}: {e}")
        result["error"] = e.user_message
        return jsonify(result), 200

    result.update({"regenerated": True, "plan": plan.to_dict(), "days_parsed": len(parsed.days)})
    return jsonify(result), 200
