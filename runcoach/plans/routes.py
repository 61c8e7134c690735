# runcoach/plans/routes.py
from datetime import date
from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required, get_jwt_identity
from runcoach.extensions import limiter
from runcoach.plans import service, store, views
from runcoach.plans.lifecycle import tracker
import logging

plans_bp = Blueprint('plans', __name__)
logger = logging.getLogger(__name__)


def _parse_date_arg(name):
    value = request.args.get(name)
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


@plans_bp.route("/generate", methods=["POST"])
@jwt_required()
@limiter.limit("10 per hour")
def generate_plan():
    user_id = get_jwt_identity()
    data = request.get_json(silent=True) or {}
    profile = data.get("profile") or service.get_profile(user_id)

    plan, result = service.generate_plan(user_id, profile)
    return jsonify({
        "message": "Training plan generated.",
        "plan": plan.to_dict(),
        "days_parsed": len(result.days),
        "source_format": result.format,
        "diagnostics": result.diagnostics.to_dict(),
    }), 201


@plans_bp.route("/current", methods=["GET"])
@jwt_required()
def get_current_plan():
    user_id = get_jwt_identity()
    plan = store.get_current_plan(user_id)
    if not plan:
        return jsonify({"plan": None, "message": "No training plan yet."}), 200
    return jsonify({"plan": plan.to_dict()}), 200


@plans_bp.route("/<plan_id>", methods=["GET"])
@jwt_required()
def get_plan(plan_id):
    plan = store.get_plan(plan_id, get_jwt_identity())
    return jsonify({"plan": plan.to_dict()}), 200


@plans_bp.route("/<plan_id>", methods=["DELETE"])
@jwt_required()
def delete_plan(plan_id):
    service.delete_plan(get_jwt_identity(), plan_id)
    return jsonify({"message": "Training plan deleted."}), 200


@plans_bp.route("/<plan_id>/days", methods=["GET"])
@jwt_required()
def get_days(plan_id):
    user_id = get_jwt_identity()
    start_date = _parse_date_arg("start_date")
    end_date = _parse_date_arg("end_date")

    # Project the whole plan so day_index matches the document position.
    days, source = store.get_days(plan_id, user_id)
    projected = views.flat_view(days)
    if start_date:
        projected = [d for d in projected if d["date"] >= start_date.isoformat()]
    if end_date:
        projected = [d for d in projected if d["date"] <= end_date.isoformat()]
    return jsonify({"days": projected, "source": source}), 200


@plans_bp.route("/<plan_id>/calendar", methods=["GET"])
@jwt_required()
def get_calendar(plan_id):
    days, source = store.get_days(plan_id, get_jwt_identity())
    view = views.calendar_view(days, month=request.args.get("month"))
    view["source"] = source
    return jsonify(view), 200


@plans_bp.route("/<plan_id>/weeks/<int:week>", methods=["GET"])
@jwt_required()
def get_week(plan_id, week):
    user_id = get_jwt_identity()
    plan = store.get_plan(plan_id, user_id)
    days, source = store.get_days(plan.id, user_id)
    view = views.week_view(days, week, plan_start=plan.start_date)
    view["source"] = source
    return jsonify(view), 200


@plans_bp.route("/<plan_id>/text", methods=["GET"])
@jwt_required()
def get_text(plan_id):
    user_id = get_jwt_identity()
    plan = store.get_plan(plan_id, user_id)
    days, source = store.get_days(plan.id, user_id)
    view = views.text_view(days, plan.raw_text)
    view.update({"raw_text": plan.raw_text, "source": source})
    return jsonify(view), 200


@plans_bp.route("/<plan_id>/progress", methods=["GET"])
@jwt_required()
def get_progress(plan_id):
    return jsonify(service.enhancement_progress(get_jwt_identity(), plan_id)), 200


@plans_bp.route("/<plan_id>/days/<int:day_index>/enhance", methods=["POST"])
@jwt_required()
@limiter.limit("60 per hour")
def enhance_day(plan_id, day_index):
    user_id = get_jwt_identity()
    data = request.get_json(silent=True) or {}
    day, status = service.enhance_day(
        user_id,
        plan_id,
        day_index,
        profile=data.get("profile"),
        retry=bool(data.get("retry", False)),
    )
    projected = views.project_day(day, day_index)
    return jsonify({
        "day": projected,
        "status": status.to_dict(tracker.max_attempts),
    }), 200


@plans_bp.route("/<plan_id>/days/<int:day_index>/dismiss", methods=["POST"])
@jwt_required()
def dismiss_day(plan_id, day_index):
    status = service.dismiss_day(get_jwt_identity(), plan_id, day_index)
    return jsonify({"status": status.to_dict(tracker.max_attempts)}), 200


@plans_bp.route("/<plan_id>/consistency", methods=["GET"])
@jwt_required()
def check_consistency(plan_id):
    report = store.check_consistency(plan_id, get_jwt_identity())
    return jsonify(report), 200


@plans_bp.route("/<plan_id>/rebuild", methods=["POST"])
@jwt_required()
def rebuild(plan_id):
    count = store.rebuild_rows(plan_id, get_jwt_identity())
    return jsonify({"message": "Training days rebuilt.", "days": count}), 200

