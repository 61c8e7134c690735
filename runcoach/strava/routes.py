# runcoach/strava/routes.py
from flask import Blueprint, redirect, request, jsonify
from flask_jwt_extended import jwt_required, get_jwt_identity
import requests
from urllib.parse import urlencode
from runcoach.config import Config
from runcoach.extensions import limiter
from runcoach.strava.sync import (
    REQUEST_TIMEOUT,
    TOKEN_URL,
    StravaError,
    get_activities,
    save_tokens,
    sync_strava_activities,
)
import logging

strava_bp = Blueprint('strava', __name__)
logger = logging.getLogger(__name__)


@strava_bp.errorhandler(StravaError)
def handle_strava_error(error):
    logger.warning(f"Strava error ({type(error).__name__}): {error.detail}")
    return jsonify(error.to_dict()), error.status_code


@strava_bp.route("/connect")
@jwt_required()
def connect_strava():
    user_id = get_jwt_identity()
    params = {
        "client_id": Config.STRAVA_CLIENT_ID,
        "redirect_uri": Config.STRAVA_REDIRECT_URI,
        "response_type": "code",
        "scope": "read,activity:read_all",
        "approval_prompt": "force",
        "state": user_id,
    }
    return redirect(f"https://www.strava.com/oauth/authorize?{urlencode(params)}")


@strava_bp.route("/exchange_token")
def exchange_token():
    code = request.args.get("code")
    error = request.args.get("error")
    user_id = request.args.get("state")
    if error:
        return jsonify({"error": "Strava access was denied."}), 400
    if not code:
        return jsonify({"error": "No code returned from Strava."}), 400
    if not user_id:
        return jsonify({"error": "Missing state parameter."}), 400

    payload = {
        "client_id": Config.STRAVA_CLIENT_ID,
        "client_secret": Config.STRAVA_CLIENT_SECRET,
        "code": code,
        "grant_type": "authorization_code",
    }
    try:
        response = requests.post(TOKEN_URL, data=payload, timeout=REQUEST_TIMEOUT)
    except requests.RequestException as e:
        raise StravaError(f"Token exchange failed: {e}")
    if response.status_code != 200:
        logger.error(f"Error exchanging Strava token: {response.text}")
        return jsonify({"error": "Could not connect Strava, please retry."}), 400

    token_data = response.json()
    save_tokens(user_id, token_data)
    return jsonify({
        "message": "Strava connected.",
        "athlete": token_data.get("athlete", {}),
    }), 200


@strava_bp.route("/import", methods=["POST"])
@jwt_required()
@limiter.limit("20 per hour")
def import_activities():
    user_id = get_jwt_identity()
    inserted = sync_strava_activities(user_id)
    if inserted == 0 and not get_activities(user_id, limit=1):
        return jsonify({"imported": 0, "message": "No activities found."}), 200
    return jsonify({"imported": inserted, "message": f"Imported {inserted} new activities."}), 200


@strava_bp.route("/activities", methods=["GET"])
@jwt_required()
def list_activities():
    user_id = get_jwt_identity()
    limit = request.args.get("limit", 50, type=int)
    activities = get_activities(user_id, limit=max(1, min(limit, 200)))
    if not activities:
        return jsonify({"activities": [], "message": "No activities found."}), 200
    return jsonify({"activities": activities}), 200
