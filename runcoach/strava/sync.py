# runcoach/strava/sync.py

"""
Strava activity import. Activities are stored for display only; nothing
here feeds the training plan parser.
"""
import logging
import time
import requests
from datetime import datetime, timezone
from runcoach.config import Config
from runcoach.supabase_client import supabase
from runcoach.utils.encryption import decrypt_token, encrypt_token

logger = logging.getLogger(__name__)

TOKEN_URL = "https://www.strava.com/oauth/token"
ACTIVITIES_URL = "https://www.strava.com/api/v3/athlete/activities"
TOKENS_TABLE = "strava_tokens"
ACTIVITIES_TABLE = "strava_activities"
REQUEST_TIMEOUT = 30


class StravaError(Exception):
    status_code = 502
    user_message = "Could not reach Strava, please retry."

    def __init__(self, detail=None):
        super().__init__(detail or self.user_message)
        self.detail = detail

    def to_dict(self):
        return {"error": self.user_message, "kind": type(self).__name__}


class StravaNotConnected(StravaError):
    status_code = 400
    user_message = "Strava is not connected. Please connect your account."


class StravaTokenExpired(StravaError):
    status_code = 401
    user_message = "Strava token expired, please reconnect."


def save_tokens(user_id, token_data):
    """Store a token response from Strava, encrypted."""
    athlete = token_data.get("athlete") or {}
    doc = {
        "user_id": user_id,
        "access_token": encrypt_token(token_data["access_token"]),
        "refresh_token": encrypt_token(token_data["refresh_token"]),
        "expires_at": token_data.get("expires_at"),
        "scope": token_data.get("scope", ""),
        "updated_at": datetime.now(timezone.utc).isoformat(),
    }
    if athlete.get("id"):
        doc["athlete_id"] = str(athlete["id"])

    existing = supabase.table(TOKENS_TABLE).select("id").eq("user_id", user_id).execute()
    if existing.data:
        supabase.table(TOKENS_TABLE).update(doc).eq("user_id", user_id).execute()
    else:
        supabase.table(TOKENS_TABLE).insert(doc).execute()


def refresh_strava_access_token(user_id, refresh_token):
    payload = {
        "client_id": Config.STRAVA_CLIENT_ID,
        "client_secret": Config.STRAVA_CLIENT_SECRET,
        "refresh_token": refresh_token,
        "grant_type": "refresh_token",
    }
    try:
        response = requests.post(TOKEN_URL, data=payload, timeout=REQUEST_TIMEOUT)
    except requests.RequestException as e:
        raise StravaError(f"Token refresh failed: {e}")
    if response.status_code in (400, 401):
        logger.warning(f"Strava rejected refresh token for user {user_id}: {response.text}")
        raise StravaTokenExpired(response.text)
    if response.status_code != 200:
        raise StravaError(f"Token refresh returned {response.status_code}: {response.text}")

    token_data = response.json()
    save_tokens(user_id, token_data)
    return token_data["access_token"]


def get_valid_access_token(user_id):
    """Decrypted access token, refreshed first if it expires within a minute."""
    response = supabase.table(TOKENS_TABLE).select("*").eq("user_id", user_id).execute()
    if not response.data:
        raise StravaNotConnected(f"No Strava tokens for user {user_id}")
    row = response.data[0]

    expires_at = row.get("expires_at") or 0
    if int(expires_at) - 60 > time.time():
        return decrypt_token(row["access_token"])
    logger.info(f"Refreshing Strava access token for user {user_id}")
    return refresh_strava_access_token(user_id, decrypt_token(row["refresh_token"]))


def fetch_strava_activities(access_token, page=1, per_page=30):
    """Fetch one page of activities."""
    headers = {"Authorization": f"Bearer {access_token}"}
    params = {"page": page, "per_page": per_page}
    try:
        resp = requests.get(ACTIVITIES_URL, headers=headers, params=params, timeout=REQUEST_TIMEOUT)
    except requests.RequestException as e:
        raise StravaError(f"Activity fetch failed: {e}")
    if resp.status_code == 401:
        raise StravaTokenExpired(resp.text)
    if resp.status_code != 200:
        raise StravaError(f"Activity fetch returned {resp.status_code}: {resp.text}")
    return resp.json()


def _activity_doc(user_id, act):
    return {
        "user_id": user_id,
        "activity_id": str(act["id"]),
        "name": act.get("name"),
        "type": act.get("sport_type") or act.get("type"),
        "distance": act.get("distance"),
        "moving_time": act.get("moving_time"),
        "elapsed_time": act.get("elapsed_time"),
        "total_elevation_gain": act.get("total_elevation_gain"),
        "start_date_local": act.get("start_date_local"),
        "average_speed": act.get("average_speed"),
        "max_speed": act.get("max_speed"),
        "average_heartrate": act.get("average_heartrate"),
        "calories": act.get("calories"),
        "synced_at": datetime.now(timezone.utc).isoformat(),
    }


def sync_strava_activities(user_id, max_pages=10, per_page=30):
    """
    Pull activities for the user and store the ones not seen before.
    Returns the number inserted.
    """
    access_token = get_valid_access_token(user_id)

    existing = supabase.table(ACTIVITIES_TABLE).select("activity_id").eq("user_id", user_id).execute()
    existing_ids = {row["activity_id"] for row in existing.data or []}

    total_inserted = 0
    for page in range(1, max_pages + 1):
        activities = fetch_strava_activities(access_token, page=page, per_page=per_page)
        if not activities:
            break

        batch = [_activity_doc(user_id, act) for act in activities if str(act["id"]) not in existing_ids]
        if batch:
            supabase.table(ACTIVITIES_TABLE).insert(batch).execute()
            total_inserted += len(batch)
            existing_ids.update(doc["activity_id"] for doc in batch)
        if len(activities) < per_page:
            break

    logger.info(f"Strava sync finished. Inserted {total_inserted} new activities for user {user_id}.")
    return total_inserted


def get_activities(user_id, limit=50):
    response = supabase.table(ACTIVITIES_TABLE).select("*") \
        .eq("user_id", user_id) \
        .order("start_date_local", desc=True) \
        .limit(limit) \
        .execute()
    return response.data or []
