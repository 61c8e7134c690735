from datetime import date
from unittest.mock import patch

import pytest
from cryptography.fernet import Fernet
from flask_jwt_extended import create_access_token

from runcoach import create_app
from runcoach.config import TestingConfig
from runcoach.mock_supabase import MockSupabaseClient
from runcoach.plans.lifecycle import tracker
from runcoach.plans.models import TrainingDay

USER_ID = "user-1"

PROFILE = {
    "id": "profile-1",
    "user_id": USER_ID,
    "goal": "Sub 4 hour marathon",
    "race_name": "Berlin Marathon",
    "race_date": "2025-09-28",
    "race_distance_km": 42.2,
    "current_weekly_mileage": 40,
    "days_per_week": 5,
    "age": 34,
    "height": 178,
    "training_history": "Two half marathons",
    "injuries": "None",
}

MINIMAL_PLAN = """Here is your plan!

2025-09-04|Thu|Easy Run|8|45|Medium|Build aerobic base
2025-09-05|Fri|Rest|0|0|Low|Recovery
2025-09-06|Sat|Long Run|18|110|High|Endurance
"""

EXTENDED_PLAN = """#PLAN-FORMAT: pipe-extended/1
2025-09-04|Easy Run|8km steady|5:45-6:00/km|8|5:50|46:40
2025-09-05|Rest|N/A|N/A|0|N/A|0:00
2025-09-06|Tempo Run|2km wu, 5km tempo, 1km cd|4:50/km tempo|8|5:10|41:20
"""


@pytest.fixture
def mock_db():
    """In-memory Supabase client patched in wherever the code reads it."""
    client = MockSupabaseClient()
    with patch("runcoach.plans.store.supabase", client), \
            patch("runcoach.plans.service.supabase", client), \
            patch("runcoach.strava.sync.supabase", client):
        yield client


@pytest.fixture(autouse=True)
def reset_tracker():
    tracker._status.clear()
    yield
    tracker._status.clear()


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    app.config["ENCRYPTION_KEY"] = Fernet.generate_key().decode()
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_header(app):
    with app.app_context():
        token = create_access_token(identity=USER_ID)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def easy_day():
    return TrainingDay(
        date=date(2025, 9, 4),
        session_type="Easy Run",
        estimated_distance_km=8.0,
        duration_min=45.0,
        session_load="Medium",
        purpose="Build aerobic base",
    )
