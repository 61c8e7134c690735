# runcoach/supabase_client.py

import logging
import os
from supabase import create_client, Client

logger = logging.getLogger(__name__)

url: str = os.environ.get("SUPABASE_URL")
key: str = os.environ.get("SUPABASE_KEY")
use_mock: bool = os.environ.get("MOCK_DB") == "true"

# Plans, days, profiles and Strava data all go through this one client.
if use_mock:
    from runcoach.mock_supabase import MockSupabaseClient
    supabase = MockSupabaseClient()
    logger.info("MOCK_DB=true, using the in-memory Supabase client")
elif url and key:
    supabase: Client = create_client(url, key)
else:
    supabase = None
    logger.warning("SUPABASE_URL/SUPABASE_KEY not set, storage is unavailable")
