# runcoach/config.py

import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

class Config:
    # General settings
    SECRET_KEY = os.getenv("SECRET_KEY", "your_secret_key")
    DEBUG = False
    TESTING = False

    # Supabase configuration
    SUPABASE_URL = os.getenv("SUPABASE_URL")
    SUPABASE_KEY = os.getenv("SUPABASE_KEY")

    # JWT configuration. Tokens are issued by the auth provider, we only verify them.
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "your_jwt_secret_key")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

    # OAuth (Strava) configuration
    STRAVA_CLIENT_ID = os.getenv("STRAVA_CLIENT_ID")
    STRAVA_CLIENT_SECRET = os.getenv("STRAVA_CLIENT_SECRET")
    STRAVA_REDIRECT_URI = os.getenv("STRAVA_REDIRECT_URI", "http://127.0.0.1:5001/strava/exchange_token")

    # Other keys
    ENCRYPTION_KEY = os.getenv("ENCRYPTION_KEY")
    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
    GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")

    # LLM Configuration
    LLM_PROVIDER = os.getenv("LLM_PROVIDER", "openai") # 'openai', 'gemini', or 'local'
    LOCAL_LLM_URL = os.getenv("LOCAL_LLM_URL", "http://localhost:8080/v1")
    LOCAL_LLM_MODEL = os.getenv("LOCAL_LLM_MODEL", "gemma-2-9b-it")
    OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
    LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", 120))
    PLAN_MAX_COMPLETION_TOKENS = int(os.getenv("PLAN_MAX_COMPLETION_TOKENS", 4000))
    ENHANCEMENT_MAX_COMPLETION_TOKENS = int(os.getenv("ENHANCEMENT_MAX_COMPLETION_TOKENS", 1500))

    # Plan pipeline
    ENHANCEMENT_MAX_ATTEMPTS = int(os.getenv("ENHANCEMENT_MAX_ATTEMPTS", 3))
    PLAN_WRITE_RETRIES = int(os.getenv("PLAN_WRITE_RETRIES", 5))
    DAY_INSERT_CHUNK_SIZE = int(os.getenv("DAY_INSERT_CHUNK_SIZE", 50))

    # Rate limiting for the model-backed endpoints
    RATELIMIT_DEFAULT = os.getenv("RATELIMIT_DEFAULT", "200 per hour")
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")

    # CORS: Use a default for local development; override in production
    CORS_ORIGIN = os.getenv("CORS_ORIGIN", "http://localhost:3000,http://localhost:5173")

class DevelopmentConfig(Config):
    DEBUG = True

class ProductionConfig(Config):
    DEBUG = False

class TestingConfig(Config):
    TESTING = True
    JWT_SECRET_KEY = "test-jwt-secret-key-with-enough-length"
    RATELIMIT_ENABLED = False
