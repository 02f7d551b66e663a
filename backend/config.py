# config.py
import os

from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./quizgen.db")

# Gemini. The key is only checked when a model is actually called.
GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY", "").strip()
GEMINI_MODEL = (os.getenv("GEMINI_MODEL") or "gemini-1.5-flash").strip()
QUIZ_TEMPERATURE = float(os.getenv("QUIZ_TEMPERATURE", "0.7"))
TITLE_TEMPERATURE = float(os.getenv("TITLE_TEMPERATURE", "0.3"))
QUIZ_MAX_OUTPUT_TOKENS = int(os.getenv("QUIZ_MAX_OUTPUT_TOKENS", "2000"))
TITLE_MAX_OUTPUT_TOKENS = int(os.getenv("TITLE_MAX_OUTPUT_TOKENS", "200"))

FETCH_TIMEOUT_SECONDS = float(os.getenv("FETCH_TIMEOUT_SECONDS", "10"))
MAX_UPLOAD_MB = int(os.getenv("MAX_UPLOAD_MB", "10"))

# Managed auth service that resolves bearer tokens (GET {url}/auth/v1/user)
AUTH_SERVICE_URL = (os.getenv("AUTH_SERVICE_URL") or "").rstrip("/")
AUTH_API_KEY = os.getenv("AUTH_API_KEY", "")
AUTH_TIMEOUT_SECONDS = float(os.getenv("AUTH_TIMEOUT_SECONDS", "5"))

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
