"""Configuration settings for Planner."""

import os
from pathlib import Path

# Paths
DATA_DIR = Path(os.environ.get("PLANNER_DATA_DIR", Path.home() / ".planner"))
DB_PATH = os.environ.get("PLANNER_DB_PATH", str(DATA_DIR / "planner.db"))

# Server
HOST = os.environ.get("PLANNER_HOST", "127.0.0.1")
PORT = int(os.environ.get("PLANNER_PORT", "4000"))

# API
API_PREFIX = "/api"

# Classifier (optional, advisory only)
OPENROUTER_API_KEY = os.environ.get("OPENROUTER_API_KEY", "")
CLASSIFIER_URL = os.environ.get(
    "PLANNER_CLASSIFIER_URL", "https://openrouter.ai/api/v1/chat/completions"
)
CLASSIFIER_MODEL = os.environ.get("PLANNER_CLASSIFIER_MODEL", "openai/gpt-oss-20b:free")
CLASSIFIER_TIMEOUT = float(os.environ.get("PLANNER_CLASSIFIER_TIMEOUT", "8"))

# Sessions
MAX_SESSIONS = int(os.environ.get("PLANNER_MAX_SESSIONS", "1024"))
SESSION_TTL = float(os.environ.get("PLANNER_SESSION_TTL", "3600"))

# Members
DEFAULT_AVATAR_COLOR = os.environ.get("PLANNER_DEFAULT_AVATAR_COLOR", "bg-blue-500")
