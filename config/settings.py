# config/settings.py
#
#   loading environment variables (db path, timezone, collaborator URLs) from .env

import os
from dotenv import load_dotenv

load_dotenv()  # loads .env into environment


# storage
DB_PATH = os.getenv("DB_PATH", "auto_resolution.db")

# timezone used for "now" and for naive timestamps coming out of the db
APP_TIMEZONE = os.getenv("APP_TIMEZONE", "America/New_York")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# auto RBU/CBU defaults (used when no region/service row exists)
AUTO_RBU_WINDOW_MINUTES = int(os.getenv("AUTO_RBU_WINDOW_MINUTES", "120"))
DEFAULT_AUTO_RBU_ATTEMPTS = int(os.getenv("DEFAULT_AUTO_RBU_ATTEMPTS", "1"))

# smart scheduler (recommendations). empty url disables it
SMART_SCHEDULER_URL = os.getenv("SMART_SCHEDULER_URL", "")
SMART_SCHEDULER_API_KEY = os.getenv("SMART_SCHEDULER_API_KEY", "")

# user notifications. empty url means log only
NOTIFICATION_WEBHOOK_URL = os.getenv("NOTIFICATION_WEBHOOK_URL", "")

HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", "5"))

# shared secret the external scheduler signs batch triggers with
TRIGGER_SECRET = os.getenv("TRIGGER_SECRET", "")

# checks
if AUTO_RBU_WINDOW_MINUTES <= 0:
    raise RuntimeError("AUTO_RBU_WINDOW_MINUTES must be positive!")
if DEFAULT_AUTO_RBU_ATTEMPTS < 0:
    raise RuntimeError("DEFAULT_AUTO_RBU_ATTEMPTS cannot be negative!")
