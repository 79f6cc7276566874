import os
import dotenv
import logging

dotenv.load_dotenv()

CATALOG_PATH = os.environ.get("CATALOG_PATH", "catalog.yaml")

CATALOG_RELOAD_INTERVAL = float(os.environ.get("CATALOG_RELOAD_INTERVAL", 60))

OVERRIDE_LOGGING = logging.getLevelName(os.environ.get("OVERRIDE_LOGGING", "WARNING"))

TELEGRAM_TOKEN = os.environ.get("TELEGRAM_TOKEN")
TELEGRAM_CHAT_ID = os.environ.get("TELEGRAM_CHAT_ID")

GITHUB_TOKEN = os.environ.get("GITHUB_TOKEN")

JOB_API_URL = os.environ.get("JOB_API_URL")

JOB_API_TIMEOUT = float(os.environ.get("JOB_API_TIMEOUT", 30))

PUSH_VERIFICATION_TOKEN = os.environ.get("PUSH_VERIFICATION_TOKEN")

DRY_RUN = os.environ.get("DRY_RUN", "false") == "true"
