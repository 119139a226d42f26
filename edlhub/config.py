"""
Configuration module for EDL Hub
"""

# Application configuration
import os

def env_bool(key: str, default: bool = False) -> bool:
    """Get boolean value from environment variable"""
    value = os.getenv(key, str(default)).lower()
    return value in ("true", "1", "yes", "on")

def env_list(key: str, default: str = "") -> list:
    """Get comma-separated list from environment variable"""
    return [v.strip() for v in os.getenv(key, default).split(",") if v.strip()]

# Version information
from pathlib import Path

def _read_version_from_repo(default: str = "dev") -> str:
    try:
        # repo root: edlhub/.. (two parents up)
        version_file = Path(__file__).resolve().parents[1] / "VERSION"
        v = version_file.read_text(encoding="utf-8").strip()
        if v:
            return v
    except OSError:
        pass
    return os.getenv("APP_VERSION", default)

API_VERSION = _read_version_from_repo()

# Database configuration
SQLITE_PATH = os.getenv("SQLITE_PATH", "./edlhub.db")
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{SQLITE_PATH}")
# Upper bound for any single store wait (sqlite busy timeout / pool checkout)
STORE_TIMEOUT_SECONDS = float(os.getenv("STORE_TIMEOUT_SECONDS", "5"))
STORE_RETRY_AFTER_SECONDS = int(os.getenv("STORE_RETRY_AFTER_SECONDS", "2"))

# API configuration
API_PREFIX = "/v1"
APP_PORT = int(os.getenv("APP_PORT", "8080"))

# Category configuration
HOLDING_CATEGORY = os.getenv("HOLDING_CATEGORY", "sources")
DEFAULT_CATEGORIES = [
    # name, label, description, color, icon
    (HOLDING_CATEGORY, "Sources", "Indicators ingested from reputation feeds pending review", "bg-gray-500", "Database"),
    ("malware", "Malware", "Malware distribution and infected hosts", "bg-red-500", "Bug"),
    ("phishing", "Phishing", "Phishing sites and credential harvesters", "bg-orange-500", "Fish"),
    ("c2", "C2", "Command and control infrastructure", "bg-purple-500", "Radio"),
    ("bruteforce", "Brute Force", "Brute force and credential stuffing sources", "bg-yellow-500", "Hammer"),
]

# Expiration configuration
EXPIRATION_SWEEP_ENABLED: bool = env_bool("EXPIRATION_SWEEP_ENABLED", True)
EXPIRATION_SWEEP_INTERVAL_SECONDS = float(os.getenv("EXPIRATION_SWEEP_INTERVAL_SECONDS", "30"))
# Fraction of the expiration window that counts as "expiring"
EXPIRING_WINDOW_RATIO = float(os.getenv("EXPIRING_WINDOW_RATIO", "0.1"))

# EDL configuration
EDL_EMPTY_BODY = os.getenv("EDL_EMPTY_BODY", "# No entries found")

# Feed providers
ABUSEIPDB_API_KEY = os.getenv("ABUSEIPDB_API_KEY", "")
ABUSEIPDB_CONFIDENCE_MINIMUM = int(os.getenv("ABUSEIPDB_CONFIDENCE_MINIMUM", "80"))
ABUSEIPDB_LIMIT = int(os.getenv("ABUSEIPDB_LIMIT", "1000"))
VIRUSTOTAL_API_KEY = os.getenv("VIRUSTOTAL_API_KEY", "")
VIRUSTOTAL_WATCHLIST = env_list("VIRUSTOTAL_WATCHLIST")
FEED_TIMEOUT_SECONDS = float(os.getenv("FEED_TIMEOUT_SECONDS", "30"))
# 0 disables scheduled sync; feeds can still be pulled via /v1/sync/{provider}
FEED_SYNC_INTERVAL_SECONDS = float(os.getenv("FEED_SYNC_INTERVAL_SECONDS", "0"))

# Notification configuration
NOTIFY_ENABLED: bool = env_bool("NOTIFY_ENABLED", True)
NOTIFY_WEBHOOK_URL = os.getenv("NOTIFY_WEBHOOK_URL", "")
NOTIFY_TIMEOUT_SECONDS = float(os.getenv("NOTIFY_TIMEOUT_SECONDS", "3"))
NOTIFY_WORKERS = int(os.getenv("NOTIFY_WORKERS", "2"))

# Logging configuration
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "json")
HTTP_LOG_SAMPLE_RATE = float(os.getenv("HTTP_LOG_SAMPLE_RATE", "1.0"))
HTTP_LOG_EXCLUDE_PATHS = set(env_list("HTTP_LOG_EXCLUDE_PATHS", "/v1/health,/v1/metrics/prometheus"))
