import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# Firebase Configuration
FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID")
# Path to a service account JSON; Application Default Credentials are used when unset
FIREBASE_CREDENTIALS_PATH = os.getenv("FIREBASE_CREDENTIALS_PATH")

# Object storage (S3-compatible: R2, GCS interop, MinIO)
STORAGE_ENDPOINT_URL = os.getenv("STORAGE_ENDPOINT_URL")
STORAGE_ACCESS_KEY_ID = os.getenv("STORAGE_ACCESS_KEY_ID")
STORAGE_SECRET_ACCESS_KEY = os.getenv("STORAGE_SECRET_ACCESS_KEY")
STORAGE_BUCKET_NAME = os.getenv("STORAGE_BUCKET_NAME", "home-services")
# When set, uploaded objects are addressed as f"{STORAGE_PUBLIC_BASE_URL}/{key}"
STORAGE_PUBLIC_BASE_URL = os.getenv("STORAGE_PUBLIC_BASE_URL")
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))

# Redis (rate limiting)
REDIS_URL = os.getenv("REDIS_URL")

# Local timezone used for naive datetimes and day boundaries
APP_TIMEZONE = os.getenv("APP_TIMEZONE", "UTC")

# Frontend base URL for CORS and notification links
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", FRONTEND_URL).split(",")
    if origin.strip()
]

# Nominatim geocoding proxy
NOMINATIM_BASE_URL = os.getenv("NOMINATIM_BASE_URL", "https://nominatim.openstreetmap.org").rstrip(
    "/"
)
# Upstream blocks non-browser agents from shared IPs
NOMINATIM_USER_AGENT = os.getenv(
    "NOMINATIM_USER_AGENT",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/91.0.4472.124 Safari/537.36",
)
NOMINATIM_REFERER = os.getenv("NOMINATIM_REFERER", FRONTEND_URL)
GEOCODE_RPM = int(os.getenv("GEOCODE_RPM", "60"))  # 60 per minute = 1 per second

# Booking rules
BOOKING_DURATION_HOURS = int(os.getenv("BOOKING_DURATION_HOURS", "2"))
WARRANTY_DAYS = int(os.getenv("WARRANTY_DAYS", "30"))
FREE_RADIUS_KM = float(os.getenv("FREE_RADIUS_KM", "3"))
RATE_PER_KM = float(os.getenv("RATE_PER_KM", "10"))
