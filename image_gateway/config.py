import os

from dotenv import load_dotenv

load_dotenv()

GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
GEMINI_IMAGE_MODEL = os.getenv("GEMINI_IMAGE_MODEL", "gemini-2.5-flash-image")

DATABASE_URL = os.getenv("DATABASE_URL", "")

STORAGE_BUCKET = os.getenv("STORAGE_BUCKET", "")
STORAGE_ENDPOINT_URL = os.getenv("STORAGE_ENDPOINT_URL") or None
STORAGE_ACCESS_KEY = os.getenv("STORAGE_ACCESS_KEY") or None
STORAGE_SECRET_KEY = os.getenv("STORAGE_SECRET_KEY") or None
STORAGE_REGION = os.getenv("STORAGE_REGION") or None
STORAGE_PUBLIC_BASE_URL = os.getenv("STORAGE_PUBLIC_BASE_URL", "https://storage.googleapis.com")

IMAGE_FETCH_TIMEOUT = float(os.getenv("IMAGE_FETCH_TIMEOUT", "30"))

# Limit concurrent executions to control costs during traffic spikes
MAX_INSTANCES = int(os.getenv("MAX_INSTANCES", "10"))
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
