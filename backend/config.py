import os
from dotenv import load_dotenv

# Load environment variables from a .env file
load_dotenv()

# Firebase service account: JSON string (deployments) or path to a key file (local dev)
FIREBASE_CREDENTIALS = os.getenv("FIREBASE_CREDENTIALS")
FIREBASE_CREDENTIALS_FILE = os.getenv("FIREBASE_CREDENTIALS_FILE", "serviceAccountKey.json")

GEMINI_API_KEY = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")

REPORTS_COLLECTION = os.getenv("REPORTS_COLLECTION", "reports")

# Admin routes are open when this is unset
ADMIN_API_KEY = os.getenv("ADMIN_API_KEY")

CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]
MAX_UPLOAD_MB = int(os.getenv("MAX_UPLOAD_MB", "10"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
