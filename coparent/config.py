import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./coparent.db")

# development shows internal error detail in 500 responses
ENVIRONMENT = os.getenv("ENVIRONMENT", "production")

# Firebase Configuration
FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID")
FIREBASE_CREDENTIALS_PATH = os.getenv("FIREBASE_CREDENTIALS_PATH")

# Push gateway backend: "firebase" or "log"
PUSH_BACKEND = os.getenv("PUSH_BACKEND", "firebase").lower()

# Object store backend: "r2" or "local"
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "r2").lower()
LOCAL_STORAGE_DIR = os.getenv("LOCAL_STORAGE_DIR", "./uploads")
LOCAL_STORAGE_BASE_URL = os.getenv("LOCAL_STORAGE_BASE_URL", "http://localhost:8000/uploads")

# Cloudflare R2 Configuration
R2_ACCOUNT_ID = os.getenv("R2_ACCOUNT_ID")
R2_ACCESS_KEY_ID = os.getenv("R2_ACCESS_KEY_ID")
R2_SECRET_ACCESS_KEY = os.getenv("R2_SECRET_ACCESS_KEY")
R2_BUCKET_NAME = os.getenv("R2_BUCKET_NAME", "coparent")
R2_PUBLIC_URL = os.getenv("R2_PUBLIC_URL")

# Frontend base URL for links in emails
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "CoParent <noreply@coparent.app>")

# Membership: enroll any authenticated caller into a family on first access.
# Off unless explicitly enabled.
FAMILY_AUTO_ENROLL = os.getenv("FAMILY_AUTO_ENROLL", "false").lower() == "true"
MAX_FAMILY_MEMBERS = 2

# Reminder sweep
REMINDER_BATCH_SIZE = int(os.getenv("REMINDER_BATCH_SIZE", "50"))
REMINDER_RETENTION_DAYS = int(os.getenv("REMINDER_RETENTION_DAYS", "7"))

# Uploads
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))

ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:5173,http://localhost:3000",
).split(",")
