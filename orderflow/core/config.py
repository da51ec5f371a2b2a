# orderflow/core/config.py
import os
from dotenv import load_dotenv

load_dotenv()

# -----------------------
# Database Config
# -----------------------
DB_TYPE = os.getenv("DB_TYPE", "sqlite").lower()

if DB_TYPE == "postgres":
    DATABASE_URL = os.getenv("DATABASE_URL")
    if not DATABASE_URL:
        raise ValueError("DATABASE_URL is required for Postgres setup")
elif DB_TYPE == "sqlite":
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./orderflow.db")
else:
    raise ValueError(f"Unsupported DB_TYPE: {DB_TYPE}")

# -----------------------
# JWT Config
# -----------------------
JWT_SECRET = os.getenv("JWT_SECRET")
if not JWT_SECRET:
    raise ValueError("JWT_SECRET environment variable must be set")

JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 15
ADMIN_ACCESS_TOKEN_EXPIRE_MINUTES = 60
REFRESH_TOKEN_EXPIRE_DAYS = 7

# -----------------------
# Email (Resend)
# -----------------------
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
RESEND_API_URL = os.getenv("RESEND_API_URL", "https://api.resend.com/emails")
RESEND_FROM_EMAIL = os.getenv("RESEND_FROM_EMAIL", "orders@example.com")
EMAIL_FROM_NAME = os.getenv("EMAIL_FROM_NAME", "Order Desk")
APP_URL = os.getenv("APP_URL", "http://localhost:3000")

# -----------------------
# Storage
# -----------------------
SUPABASE_URL = os.getenv("SUPABASE_URL", "")
MEDIA_BUCKET = os.getenv("MEDIA_BUCKET", "order-media")

# -----------------------
# Translation worker (empty disables translation)
# -----------------------
TRANSLATE_API_URL = os.getenv("TRANSLATE_API_URL", "")
TRANSLATE_TIMEOUT_SECONDS = float(os.getenv("TRANSLATE_TIMEOUT_SECONDS", "10"))
TRANSLATE_CACHE_SIZE = int(os.getenv("TRANSLATE_CACHE_SIZE", "1000"))

# -----------------------
# Business defaults
# -----------------------
DEFAULT_SAMPLE_MARGIN_PERCENTAGE = float(os.getenv("DEFAULT_SAMPLE_MARGIN_PERCENTAGE", "80"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
