import os

from dotenv import load_dotenv

load_dotenv()

# --- DATABASE ---
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./valhalla.db")

# Fix for Render/Heroku: SQLAlchemy requires postgresql://, but Render might provide postgres://
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

# --- AUTH ---
SECRET_KEY = os.getenv("SECRET_KEY", "dev_secret_key_123")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24 * 7))

ADMIN_USER = (os.getenv("ADMIN_USER", "admin").strip() or "admin")
ADMIN_PASS = os.getenv("ADMIN_PASS", "").strip()

# --- HTTP ---
CORS_ORIGINS = [
    "http://localhost:5173",
    "http://localhost:5174",
] + [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# --- MEMBER WRITES ---
MIN_BODY_WEIGHT = float(os.getenv("MIN_BODY_WEIGHT", 30))
MAX_BODY_WEIGHT = float(os.getenv("MAX_BODY_WEIGHT", 300))
# Hours of the day [start, end) in which members may log data
MEMBER_WRITE_WINDOW_START = int(os.getenv("MEMBER_WRITE_WINDOW_START", 0))
MEMBER_WRITE_WINDOW_END = int(os.getenv("MEMBER_WRITE_WINDOW_END", 24))
