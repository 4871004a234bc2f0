import os

# Base directory
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# Paths
STATIC_DIR = os.getenv("STATIC_DIR", os.path.join(BASE_DIR, "static"))
LOG_FILE = os.getenv("LOG_FILE", os.path.join(BASE_DIR, "launch.log"))
QUESTIONS_FILE = os.getenv("QUESTIONS_FILE", "")  # JSON pool; empty → built-in samples

# Server
DEFAULT_HOST = os.getenv("HOST", "127.0.0.1")
DEFAULT_PORT = int(os.getenv("PORT", "0"))  # 0 → pick a free port
OPEN_BROWSER = os.getenv("OPEN_BROWSER", "1") == "1"

# Hosted database (PostgREST)
SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_KEY = os.getenv("SUPABASE_KEY", "")
SUPABASE_TIMEOUT = float(os.getenv("SUPABASE_TIMEOUT", "10"))

# Exam rules
EXAM_DURATION_MINUTES = 30
TOTAL_QUESTIONS = 20
PRACTICE_QUESTIONS = 10
TAB_SWITCH_WARNINGS_MAX = 2
PASS_SCORE = 70

# Result write retries
PERSIST_RETRIES = 3
PERSIST_BACKOFF_BASE = 1.0  # seconds, doubled per attempt

# Sessions
SESSION_TTL = 3600      # idle seconds before a user's session is dropped
CLEANUP_INTERVAL = 300  # sweep period
