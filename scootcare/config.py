import os
from dotenv import load_dotenv
from typing import Optional

# Load .env into the environment (no-op if not present). In deployments the
# variables are usually injected by the platform instead.
load_dotenv()

SESSION_TTL_DAYS = 30
SAVE_RETRIES = 3

MAX_MESSAGE_CHARS = 2000
MAX_ATTACHMENT_MB = 10
QUICK_QUESTION_LIMIT = 4

RATE_WINDOW_SECONDS = 60.0
RATE_MAX_REQUESTS = 20

STORAGE_BUCKET = os.getenv("SCOOTCARE_STORAGE_BUCKET", "chat-files")

GREETING = "Hello! I'm here to help you with your ScootCare needs. How can I assist you today?"
FALLBACK_REPLY = ("I understand your question, but I don't have a specific answer for that. "
                  "Would you like me to escalate this to our support team?")
UNRESOLVED_REPLY = ("I recognised your question but I'm unable to resolve it right now. "
                    "Would you like me to escalate this to our support team?")
DEGRADED_REPLY = ("I recognised your question, but I couldn't retrieve that information just now. "
                  "Please try again in a few moments, or escalate this to our support team.")
FILE_ONLY_REPLY = "Thank you for uploading the file for reference. How can I help you with this?"
ESCALATION_NOTICE = ("Your conversation has been escalated to our human support team (ticket {ticket_id}). "
                     "Someone will get back to you within 24 hours.")


def get_supabase_url() -> Optional[str]:
    return os.getenv("SUPABASE_URL") or None


def get_supabase_key() -> Optional[str]:
    # The service role key wins so server-side writes bypass row level security.
    return os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("SUPABASE_ANON_KEY") or None


def get_backend_name() -> str:
    """Return "supabase" or "memory".

    SCOOTCARE_BACKEND forces a choice; otherwise Supabase is used whenever
    both the URL and a key are present.
    """
    forced = (os.getenv("SCOOTCARE_BACKEND") or "").strip().lower()
    if forced in {"memory", "supabase"}:
        return forced
    return "supabase" if (get_supabase_url() and get_supabase_key()) else "memory"


def get_log_dir() -> str:
    return os.getenv("SCOOTCARE_LOG_DIR") or os.path.join(os.path.dirname(__file__), "..", "logs")
