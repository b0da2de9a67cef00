"""Configuration management from environment variables."""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env file
load_dotenv()

# Project root
PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = Path(os.getenv("DATA_DIR", str(PROJECT_ROOT / "data")))
OUTBOX_DIR = DATA_DIR / "outbox"
STATE_DB = DATA_DIR / "state.db"

# Ensure directories exist
DATA_DIR.mkdir(parents=True, exist_ok=True)
OUTBOX_DIR.mkdir(exist_ok=True)

DEFAULT_REMINDER_DAYS = "1,6,7,30,90,180"

POLICIES = ("per_record", "fixed")
GUARD_MODES = ("mark_before", "mark_after")
RUN_STATE_BACKENDS = ("sqlite", "supabase")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def parse_reminder_days(value: str) -> list[int]:
    """Parse a comma separated milestone list such as "1,7,30"."""
    days = []
    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        days.append(int(part))
    return days


class Config:
    """Application configuration."""

    # Supabase (document store)
    SUPABASE_URL: str | None = os.getenv("SUPABASE_URL")
    SUPABASE_SERVICE_ROLE: str | None = os.getenv("SUPABASE_SERVICE_ROLE")
    PRODUCTS_TABLE: str = os.getenv("PRODUCTS_TABLE", "products")

    # Run-once guard
    RUN_ONCE: bool = _env_bool("RUN_ONCE", True)
    GUARD_MODE: str = os.getenv("GUARD_MODE", "mark_before")
    RUN_STATE_BACKEND: str = os.getenv("RUN_STATE_BACKEND", "sqlite")
    RUN_STATE_TABLE: str = os.getenv("RUN_STATE_TABLE", "job_state")
    JOB_NAME: str = os.getenv("JOB_NAME", "expiry_reminder")
    STATE_DB: Path = Path(os.getenv("STATE_DB", str(STATE_DB)))

    # SMTP
    EMAIL_HOST: str | None = os.getenv("EMAIL_HOST")
    EMAIL_PORT: int = int(os.getenv("EMAIL_PORT", "465"))
    EMAIL_SECURE: bool = _env_bool("EMAIL_SECURE", True)
    EMAIL_STARTTLS: bool = _env_bool("EMAIL_STARTTLS", False)
    EMAIL_USER: str | None = os.getenv("EMAIL_USER")
    EMAIL_PASS: str | None = os.getenv("EMAIL_PASS")
    EMAIL_FROM: str | None = os.getenv("EMAIL_FROM")
    EMAIL_FROM_NAME: str = os.getenv("EMAIL_FROM_NAME", "Expiry Reminder")
    EMAIL_TIMEOUT: int = int(os.getenv("EMAIL_TIMEOUT", "20"))

    # Reminders
    REMINDER_POLICY: str = os.getenv("REMINDER_POLICY", "per_record")
    REMINDER_DAYS: str = os.getenv("REMINDER_DAYS", DEFAULT_REMINDER_DAYS)
    GROUPED: bool = _env_bool("GROUPED", True)
    CONCURRENCY: int = int(os.getenv("CONCURRENCY", "4"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # API
    API_KEY: str | None = os.getenv("API_KEY")
    PORT: int = int(os.getenv("PORT", "3000"))

    @property
    def sender_address(self) -> str | None:
        return self.EMAIL_FROM or self.EMAIL_USER

    @property
    def reminder_days(self) -> list[int]:
        return parse_reminder_days(self.REMINDER_DAYS)

    def validate(self, require_store: bool = True, require_mail: bool = True) -> None:
        """Validate required configuration."""
        errors = []
        if require_store:
            if not self.SUPABASE_URL:
                errors.append("SUPABASE_URL is required")
            if not self.SUPABASE_SERVICE_ROLE:
                errors.append("SUPABASE_SERVICE_ROLE is required")
        if require_mail:
            if not self.EMAIL_HOST:
                errors.append("EMAIL_HOST is required")
            if not self.EMAIL_USER or not self.EMAIL_PASS:
                errors.append("EMAIL_USER and EMAIL_PASS are required")
        if self.REMINDER_POLICY not in POLICIES:
            errors.append(f"REMINDER_POLICY must be one of {', '.join(POLICIES)}")
        if self.GUARD_MODE not in GUARD_MODES:
            errors.append(f"GUARD_MODE must be one of {', '.join(GUARD_MODES)}")
        if self.RUN_STATE_BACKEND not in RUN_STATE_BACKENDS:
            errors.append(f"RUN_STATE_BACKEND must be one of {', '.join(RUN_STATE_BACKENDS)}")
        if self.REMINDER_POLICY == "fixed":
            try:
                if not self.reminder_days:
                    errors.append("REMINDER_DAYS must list at least one day")
            except ValueError:
                errors.append(f"REMINDER_DAYS is not a list of integers: {self.REMINDER_DAYS!r}")
        if self.CONCURRENCY < 1:
            errors.append("CONCURRENCY must be at least 1")
        if errors:
            raise ValueError(f"Configuration errors: {', '.join(errors)}")


config = Config()
