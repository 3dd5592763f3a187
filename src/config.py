"""
Configuration Module
------------------
Reads service settings from environment variables (optionally from a .env file).
DATA_DIR and SESSION_SECRET default to insecure placeholders and must be overridden
in any real deployment.
"""
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


DEFAULT_SESSION_SECRET = "change-me-insecure-session-secret"
NOMINATIM_BASE_URL = "https://nominatim.openstreetmap.org/reverse"
USER_AGENT = "EmployeeLocationTracker/1.0"

EMPLOYEES_FILENAME = "employees.csv"
PASSWORD_FILENAME = "password.txt"


def _env_bool(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    data_dir: Path = Path("./data")
    session_secret: str = DEFAULT_SESSION_SECRET
    session_max_age: int = 24 * 60 * 60
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"

    nominatim_url: str = NOMINATIM_BASE_URL
    geocoder_user_agent: str = USER_AGENT
    geocode_timeout: float = 10.0
    geocode_ttl: float = 24 * 60 * 60

    # First-come-first-served guard on location updates
    sharing_conflict_guard: bool = False
    sharing_conflict_window: float = 10 * 60

    login_max_attempts: int = 5
    login_window: float = 15 * 60

    # Applies to every API route, login included
    request_max_per_window: int = 100
    request_window: float = 15 * 60

    @property
    def employees_file(self) -> Path:
        return self.data_dir / EMPLOYEES_FILENAME

    @property
    def password_file(self) -> Path:
        return self.data_dir / PASSWORD_FILENAME

    @property
    def uses_default_secret(self) -> bool:
        return self.session_secret == DEFAULT_SESSION_SECRET


def load_settings() -> Settings:
    load_dotenv()

    return Settings(
        data_dir=Path(os.getenv("DATA_DIR", "./data")),
        session_secret=os.getenv("SESSION_SECRET", DEFAULT_SESSION_SECRET),
        session_max_age=int(os.getenv("SESSION_MAX_AGE", 24 * 60 * 60)),
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", 3000)),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        nominatim_url=os.getenv("NOMINATIM_URL", NOMINATIM_BASE_URL),
        geocoder_user_agent=os.getenv("GEOCODER_USER_AGENT", USER_AGENT),
        geocode_timeout=float(os.getenv("GEOCODE_TIMEOUT", 10)),
        geocode_ttl=float(os.getenv("GEOCODE_TTL", 24 * 60 * 60)),
        sharing_conflict_guard=_env_bool("SHARING_CONFLICT_GUARD"),
        sharing_conflict_window=float(os.getenv("SHARING_CONFLICT_WINDOW", 10 * 60)),
        login_max_attempts=int(os.getenv("LOGIN_MAX_ATTEMPTS", 5)),
        login_window=float(os.getenv("LOGIN_WINDOW", 15 * 60)),
        request_max_per_window=int(os.getenv("REQUEST_MAX_PER_WINDOW", 100)),
        request_window=float(os.getenv("REQUEST_WINDOW", 15 * 60)),
    )
