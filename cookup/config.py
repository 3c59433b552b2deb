"""
Application settings loaded from the environment
"""
import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

DEFAULT_MEALDB_BASE_URL = "https://www.themealdb.com/api/json/v1/1"
DEFAULT_PREFERENCES_PATH = os.path.join("~", ".cookup", "preferences.json")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: List[str]) -> List[str]:
    value = os.getenv(name)
    if not value:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    """Runtime configuration for the API and the favorites store."""
    mealdb_base_url: str = DEFAULT_MEALDB_BASE_URL
    mealdb_timeout: float = 15.0
    preferences_path: str = DEFAULT_PREFERENCES_PATH
    firebase_enabled: bool = True
    firebase_service_account_path: Optional[str] = None
    firebase_project_id: Optional[str] = None
    home_random_count: int = 8
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:3000"])
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from environment variables.

        Returns:
            Settings instance with defaults for anything unset
        """
        return cls(
            mealdb_base_url=os.getenv("MEALDB_BASE_URL", DEFAULT_MEALDB_BASE_URL).rstrip("/"),
            mealdb_timeout=float(os.getenv("MEALDB_TIMEOUT", "15.0")),
            preferences_path=os.path.expanduser(
                os.getenv("COOKUP_PREFERENCES_PATH", DEFAULT_PREFERENCES_PATH)
            ),
            firebase_enabled=_env_bool("FIREBASE_ENABLED", True),
            firebase_service_account_path=os.getenv("FIREBASE_SERVICE_ACCOUNT_PATH"),
            firebase_project_id=os.getenv("FIREBASE_PROJECT_ID"),
            home_random_count=int(os.getenv("COOKUP_HOME_RANDOM_COUNT", "8")),
            cors_origins=_env_list("COOKUP_CORS_ORIGINS", ["http://localhost:3000"]),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
