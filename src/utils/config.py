import os
from dataclasses import dataclass


def _get_bool(env_name: str, default: bool = False) -> bool:
    val = os.getenv(env_name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


@dataclass
class Settings:
    # Storage
    DB_PATH: str = os.getenv("PORTAL_DB_PATH", "data/portal.sqlite")
    FAVORITES_PATH: str = os.getenv("PORTAL_FAVORITES_PATH", "data/favorites.json")
    SEED: bool = _get_bool("PORTAL_SEED", True)

    # Hard-coded admin credential, there is no real account system
    ADMIN_USER: str = os.getenv("PORTAL_ADMIN_USER", "admin")
    ADMIN_PASSWORD: str = os.getenv("PORTAL_ADMIN_PASSWORD", "1234")

    # Orders without a client id go to the first active client (dev only)
    DEFAULT_CLIENT_FALLBACK: bool = _get_bool("PORTAL_DEFAULT_CLIENT_FALLBACK", False)


settings = Settings()
