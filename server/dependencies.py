"""FastAPI dependency factories."""

from functools import lru_cache

from dotenv import load_dotenv
from fastapi import Depends

from server.config import Settings
from server.runtime import Runtime, runtime_from_settings

# Process-wide Runtime cache (keyed by settings identity for override support)
_runtime: Runtime | None = None
_runtime_settings_id: object | None = None


@lru_cache()
def get_settings() -> Settings:
    """Singleton Settings (reads .env first) -- override via app.dependency_overrides in tests."""
    load_dotenv()
    return Settings()


def get_runtime(settings: Settings = Depends(get_settings)) -> Runtime:
    """Process-wide Runtime holding the chunk index, its lock and upstream clients."""
    global _runtime, _runtime_settings_id
    # Recreate if settings were overridden (e.g. in tests)
    if _runtime is None or _runtime_settings_id is not settings:
        _runtime = runtime_from_settings(settings)
        _runtime_settings_id = settings
    return _runtime
