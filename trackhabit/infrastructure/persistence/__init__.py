from trackhabit.domain.errors import ConfigurationError
from trackhabit.infrastructure.config import Settings

from .base import DataStore, DuplicateRowError
from .memory_store import InMemoryStore


def build_store(settings: Settings) -> DataStore:
    """Pick the data store implementation named in settings"""

    if settings.data_store == "memory":
        return InMemoryStore()

    if settings.data_store == "supabase":
        from .supabase_store import SupabaseStore
        return SupabaseStore(settings.supabase_url, settings.supabase_key)

    raise ConfigurationError(f"Unknown data store: {settings.data_store}")


__all__ = ["DataStore", "DuplicateRowError", "InMemoryStore", "build_store"]
