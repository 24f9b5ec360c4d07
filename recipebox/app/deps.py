# recipebox/app/deps.py (one supabase client per process)

from __future__ import annotations

from supabase import Client, create_client

from recipebox.app.config import Settings, settings
from recipebox.app.domain.errors import ConfigurationError

_client: Client | None = None


def build_supabase(config: Settings) -> Client:
    errors = config.validate_backend()
    if errors:
        raise ConfigurationError(errors)
    return create_client(str(config.SUPABASE_URL), config.SUPABASE_ANON_KEY)


def get_supabase() -> Client:
    global _client
    if _client is None:
        _client = build_supabase(settings)
    return _client


def reset_supabase() -> None:
    global _client
    _client = None
