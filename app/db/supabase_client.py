"""
Shared Supabase client for the ``question_papers`` and ``questions`` tables.

Paper reads and writes run in worker threads (``asyncio.to_thread``),
so the singleton is built under a lock. The service role key is preferred
because the generator inserts papers and their questions without a user
session; the anon key works only where RLS allows those writes.
"""

import threading
from supabase import create_client, Client
from app.config import get_settings

_client: Client | None = None
_lock = threading.Lock()


def get_supabase_client() -> Client:
    """
    Return the process-wide client, creating it on first use.

    Raises:
        ValueError: If SUPABASE_URL or the chosen key is rejected by the SDK
    """
    global _client
    if _client is not None:
        return _client
    with _lock:
        if _client is None:
            settings = get_settings()
            key = settings.supabase_service_role_key or settings.supabase_key
            try:
                _client = create_client(settings.supabase_url, key)
            except Exception as e:
                raise ValueError(f"Failed to create Supabase client: {str(e)}") from e
        return _client


def reset_supabase_client() -> None:
    """Drop the cached client so the next call rebuilds it from settings."""
    global _client
    with _lock:
        _client = None
