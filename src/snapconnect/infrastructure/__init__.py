"""Adapters for the hosted backend (object store, relational API, RPC)."""

from __future__ import annotations

from .media_storage import MediaStorage, StorageObject
from .supabase_rest import SupabaseRest
from .supabase_storage import SupabaseStorage

__all__ = ["MediaStorage", "StorageObject", "SupabaseRest", "SupabaseStorage"]
