"""Database clients and utilities."""

from .supabase import get_supabase_client, require_supabase_client

__all__ = ["get_supabase_client", "require_supabase_client"]
