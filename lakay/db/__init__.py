from .supabase_store import SupabaseStore

__all__ = ["SupabaseStore"]
