"""Expose constructed client wrappers."""

from .stripe import StripeClient
from .supabase import SupabaseAuthError, SupabaseClient

__all__ = [
    "StripeClient",
    "SupabaseAuthError",
    "SupabaseClient",
]
