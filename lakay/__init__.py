"""
Limen Lakay shop backend.

Storefront, admin and chat-widget services for a small candle and concrete
vessel business, backed by Supabase.
"""

__version__ = "1.0.0"
