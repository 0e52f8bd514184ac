"""Supabase client shared by the record and slot repositories."""

import logging
from functools import lru_cache

from supabase import Client, create_client

from app.core.config import settings

logger = logging.getLogger("Recruit.Database")


@lru_cache(maxsize=1)
def get_supabase() -> Client:
    """Create the Supabase client on first use."""
    if not settings.SUPABASE_URL or not settings.SUPABASE_KEY:
        raise RuntimeError("SUPABASE_URL and SUPABASE_KEY must be set")
    logger.info("Supabase client initialized")
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)
