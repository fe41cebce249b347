"""Supabase client construction."""

import logging
from functools import lru_cache

from supabase import Client, create_client

from ..config import get_settings

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_supabase_client() -> Client:
    """Create the service-role Supabase client once per process."""
    settings = get_settings()
    client = create_client(settings.supabase_url, settings.supabase_key)
    logger.info("Supabase client initialized")
    return client
