"""Supabase admin client"""
import logging
from typing import Optional
from supabase import create_client, Client
from tarana.config import settings

logger = logging.getLogger(__name__)


class SupabaseClient:
    """
    Singleton Supabase client wrapper.

    Uses the service-role key, so it must only ever be created in a trusted
    server context. When the URL or key is missing the client stays
    uninitialized and ``get_client`` returns None.
    """
    _instance: Optional[Client] = None
    _warned: bool = False

    @classmethod
    def get_client(cls) -> Optional[Client]:
        """Get or create Supabase admin client instance (None if not configured)"""
        if cls._instance is None:
            if not settings.supabase_url or not settings.supabase_service_role_key:
                if not cls._warned:
                    logger.warning(
                        "Supabase admin client not initialized. "
                        "Set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY in a server environment."
                    )
                    cls._warned = True
                return None
            cls._instance = create_client(
                supabase_url=settings.supabase_url,
                supabase_key=settings.supabase_service_role_key
            )
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Drop the cached client (used when settings change)"""
        cls._instance = None
        cls._warned = False
