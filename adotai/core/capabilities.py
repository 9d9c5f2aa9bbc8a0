import logging
import threading
from supabase import Client
from typing import Dict, Iterable

from adotai.core.errors import is_missing_relation

logger = logging.getLogger(__name__)


class ViewCapabilities:
    """
    Process-wide record of which denormalized read views exist.

    Probed once (at startup, or lazily on first use) and cached; queries then
    pick the view or the manual-join shape without re-checking error codes.
    """
    _available: Dict[str, bool] = {}
    _lock = threading.Lock()

    @classmethod
    def probe(cls, supabase: Client, views: Iterable[str]) -> Dict[str, bool]:
        for view in views:
            cls.has_view(supabase, view)
        return dict(cls._available)

    @classmethod
    def has_view(cls, supabase: Client, view: str) -> bool:
        if view in cls._available:
            return cls._available[view]
        with cls._lock:
            if view not in cls._available:
                cls._available[view] = cls._check(supabase, view)
        return cls._available[view]

    @classmethod
    def _check(cls, supabase: Client, view: str) -> bool:
        try:
            supabase.table(view).select("id").limit(1).execute()
            logger.info(f"Read view '{view}' available")
            return True
        except Exception as e:
            if is_missing_relation(e):
                logger.info(f"Read view '{view}' missing; using manual joins")
                return False
            # Not a schema answer; don't cache a guess
            logger.warning(f"Could not probe view '{view}': {e}")
            raise

    @classmethod
    def mark_missing(cls, view: str):
        with cls._lock:
            cls._available[view] = False

    @classmethod
    def reset(cls):
        with cls._lock:
            cls._available.clear()
