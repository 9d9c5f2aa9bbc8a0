import logging
from supabase import Client
from typing import Any, Callable, Dict, List

from adotai.core.capabilities import ViewCapabilities
from adotai.core.errors import is_missing_relation

logger = logging.getLogger(__name__)

Row = Dict[str, Any]


def read_with_view_fallback(
    supabase: Client,
    view: str,
    view_query: Callable[[Any], Any],
    table_query: Callable[[], Any],
    flatten: Callable[[Row], Row],
) -> List[Row]:
    """
    Read a denormalized shape from ``view`` when it exists, otherwise from the
    manual-join ``table_query`` passed through ``flatten``. ``view_query``
    receives ``supabase.table(view)`` and adds filters/order.
    """
    if ViewCapabilities.has_view(supabase, view):
        try:
            return view_query(supabase.table(view)).execute().data or []
        except Exception as e:
            if not is_missing_relation(e):
                raise
            logger.warning(f"View '{view}' disappeared; switching to manual joins")
            ViewCapabilities.mark_missing(view)
    result = table_query().execute()
    return [flatten(row) for row in result.data or []]


def pop_embedded(row: Row, key: str) -> Row:
    """Remove an embedded join object from ``row`` and return it (empty dict when missing)."""
    embedded = row.pop(key, None)
    return embedded if isinstance(embedded, dict) else {}
