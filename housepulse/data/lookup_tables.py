import asyncio
import logging
from typing import Dict, Optional

from ..core.config import settings
from .sources import read_json_source

logger = logging.getLogger(__name__)


class PostcodeLookup:
    """
    Pre-built postcode → value table (dominant language, dominant occupation).

    Loaded lazily on first use and kept for the life of the instance. A table
    that fails to load is kept as empty: lookups then miss, they don't fail.
    """
    def __init__(self, source: str, name: str = "lookup"):
        self.source = source
        self.name = name
        self._table: Optional[Dict[str, str]] = None
        self._lock = asyncio.Lock()

    async def load(self) -> Dict[str, str]:
        if self._table is not None:
            return self._table
        async with self._lock:
            if self._table is None:
                try:
                    raw = await read_json_source(self.source)
                    if not isinstance(raw, dict):
                        raise ValueError(f"expected a JSON object, got {type(raw).__name__}")
                    self._table = {str(k): str(v) for k, v in raw.items() if v}
                except Exception:
                    logger.warning("Failed to load %s table from %s", self.name, self.source, exc_info=True)
                    self._table = {}
        return self._table

    async def get(self, postcode: str) -> Optional[str]:
        return (await self.load()).get(postcode)


def language_lookup() -> PostcodeLookup:
    return PostcodeLookup(settings.LANGUAGE_LOOKUP_SOURCE, name="language")


def occupation_lookup() -> PostcodeLookup:
    return PostcodeLookup(settings.OCCUPATION_LOOKUP_SOURCE, name="occupation")
