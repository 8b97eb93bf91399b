from typing import Protocol, List, Optional
from dataclasses import dataclass

from ..schemas import SuburbRecord

# ----- Data shapes (thin & explicit) -----

@dataclass
class CensusMedians:
    median_age: Optional[float] = None
    median_weekly_income: Optional[float] = None   # personal, $/week
    source: str = "abs-api"                         # "fallback" for made-up values

    @property
    def complete(self) -> bool:
        return self.median_age is not None and self.median_weekly_income is not None

# ----- Protocols (interfaces) -----

class CensusClient(Protocol):
    async def medians(self, postcode: str) -> CensusMedians: ...

class RecordStore(Protocol):
    """
    Canonical record collection keyed by id. No ordering guarantee on list().
    Single writer at a time: upsert/remove/clear rewrite the whole collection.
    Failures raise StoreError.
    """
    async def list(self) -> List[SuburbRecord]: ...
    async def get(self, record_id: str) -> Optional[SuburbRecord]: ...
    async def upsert(self, record: SuburbRecord) -> None: ...
    async def remove(self, record_id: str) -> None: ...
    async def clear(self) -> None: ...
