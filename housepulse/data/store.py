import asyncio
import json
import logging
import os
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from .base import RecordStore
from ..core.config import settings
from ..core.errors import StoreError
from ..schemas import SuburbRecord

logger = logging.getLogger(__name__)


class JsonFileStore(RecordStore):
    """
    Flat-file store: the whole collection lives in one JSON array.

    Every mutation is read-modify-write of the full file. The lock serialises
    writers inside this process only; two processes writing the same file can
    still lose updates.
    """
    def __init__(self, path: str | Path = settings.STORE_PATH):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def _read(self) -> List[SuburbRecord]:
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8") or "[]")
        except (OSError, json.JSONDecodeError) as exc:
            raise StoreError(f"Failed to read {self.path}: {exc}") from exc
        if not isinstance(raw, list):
            raise StoreError(f"Failed to read {self.path}: expected a JSON array")
        try:
            return [SuburbRecord.model_validate(item) for item in raw]
        except ValidationError as exc:
            raise StoreError(f"Failed to read {self.path}: invalid record ({exc.error_count()} errors)") from exc

    def _write(self, records: List[SuburbRecord]) -> None:
        body = json.dumps([r.to_json() for r in records], indent=2)
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(body, encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as exc:
            raise StoreError(f"Failed to write {self.path}: {exc}") from exc

    async def list(self) -> List[SuburbRecord]:
        return await asyncio.to_thread(self._read)

    async def get(self, record_id: str) -> Optional[SuburbRecord]:
        return next((r for r in await self.list() if r.id == record_id), None)

    async def upsert(self, record: SuburbRecord) -> None:
        async with self._lock:
            records = await asyncio.to_thread(self._read)
            for i, existing in enumerate(records):
                if existing.id == record.id:
                    records[i] = record
                    break
            else:
                records.append(record)
            await asyncio.to_thread(self._write, records)
        logger.info("Saved suburb %s", record.id)

    async def remove(self, record_id: str) -> None:
        async with self._lock:
            records = await asyncio.to_thread(self._read)
            await asyncio.to_thread(self._write, [r for r in records if r.id != record_id])
        logger.info("Deleted suburb %s", record_id)

    async def clear(self) -> None:
        async with self._lock:
            await asyncio.to_thread(self._write, [])
        logger.info("Cleared all suburbs")


class InMemoryStore(RecordStore):
    """Same contract as JsonFileStore, held in a dict. Insertion ordered."""
    def __init__(self, records: List[SuburbRecord] | None = None):
        self._records: dict[str, SuburbRecord] = {r.id: r for r in records or []}

    async def list(self) -> List[SuburbRecord]:
        return list(self._records.values())

    async def get(self, record_id: str) -> Optional[SuburbRecord]:
        return self._records.get(record_id)

    async def upsert(self, record: SuburbRecord) -> None:
        self._records[record.id] = record

    async def remove(self, record_id: str) -> None:
        self._records.pop(record_id, None)

    async def clear(self) -> None:
        self._records.clear()


def record_store() -> RecordStore:
    return JsonFileStore(settings.STORE_PATH)
