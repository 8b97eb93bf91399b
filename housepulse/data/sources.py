import asyncio
import json
from pathlib import Path
from typing import Any

import httpx


def is_url(location: str) -> bool:
    return location.startswith(("http://", "https://"))


async def read_json_source(location: str, timeout: float = 10) -> Any:
    """
    Load a bundled reference file. `location` is a filesystem path or an
    http(s) URL. Raises on missing/unreadable/unparseable sources; callers
    decide how to degrade.
    """
    if is_url(location):
        async with httpx.AsyncClient(timeout=timeout) as client:
            r = await client.get(location)
            r.raise_for_status()
            return r.json()
    text = await asyncio.to_thread(Path(location).read_text, encoding="utf-8")
    return json.loads(text)
