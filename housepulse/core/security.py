from fastapi import Header, HTTPException, Request
from starlette.status import HTTP_401_UNAUTHORIZED, HTTP_429_TOO_MANY_REQUESTS
from datetime import datetime, timezone
from .config import settings
from .cache import cache

def require_api_key(x_api_key: str | None = Header(default=None, alias="x-api-key")):
    """
    Guards routes that write to the record store. Reads stay open.
    No API_KEY configured means a local single-user install: allow.
    """
    if not settings.API_KEY:
        return
    if x_api_key != settings.API_KEY:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Invalid API key")

def write_bucket(request: Request, now: datetime | None = None) -> str:
    caller = request.headers.get("x-api-key") or (request.client.host if request.client else "unknown")
    minute = (now or datetime.now(timezone.utc)).strftime("%Y%m%d%H%M")
    return f"writes:{caller}:{minute}"

def rate_limit(request: Request):
    """
    Writes per minute per caller (API key, else client IP). Every write is a
    full rewrite of the store file, so bursts are cut off here.
    """
    limit = max(1, settings.RATE_LIMIT_RPM)
    key = write_bucket(request)
    try:
        count = int(cache.get(key) or 0) + 1
    except ValueError:
        count = 1
    if count > limit:
        raise HTTPException(status_code=HTTP_429_TOO_MANY_REQUESTS, detail="Rate limit exceeded")
    cache.set(key, str(count))
