import hashlib
import math
import re
from datetime import datetime, timezone

_PRICE_RE = re.compile(r"\$?\s*(\d[\d,]*(?:\.\d+)?)\s*([km])?", re.IGNORECASE)
_RENT_RE = re.compile(r"\d[\d,]*")
_MULTIPLIERS = {"k": 1_000, "m": 1_000_000}

def normalize_name(name: str) -> str:
    """
    Minimal normalization so ids & lookups are stable:
    - trim whitespace
    - lowercase
    - collapse multiple spaces
    """
    return " ".join(name.strip().lower().split())

def suburb_id(suburb: str, state: str, postcode: str) -> str:
    """Stable record id: ``richmond-3121-vic``."""
    slug = "-".join(normalize_name(suburb).split(" "))
    return f"{slug}-{str(postcode).strip()}-{state.strip().lower()}"

def coerce_postcode(value) -> str:
    """
    Postcodes are strings. Integers lose their leading zero in JSON
    (NT 0800 arrives as 800), so numeric input is padded back to 4 digits.
    """
    if isinstance(value, bool):
        raise TypeError("postcode must be a string or integer")
    if isinstance(value, int):
        return str(value).zfill(4)
    if isinstance(value, float) and value.is_integer():
        return str(int(value)).zfill(4)
    return str(value).strip()

def parse_price_text(text: str | None) -> float:
    """
    Scraped price text → dollars. "$1.2m" → 1200000, "$850k" → 850000,
    "Offers over $1,450,000" → 1450000. No number → 0.
    """
    if not text:
        return 0.0
    match = _PRICE_RE.search(str(text))
    if not match:
        return 0.0
    try:
        num = float(match.group(1).replace(",", ""))
    except ValueError:
        return 0.0
    unit = (match.group(2) or "").lower()
    return num * _MULTIPLIERS.get(unit, 1)

def parse_rent_text(text: str | None) -> int:
    """Weekly rent text → dollars. "$650 per week" → 650. No number → 0."""
    if not text:
        return 0
    match = _RENT_RE.search(str(text))
    if not match:
        return 0
    return int(match.group(0).replace(",", ""))

def parse_price_string(price: str | None) -> float:
    """
    Manual form entry → dollars. Strips "$", "," and spaces; a K/M anywhere
    in the value scales it. Unparseable, negative or non-finite → 0.
    """
    if not price:
        return 0.0
    cleaned = re.sub(r"[$,\s]", "", str(price)).upper()
    multiplier = 1_000_000 if "M" in cleaned else 1_000 if "K" in cleaned else 1
    try:
        value = float(re.sub(r"[MK]", "", cleaned)) * multiplier
    except ValueError:
        return 0.0
    return value if math.isfinite(value) and value > 0 else 0.0

def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")

def fnv1a_32(s: str) -> int:
    """Deterministic, fast hash for seed generation."""
    h = 0x811c9dc5
    for c in s.encode("utf-8"):
        h ^= c
        h = (h * 0x01000193) & 0xFFFFFFFF
    return h

def seeded_rand(seed: int, n: int = 1) -> list[float]:
    """
    Stateless pseudo-random generator (Mulberry32-like) so
    same seed → same outputs without storing PRNG state.
    """
    out = []
    t = (seed + 0x6D2B79F5) & 0xFFFFFFFF
    for _ in range(n):
        t = (t ^ (t >> 15)) * (t | 1) & 0xFFFFFFFF
        t ^= t + ((t ^ (t >> 7)) * (t | 61) & 0xFFFFFFFF)
        r = ((t ^ (t >> 14)) & 0xFFFFFFFF) / 4294967296.0
        out.append(r)
    return out

def weak_etag(payload_bytes: bytes) -> str:
    """Weak ETag for client-side conditional requests."""
    h = hashlib.sha256(payload_bytes).hexdigest()[:24]
    return f'W/"{h}"'
