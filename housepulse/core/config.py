import os
from pathlib import Path
from pydantic import BaseModel

RESOURCES_DIR = Path(__file__).resolve().parent.parent / "resources"

class Settings(BaseModel):
    # Basic
    ENV: str = os.getenv("ENV", "dev")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    CACHE_TTL_SECONDS: int = int(os.getenv("CACHE_TTL_SECONDS", "120"))

    # Record store (flat JSON file)
    DATA_DIR: str = os.getenv("DATA_DIR", "./data")
    STORE_PATH: str = os.getenv("STORE_PATH", os.path.join(os.getenv("DATA_DIR", "./data"), "suburbs-data.json"))

    # Reference data: file path or http(s) URL
    GAZETTEER_SOURCE: str = os.getenv("GAZETTEER_SOURCE", str(RESOURCES_DIR / "suburbs.json"))
    LANGUAGE_LOOKUP_SOURCE: str = os.getenv("LANGUAGE_LOOKUP_SOURCE", str(RESOURCES_DIR / "census-language.json"))
    OCCUPATION_LOOKUP_SOURCE: str = os.getenv("OCCUPATION_LOOKUP_SOURCE", str(RESOURCES_DIR / "census-occupation.json"))

    # Census provider
    CENSUS_PROVIDER: str = os.getenv("CENSUS_PROVIDER", "http")    # http | mock (offline dev only)
    CENSUS_BASE_URL: str = os.getenv("CENSUS_BASE_URL", "https://data.api.abs.gov.au/rest/data")
    CENSUS_TIMEOUT_SECONDS: float = float(os.getenv("CENSUS_TIMEOUT_SECONDS", "15"))
    CENSUS_YEAR: int = int(os.getenv("CENSUS_YEAR", "2021"))

    # Security
    API_KEY: str | None = os.getenv("API_KEY")
    RATE_LIMIT_RPM: int = int(os.getenv("RATE_LIMIT_RPM", "60"))

    # CORS
    ALLOW_ORIGINS: str = os.getenv("ALLOW_ORIGINS", "*")

    # Cache (rate-limit buckets)
    USE_REDIS: bool = os.getenv("USE_REDIS", "false").lower() == "true"
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")

    # Metrics
    PROMETHEUS_ENABLED: bool = os.getenv("PROMETHEUS_ENABLED", "true").lower() == "true"

settings = Settings()
