from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # API configuration
    api_version: str = "1.0"

    # Nominatim geocoding configuration
    nominatim_base_url: str = "https://nominatim.openstreetmap.org"
    geocoding_user_agent: str = "Roadbook/1.0 (contact@roadbook.example)"
    geocoding_language: str = "en"
    geocoding_timeout_s: float = 10.0

    # API call limits
    max_geocode_calls_per_day: int = 5000

    # Geocode cache: "none" | "memory" | "redis"
    geocode_cache_backend: str = "none"
    geocode_cache_ttl_s: int = 86400
    redis_url: str = ""

    # OSRM routing engine configuration
    osrm_base_url: str = "https://router.project-osrm.org"
    routing_profile: str = "driving"
    routing_timeout_s: float = 15.0

    # OpenAI configuration
    openai_model: str = "gpt-4o-mini"
    openai_api_key: str = ""
    openai_base_url: Optional[str] = None
    openai_temperature: float = 0.4

    # Each POI geocode gets its own deadline so one slow lookup can't stall enrichment
    poi_geocode_timeout_s: float = 10.0

    # MongoDB configuration for saved routes
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db_name: str = "roadbook"
    mongo_routes_collection: str = "saved_routes"

    # Bearer token verification (HS256, e.g. Supabase JWT secret)
    jwt_secret: str = ""
    jwt_audience: str = "authenticated"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
