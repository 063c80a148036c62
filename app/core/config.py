from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    DATABASE_URL: str
    SECRET_KEY: str
    ALGORITHM: str = "HS256"

    ENVIRONMENT: str = "development"  # "development" or "production"
    DEBUG: bool = False
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8081"]

    # Distance matrix provider
    ROUTING_PROVIDER: str = "graphhopper"
    GRAPHHOPPER_API_KEY: Optional[str] = None
    GEOAPIFY_API_KEY: Optional[str] = None
    ROUTING_TIMEOUT_SECONDS: float = 30.0

    # Savings estimation policy
    BASELINE_INFLATION_FACTOR: float = 1.2
    FUEL_EFFICIENCY_KM_PER_LITER: float = 10.0
    FUEL_PRICE_PER_LITER: Optional[float] = None

    # Fernet key for destination addresses at rest
    ADDRESS_ENCRYPTION_KEY: Optional[str] = None

    @property
    def is_production(self):
        return self.ENVIRONMENT == "production"

    @property
    def expose_error_details(self):
        return self.DEBUG and not self.is_production

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

settings = Settings()
