"""Application settings and configuration."""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from netknife.models.intel import ScoringProfile


class Environment(str, Enum):
    """Environment types for deployment."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class CacheBackendType(str, Enum):
    """Supported response cache backing stores."""
    MEMORY = "memory"
    REDIS = "redis"


class Settings(BaseSettings):
    """Application settings."""

    # Environment
    ENVIRONMENT: Environment = Environment.DEVELOPMENT

    # Application
    APP_NAME: str = "NetKnife Intel"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "console"  # "console" or "json"

    # Provider API keys
    EMAILREP_API_KEY: Optional[str] = None  # Optional, raises EmailRep rate limits
    IPQS_API_KEY: Optional[str] = None
    HUNTER_API_KEY: Optional[str] = None
    ABUSEIPDB_API_KEY: Optional[str] = None

    # External Service Timeouts (seconds)
    PROVIDER_TIMEOUT: float = 10.0
    PROVIDER_TIMEOUT_OVERRIDES: Dict[str, float] = Field(default_factory=dict)
    REQUEST_DEADLINE: Optional[float] = 25.0  # <= 0 disables the overall deadline

    # Response cache
    CACHE_BACKEND: CacheBackendType = CacheBackendType.MEMORY
    REDIS_URL: str = "redis://localhost:6379/0"
    CACHE_KEY_PREFIX: str = "netknife:intel:"
    CACHE_MAX_ENTRIES: int = 10000
    CACHE_TTL_OVERRIDES: Dict[str, int] = Field(default_factory=dict)

    # Scoring
    SCORING_PROFILE: str = "osint_dashboard"

    # Providers
    DISABLED_PROVIDERS: List[str] = Field(default_factory=list)
    DKIM_SELECTOR: str = "default"
    USER_AGENT: str = "NetKnife-Intel/1.0"

    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    @field_validator("PROVIDER_TIMEOUT")
    @classmethod
    def validate_provider_timeout(cls, v: float) -> float:
        """Provider timeout must be a positive number of seconds."""
        if v <= 0:
            raise ValueError("PROVIDER_TIMEOUT must be greater than zero")
        return v

    @field_validator("PROVIDER_TIMEOUT_OVERRIDES")
    @classmethod
    def validate_timeout_overrides(cls, v: Dict[str, float]) -> Dict[str, float]:
        """Every per-provider override must be positive."""
        for provider_id, timeout in v.items():
            if timeout <= 0:
                raise ValueError(f"Timeout override for {provider_id} must be greater than zero")
        return v

    @field_validator("REQUEST_DEADLINE")
    @classmethod
    def validate_request_deadline(cls, v: Optional[float]) -> Optional[float]:
        """Zero or negative disables the overall deadline."""
        if v is not None and v <= 0:
            return None
        return v

    @field_validator("SCORING_PROFILE")
    @classmethod
    def validate_scoring_profile(cls, v: str) -> str:
        """Scoring profile must name a known rule table."""
        try:
            return ScoringProfile(v.lower()).value
        except ValueError:
            known = ", ".join(p.value for p in ScoringProfile)
            raise ValueError(f"SCORING_PROFILE must be one of: {known}")

    @field_validator("LOG_FORMAT")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Log format is either console or json."""
        v = v.lower()
        if v not in ("console", "json"):
            raise ValueError("LOG_FORMAT must be 'console' or 'json'")
        return v

    def is_production(self) -> bool:
        """Check if running in production."""
        return self.ENVIRONMENT == Environment.PRODUCTION

    def get_provider_api_keys(self) -> Dict[str, Optional[str]]:
        """API keys by provider id."""
        return {
            "emailrep": self.EMAILREP_API_KEY,
            "ipqs_email": self.IPQS_API_KEY,
            "ipqualityscore": self.IPQS_API_KEY,
            "hunter": self.HUNTER_API_KEY,
            "abuseipdb": self.ABUSEIPDB_API_KEY,
        }

    model_config = {
        "env_file": ".env",
        "case_sensitive": True,
        "extra": "ignore"
    }


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings."""
    return settings
