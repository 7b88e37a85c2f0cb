from typing import List, Union

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # API Configuration
    api_v1_prefix: str = Field(default="/api/v1")
    api_title: str = Field(default="Benefit Flow API")
    api_version: str = Field(default="1.0.0")
    port: int = Field(default=8000)
    # Empty: per-environment default (DEBUG in development, WARNING in tests, INFO elsewhere)
    log_level: str = Field(default="")

    # Environment (for conditional validation)
    environment: str = Field(default="development")

    # Redis
    redis_url: str = Field(default="redis://localhost:6379")

    # Session
    # "redis" in every deployed environment; "memory" keeps sessions in-process (tests, local demos)
    session_backend: str = Field(default="redis")
    session_cookie_name: str = Field(default="benefitflow_session")
    session_ttl_seconds: int = Field(default=3600)

    # Flow state: inactivity window after which a stored flow is treated as missing
    flow_state_timeout_minutes: int = Field(default=20)

    # Application year seeded into new apply flows
    application_year_id: str = Field(default="2025")
    application_tax_year: str = Field(default="2024")
    dependent_eligibility_end_date: str = Field(default="2025-06-30")

    # Fallback destinations for invalid, unknown or expired flows
    cdcp_website_apply_url_en: str = Field(
        default="https://www.canada.ca/en/services/benefits/dental/dental-care-plan/apply.html"
    )
    cdcp_website_apply_url_fr: str = Field(
        default="https://www.canada.ca/fr/services/prestations/dentaire/regime-soins-dentaires/demande.html"
    )
    protected_dashboard_url_en: str = Field(default="/en/protected/home")
    protected_dashboard_url_fr: str = Field(default="/fr/protege/accueil")

    # Reference data
    canada_country_id: str = Field(default="CAN")
    usa_country_id: str = Field(default="USA")

    # Address validation service (mocked when the base url is empty)
    address_validation_api_base_url: str = Field(default="")
    address_validation_timeout_seconds: float = Field(default=5.0)

    # Benefit application submission (mocked when the url is empty)
    benefit_application_api_url: str = Field(default="")
    benefit_application_timeout_seconds: float = Field(default=10.0)

    # CORS
    cors_origins: Union[str, List[str]] = Field(default="http://localhost:3000")
    cors_allow_credentials: bool = Field(default=True)

    # Rate Limiting
    rate_limit_requests: int = Field(default=100)
    rate_limit_period: int = Field(default=60)

    @model_validator(mode="after")
    def validate_production_session_backend(self):
        """Sessions must survive restarts and be shared across workers in production"""
        if self.environment == "production" and self.session_backend != "redis":
            raise ValueError(
                "SESSION_BACKEND must be 'redis' in production. "
                "The in-memory backend loses every flow on restart."
            )
        return self

    @field_validator("session_backend")
    @classmethod
    def validate_session_backend(cls, v):
        if v not in ("redis", "memory"):
            raise ValueError(f"Unknown session backend: {v}")
        return v

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            # Handle comma-separated string
            return [origin.strip() for origin in v.split(",")]
        return v

    @field_validator("cors_origins", mode="after")
    @classmethod
    def ensure_cors_is_list(cls, v):
        if isinstance(v, str):
            return [v]
        return v

    def get_fallback_url(self, lang: str, protected: bool = False) -> str:
        """Where an expired or tampered flow sends the user to restart the journey."""
        if protected:
            return self.protected_dashboard_url_fr if lang == "fr" else self.protected_dashboard_url_en
        return self.cdcp_website_apply_url_fr if lang == "fr" else self.cdcp_website_apply_url_en


settings = Settings()
