"""
Configuration management using Pydantic Settings
"""
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent
ENV_FILE = BASE_DIR / ".env"
if ENV_FILE.exists():
    load_dotenv(ENV_FILE)


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    # Application
    app_name: str = "ebox86-site"
    app_env: str = Field(default="development", description="Application environment")
    site_url: str = Field(default="https://ebox86.com", description="Public origin used in the sitemap")
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log format: 'json' or 'text'")

    # Content (Sanity)
    sanity_project_id: Optional[str] = Field(default=None, description="Sanity project id")
    sanity_dataset: str = Field(default="production")
    sanity_api_version: str = Field(default="2021-08-31")
    sanity_use_cdn: bool = Field(default=True)
    sanity_token: Optional[str] = Field(default=None, description="Read token for private datasets")

    # Rendering
    revalidate_seconds: int = Field(default=600, ge=0, description="Page regeneration interval")
    blog_page_size: int = Field(default=10, ge=1)
    projects_page_size: int = Field(default=6, ge=1)
    recent_project_days: int = Field(default=30, ge=1)

    # Captcha (hCaptcha)
    captcha_site_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("NEXT_PUBLIC_CAPTCHA_KEY", "CAPTCHA_SITE_KEY", "captcha_site_key"),
    )
    captcha_secret: Optional[str] = Field(default=None)
    captcha_verify_url: str = Field(default="https://api.hcaptcha.com/siteverify")

    # Email (Mailjet)
    mj_apikey_public: Optional[str] = Field(default=None)
    mj_apikey_private: Optional[str] = Field(default=None)
    mailjet_url: str = Field(default="https://api.mailjet.com/v3.1/send")
    contact_sender_email: str = Field(default="evan@ebox86.com")
    contact_sender_name: str = Field(default="Portfolio Website")
    contact_recipient_email: str = Field(default="evan@ebox86.com")
    contact_recipient_name: str = Field(default="Evan")

    # TheCatAPI
    cat_api_key: Optional[str] = Field(default=None)
    cat_api_url: str = Field(default="https://api.thecatapi.com/v1")

    # Admin / revalidation
    admin_email: str = Field(default="admin@ebox86.com")
    admin_password: str = Field(default="admin123")
    admin_password_hash: Optional[str] = Field(default=None)
    jwt_secret: str = Field(default="super-secret-key-change")
    access_token_expire_minutes: int = Field(default=60 * 12, ge=1)

    http_timeout_seconds: float = Field(default=10.0, gt=0)

    @field_validator("captcha_site_key", "captcha_secret", "mj_apikey_public", "mj_apikey_private",
                     "cat_api_key", "sanity_project_id", "sanity_token", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        """Treat empty / whitespace-only env values as unset"""
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("json", "text"):
            raise ValueError("log_format must be 'json' or 'text'")
        return v

    @property
    def email_configured(self) -> bool:
        return bool(self.mj_apikey_public and self.mj_apikey_private and self.captcha_secret)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
