from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None  # Required for auth admin calls and RLS-bypassing writes

    # Resend (email notifications are skipped when the key is missing)
    resend_api_key: Optional[str] = None
    email_from: str = "AVATAR <no-reply@avatar-app.pl>"
    email_reply_to: Optional[str] = None
    admin_email: str = "admin@avatar-app.pl"

    # Public frontend origin, used in referral links and email CTAs
    app_url: str = "https://avatar-app.lovable.app"

    # Referrals
    referral_code_max_attempts: int = 5

    # App
    app_name: str = "avatar-backend"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:8080,http://127.0.0.1:8080,https://avatar-app.lovable.app"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def email_enabled(self) -> bool:
        return bool(self.resend_api_key)

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",
        extra="ignore"
    )


settings = Settings()
