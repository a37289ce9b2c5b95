from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None  # Required for admin operations (impersonation, role changes)

    # Vimeo
    vimeo_access_token: Optional[str] = None
    vimeo_api_base: str = "https://api.vimeo.com"
    vimeo_api_version: str = "3.4"
    vimeo_timeout_seconds: float = 15.0
    vimeo_main_folder_id: str = "26555277"  # Shared folder used before per-user folders existed

    # App
    app_name: str = "sparky-screen-recorder"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"
    site_url: str = "http://localhost:3000"
    enable_debug_routes: bool = True

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def debug_routes_enabled(self) -> bool:
        return self.enable_debug_routes and not self.is_production

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
