from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List, Literal


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_service_role_key: str = ""  # Required: the backend acts on behalf of users with the service role
    storage_timeout_seconds: int = 10

    # Workspace writes: "rpc" uses the create_workspace_with_tabs() database function (one transaction),
    # "compensating" inserts parent and tabs separately and deletes the parent if the tabs fail.
    workspace_write_mode: Literal["rpc", "compensating"] = "rpc"
    max_workspaces_per_user: Optional[int] = None  # None disables the cap

    # App
    app_name: str = "context-keeper-backend"
    host: str = "0.0.0.0"
    port: int = 3001
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    allowed_origins: str = "http://localhost:3000"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def get_allowed_origins_list(self) -> List[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
