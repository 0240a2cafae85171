"""Application configuration"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # Database (sync run history)
    database_url: str = "sqlite:///./incident_sync.db"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Scheduling
    scheduler_enabled: bool = True
    sync_interval_minutes: int = 10

    # Id of this connector in the local system's mapping repository
    sync_system_id: int = 1

    # Local incident tracker (also hosts the mapping repository)
    local_base_url: str = "http://localhost/SpiraTeam"
    local_login: str = ""
    local_password: str = ""

    # Remote bug tracker
    remote_url: str = "https://example.fogbugz.com"
    remote_login: str = ""
    remote_password: str = ""

    # Hours to subtract from the watermark when searching remote changes (clock skew)
    time_offset_hours: int = 0
    # Accepted for compatibility with the connector settings; not used by the sync pass.
    auto_map_users: bool = False

    # Transport options shared by both clients
    enable_keep_alives: bool = True
    verify_certificate: bool = True
    request_timeout_seconds: int = 1200

    # Send HTML descriptions to the remote system as-is instead of plain text
    supports_rich_text: bool = False
    # Create local incidents for cases that were first raised in the remote system
    get_new_items_from_remote: bool = True

    # Logging
    log_level: str = "INFO"
    # Log every field resolution and HTTP request (DEBUG)
    trace_logging: bool = False

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
