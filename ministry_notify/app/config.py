from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuration settings for the ministry notification service"""

    # Application settings
    service_name: str = "ministry-notify"
    log_level: str = "INFO"
    environment: str = "dev"
    path_prefix: str = ''

    # Firebase settings
    firebase_secret: Optional[str] = None
    firebase_project_id: Optional[str] = None

    # Firestore collections
    users_collection: str = "users"
    ministries_collection: str = "ministries"
    members_collection: str = "members"
    inbox_collection: str = "inbox"
    inbox_events_collection: str = "events"

    # FCM batching settings
    fcm_batch_size: int = 500  # FCM allows up to 500 tokens per multicast request

    # Key inbox events by join request + kind so redelivered triggers overwrite
    deterministic_inbox_ids: bool = False

    # uids or emails allowed to call promoteToAdmin outside test environments
    admin_allowlist: List[str] = []

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )


settings = Settings()


def get_prefix(api_version: str) -> str:
    path_prefix = settings.path_prefix
    if not path_prefix.startswith('/'):
        path_prefix = f'/{path_prefix}'
    if path_prefix.endswith('/'):
        path_prefix = path_prefix.rstrip('/')
    return f'{path_prefix}{api_version}'
