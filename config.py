"""
config.py

Centralized configuration management using pydantic-settings.
All modules must import settings from this file.
Direct os.getenv() calls are prohibited elsewhere.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application-wide settings loaded from .env file."""

    # Firebase
    firebase_credentials_path: str = ""  # empty: application default credentials
    firebase_project_id: str = ""

    # Push notification presentation
    app_display_name: str = "GateKeeper"
    default_notification_body: str = "You have a new notification"
    notification_channel_id: str = "gatekeeper_notifications"
    click_action: str = "FLUTTER_NOTIFICATION_CLICK"
    apns_badge: int = 1

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }


settings = Settings()
