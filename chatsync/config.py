from typing import List

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppRelease(BaseModel):
    version: str = "1.0.1"
    versionCode: int = 2
    downloadUrl: str = "https://github.com/selimqueengh-afk/SnickersChatv4/releases/latest/download/app-release.apk"
    releaseNotes: List[str] = [
        "In-app update system",
        "Redesigned update dialog",
        "Automatic APK download and install",
        "GitHub Releases integration",
        "Push notification fixes",
        "Performance improvements",
    ]
    isForceUpdate: bool = False
    minVersion: str = "1.0.0"


class Settings(BaseSettings):
    APP_NAME: str = "SnickersChat Backend"
    VERSION: str = "1.0.0"
    ENV: str = "development"
    DEBUG: bool = False
    PORT: int = 3000

    DATABASE_URL: str = "sqlite+aiosqlite:///./chatsync.db"

    SECRET_KEY: str = "your-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    ALLOWED_ORIGINS: List[str] = ["*"]

    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    # JSON document or a path to the service account file
    FIREBASE_SERVICE_ACCOUNT_KEY: str = ""

    NOTIFY_ON_MESSAGE_CREATED: bool = True
    NOTIFICATION_RELAY_URL: str = ""
    DEFAULT_SENDER_NAME: str = "Kullanıcı"
    NOTIFICATION_CLICK_ACTION: str = "FLUTTER_NOTIFICATION_CLICK"
    ANDROID_CHANNEL_ID: str = "chat_messages"

    DETERMINISTIC_ROOM_IDS: bool = False

    CURRENT_APP_VERSION: str = "1.0.0"
    APP_RELEASE: AppRelease = Field(default_factory=AppRelease)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
