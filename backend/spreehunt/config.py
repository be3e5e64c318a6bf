from __future__ import annotations
import os
from pydantic import BaseModel


def _int_list(raw: str) -> list[int]:
    return [int(x) for x in raw.split(",") if x.strip()]


class Settings(BaseModel):
    environment: str = os.getenv("ENVIRONMENT", "dev")
    app_name: str = os.getenv("APP_NAME", "spreehunt-bot")
    app_version: str = os.getenv("APP_VERSION", "0.1.0")
    git_sha: str = os.getenv("GIT_SHA", "dev")
    database_url: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./spreehunt.db")
    auto_create_schema: bool = os.getenv("AUTO_CREATE_SCHEMA", "1") == "1"
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_format: str = os.getenv("LOG_FORMAT", "json")  # json|console

    # Telegram
    telegram_bot_token: str = os.getenv("TELEGRAM_BOT_TOKEN", "")
    telegram_api_base: str = os.getenv("TELEGRAM_API_BASE", "https://api.telegram.org")
    telegram_timeout_seconds: float = float(os.getenv("TELEGRAM_TIMEOUT_SECONDS", "30"))
    judge_chat_id: int = int(os.getenv("JUDGE_CHAT_ID", "0"))  # judging group; also hosts the team topics
    maintainers: list[int] = _int_list(os.getenv("MAINTAINERS", ""))
    webhook_url: str = os.getenv("WEBHOOK_URL", "")
    webhook_secret: str = os.getenv("WEBHOOK_SECRET", "")
    admin_token: str = os.getenv("ADMIN_TOKEN", "")

    # Hunt behaviour
    submissions_enabled: bool = os.getenv("SUBMISSIONS_ENABLED", "1") == "1"
    topic_icon_color: int = int(os.getenv("TOPIC_ICON_COLOR", "7322096"))
    valid_reaction: str = os.getenv("VALID_REACTION", "❤")
    safety_day_rollover_hour: int = int(os.getenv("SAFETY_DAY_ROLLOVER_HOUR", "6"))

    # Media storage
    media_backend: str = os.getenv("MEDIA_BACKEND", "local")  # local|s3
    submissions_dir: str = os.getenv("SUBMISSIONS_DIR", "./submissions")
    s3_endpoint: str = os.getenv("S3_ENDPOINT", "http://minio:9000")
    s3_access_key: str = os.getenv("S3_ACCESS_KEY", "minioadmin")
    s3_secret_key: str = os.getenv("S3_SECRET_KEY", "minioadmin")
    s3_bucket_submissions: str = os.getenv("S3_BUCKET_SUBMISSIONS", "spreehunt-submissions")

    def is_maintainer(self, user_id: int) -> bool:
        return user_id in self.maintainers

settings = Settings()
