import os
import logging
from pydantic import BaseModel, Field
from typing import List, Optional
from dotenv import load_dotenv

load_dotenv()

DEFAULT_REVIEWER_INBOX = "hr-reviewers"


class NotificationSettings(BaseModel):
    webhook_url: Optional[str] = Field(default=os.getenv("NOTIFICATION_WEBHOOK_URL") or None)
    timeout_seconds: float = Field(default=float(os.getenv("NOTIFICATION_TIMEOUT_SECONDS", "3")))
    max_attempts: int = Field(default=int(os.getenv("NOTIFICATION_MAX_ATTEMPTS", "2")))
    in_app_enabled: bool = Field(default=os.getenv("NOTIFICATION_IN_APP", "true").lower() == "true")
    # Shared in-app inbox for new requests; admin and HR both read it
    reviewer_inbox: str = Field(default=os.getenv("NOTIFICATION_REVIEWER_INBOX", DEFAULT_REVIEWER_INBOX))


class Config(BaseModel):
    app_name: str = "HR Leave Service"
    environment: str = os.getenv("APP_ENV", "development")
    api_prefix: str = "/api"

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./leave.db")

    version: str = "1.0.0"
    request_id_header: str = "X-Request-ID"

    # Actor identity is resolved upstream; these headers carry it to us.
    actor_id_header: str = "X-User-Id"
    actor_role_header: str = "X-Role"

    # CORS: comma-separated origins loaded from env.
    cors_origins: List[str] = Field(
        default_factory=lambda: [
            o.strip()
            for o in os.getenv(
                "CORS_ORIGINS",
                "http://localhost:3000,http://127.0.0.1:3000",
            ).split(",")
            if o.strip()
        ]
    )

    rate_limit_enabled: bool = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
    rate_limit_per_minute: int = int(os.getenv("RATE_LIMIT_PER_MINUTE", "60"))

    # Leave workflow
    seed_default_leave_types: bool = os.getenv("SEED_DEFAULT_LEAVE_TYPES", "true").lower() == "true"
    notifications: NotificationSettings = NotificationSettings()


settings = Config()

_logger = logging.getLogger(__name__)
if settings.environment == "production" and settings.database_url.startswith("sqlite"):
    _logger.warning("⚠ Running production against SQLite; concurrent approvals are serialized by a file lock.")
