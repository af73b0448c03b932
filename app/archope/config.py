import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str

    storage_backend: str
    s3_endpoint: str
    s3_region: str
    s3_bucket: str
    s3_access_key_id: str
    s3_secret_access_key: str

    llm_gateway_url: str
    llm_api_key: str
    llm_model: str
    llm_timeout_seconds: int

    chat_max_messages: int
    chat_max_message_chars: int
    chat_rate_limit: int
    chat_rate_window: int

    login_rate_limit: int
    login_rate_window: int
    storage_dir: str

    resend_api_key: str
    email_api_url: str
    email_from: str


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getenv_int(name: str, default: int) -> int:
    raw = _getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///archope.db"),
        storage_backend=_getenv("STORAGE_BACKEND", "local"),
        s3_endpoint=_getenv("S3_ENDPOINT", ""),
        s3_region=_getenv("S3_REGION", "nyc3"),
        s3_bucket=_getenv("S3_BUCKET", ""),
        s3_access_key_id=_getenv("S3_ACCESS_KEY_ID", ""),
        s3_secret_access_key=_getenv("S3_SECRET_ACCESS_KEY", ""),
        llm_gateway_url=_getenv("LLM_GATEWAY_URL", "https://ai.gateway.lovable.dev/v1/chat/completions"),
        llm_api_key=_getenv("LLM_API_KEY", ""),
        llm_model=_getenv("LLM_MODEL", "google/gemini-2.5-flash"),
        llm_timeout_seconds=_getenv_int("LLM_TIMEOUT_SECONDS", 60),
        chat_max_messages=_getenv_int("CHAT_MAX_MESSAGES", 40),
        chat_max_message_chars=_getenv_int("CHAT_MAX_MESSAGE_CHARS", 4000),
        chat_rate_limit=_getenv_int("CHAT_RATE_LIMIT", 20),
        chat_rate_window=_getenv_int("CHAT_RATE_WINDOW", 60),
        login_rate_limit=_getenv_int("LOGIN_RATE_LIMIT", 5),
        login_rate_window=_getenv_int("LOGIN_RATE_WINDOW", 300),
        storage_dir=_getenv("STORAGE_DIR", ""),
        resend_api_key=_getenv("RESEND_API_KEY", ""),
        email_api_url=_getenv("EMAIL_API_URL", "https://api.resend.com/emails"),
        email_from=_getenv("EMAIL_FROM", "ARC HOPE <noreply@archope.org>"),
    )


def load_config() -> dict:
    s = load_settings()
    is_production = s.env in ("prod", "production")
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "STORAGE_BACKEND": s.storage_backend,
        "STORAGE_DIR": s.storage_dir,
        "S3_ENDPOINT": s.s3_endpoint,
        "S3_REGION": s.s3_region,
        "S3_BUCKET": s.s3_bucket,
        "S3_ACCESS_KEY_ID": s.s3_access_key_id,
        "S3_SECRET_ACCESS_KEY": s.s3_secret_access_key,
        # chat relay
        "LLM_GATEWAY_URL": s.llm_gateway_url,
        "LLM_API_KEY": s.llm_api_key,
        "LLM_MODEL": s.llm_model,
        "LLM_TIMEOUT_SECONDS": s.llm_timeout_seconds,
        "CHAT_MAX_MESSAGES": s.chat_max_messages,
        "CHAT_MAX_MESSAGE_CHARS": s.chat_max_message_chars,
        "CHAT_RATE_LIMIT": s.chat_rate_limit,
        "CHAT_RATE_WINDOW": s.chat_rate_window,
        "LOGIN_RATE_LIMIT": s.login_rate_limit,
        "LOGIN_RATE_WINDOW": s.login_rate_window,
        # email provider
        "RESEND_API_KEY": s.resend_api_key,
        "EMAIL_API_URL": s.email_api_url,
        "EMAIL_FROM": s.email_from,
        # security defaults
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": is_production,  # Require HTTPS in production
        # image uploads are capped at 5MB in the media service; this is the request cap
        "MAX_CONTENT_LENGTH": 10 * 1024 * 1024,
    }
