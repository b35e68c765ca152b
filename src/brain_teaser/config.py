"""
brain-teaser configuration

All magic numbers, gateway credentials, retry policy and quiz settings live here.
Environment variables override defaults for deployment flexibility.
"""

import os
from dataclasses import dataclass, field
from typing import Literal, Optional


@dataclass
class GatewayConfig:
    """PISI mobile SMS gateway"""
    transport: Literal["pisi", "mock"] = os.getenv("GATEWAY_TRANSPORT", "pisi")
    base_url: str = os.getenv("PISIMOB_BASEURL", "https://api.pisimobile.net")
    service_id: str = os.getenv("PISISID", "247")
    product_id: str = os.getenv("PISIPID", "287")  # Weekly = 288; Monthly = 289
    vasp_id: str = os.getenv("VASPID", "2")
    auth_token: str = os.getenv("PISI_AUTHORIZATION_TOKEN", "")
    timeout_seconds: float = float(os.getenv("PISI_TIMEOUT", "10.0"))


@dataclass
class RetryConfig:
    """How hard we push against a flaky gateway"""
    max_attempts: int = int(os.getenv("PISI_RETRY_MAX_ATTEMPTS", "5"))
    base_delay_ms: int = int(os.getenv("PISI_RETRY_BASE_DELAY_MS", "500"))
    max_delay_ms: int = int(os.getenv("PISI_RETRY_MAX_DELAY_MS", "5000"))
    jitter_ms: int = int(os.getenv("PISI_RETRY_JITTER_MS", "100"))


@dataclass
class QuizConfig:
    """Quiz behavior"""
    question_count: int = int(os.getenv("QUIZ_QUESTION_COUNT", "10"))
    question_bank_path: Optional[str] = os.getenv("QUESTION_BANK_PATH") or None


@dataclass
class StoreConfig:
    """Where live sessions are kept"""
    backend: Literal["memory", "redis"] = os.getenv("SESSION_BACKEND", "memory")
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    session_ttl_seconds: int = int(os.getenv("SESSION_TTL_SECONDS", "86400"))
    lock_timeout_seconds: float = float(os.getenv("SESSION_LOCK_TIMEOUT", "30.0"))


@dataclass
class ServerConfig:
    """Webhook server"""
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "8000"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()


@dataclass
class Config:
    """Master config, import this"""
    gateway: GatewayConfig = field(default_factory=GatewayConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    quiz: QuizConfig = field(default_factory=QuizConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    # Quick presets
    @classmethod
    def fast_mode(cls) -> "Config":
        """For development/testing: no backoff, fewer attempts"""
        cfg = cls()
        cfg.retry.max_attempts = 3
        cfg.retry.base_delay_ms = 0
        cfg.retry.max_delay_ms = 0
        cfg.retry.jitter_ms = 0
        cfg.store.backend = "memory"
        return cfg


# Singleton
config = Config()
