import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"


class Config:
    SECRET_KEY: str = (
        os.environ.get("SECRET_KEY") or "defi-watchdog-secret-key-change-in-production"
    )
    MAX_CONTENT_LENGTH_IN_BYTES: int = 2 * 1024 * 1024

    OPENROUTER_API_KEY: str = os.environ.get("OPENROUTER_API_KEY") or ""
    OPENROUTER_BASE_URL: str = os.environ.get("OPENROUTER_BASE_URL") or DEFAULT_BASE_URL

    DATABASE_PATH: str = os.environ.get("WATCHDOG_DB_PATH") or os.path.join(
        os.getcwd(), "data", "watchdog.db"
    )
    MODELS_CONFIG: Optional[str] = os.environ.get("WATCHDOG_MODELS_CONFIG")

    @staticmethod
    def init_app(app: Any) -> None:
        os.makedirs(os.path.dirname(app.config["DATABASE_PATH"]) or ".", exist_ok=True)


def _env_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw in (None, ""):
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{key} must be a number, got {raw!r}")


def _env_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    """
    Model-provider settings, built once at startup and injected.

    Nothing in the pipeline reads the environment at call time.
    """

    api_key: str = ""
    base_url: str = DEFAULT_BASE_URL
    referer: str = "https://defiwatchdog.com"
    app_title: str = "DeFi Watchdog Multi-AI Analysis"
    timeout_seconds: float = 120.0
    max_tokens: int = 4000
    temperature: float = 0.1
    top_p: float = 0.9
    max_retries: int = 0
    max_concurrency: int = 0  # 0 = unbounded

    def __post_init__(self):
        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be > 0, got {self.timeout_seconds}")
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.max_concurrency < 0:
            raise ValueError(f"max_concurrency must be >= 0, got {self.max_concurrency}")

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        return cls(
            api_key=env.get("OPENROUTER_API_KEY", ""),
            base_url=env.get("OPENROUTER_BASE_URL") or DEFAULT_BASE_URL,
            referer=env.get("WATCHDOG_REFERER") or cls.referer,
            app_title=env.get("WATCHDOG_APP_TITLE") or cls.app_title,
            timeout_seconds=_env_float(env, "WATCHDOG_MODEL_TIMEOUT", cls.timeout_seconds),
            max_tokens=_env_int(env, "WATCHDOG_MAX_TOKENS", cls.max_tokens),
            temperature=_env_float(env, "WATCHDOG_TEMPERATURE", cls.temperature),
            top_p=_env_float(env, "WATCHDOG_TOP_P", cls.top_p),
            max_retries=_env_int(env, "WATCHDOG_MAX_RETRIES", cls.max_retries),
            max_concurrency=_env_int(env, "WATCHDOG_MAX_CONCURRENCY", cls.max_concurrency),
        )
