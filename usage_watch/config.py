import os
from dataclasses import dataclass
from typing import Optional


@dataclass
class Config:
    bot_token: str
    cookies: str = ""
    chat_id: Optional[int] = None
    usage_api_base: str = "https://claude.ai/api/organizations"
    poll_interval_seconds: int = 300
    request_timeout: int = 30
    state_path: str = "usage_state.json"
    log_level: str = "INFO"


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}.")


def load_config() -> Config:
    token = os.environ.get("TG_BOT_TOKEN")
    if not token:
        raise RuntimeError("TG_BOT_TOKEN is not set in the environment.")

    interval = _env_int("POLL_INTERVAL_SECONDS", 300)
    if interval <= 0:
        raise RuntimeError("POLL_INTERVAL_SECONDS must be positive.")

    return Config(
        bot_token=token,
        cookies=os.environ.get("CLAUDE_COOKIES", ""),
        chat_id=_env_int("TG_CHAT_ID", None),
        usage_api_base=os.environ.get("USAGE_API_BASE", "https://claude.ai/api/organizations").rstrip("/"),
        poll_interval_seconds=interval,
        request_timeout=_env_int("REQUEST_TIMEOUT", 30),
        state_path=os.environ.get("STATE_PATH", "usage_state.json"),
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    )
