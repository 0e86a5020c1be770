# ─────────────────────────────────────────────────────────────────
# config.py — Settings & Logging Setup
#
# Every setting comes from an environment variable (or a .env file)
# through pydantic-settings:
#
#   LISTEN          host:port to serve on            0.0.0.0:80
#   STORE           memory | disk | redis            memory
#   STORE_PATH      snapshot file for STORE=disk     condemn.json
#   REDIS_URL       redis://host:port/db             redis://127.0.0.1:6379
#   NOTIFY          comma separated, e.g. "sentry"
#   NOTIFY_COMMAND  command run on every notification
#   SENTRY_DSN      required when NOTIFY has sentry
#   SWEEP_INTERVAL  seconds between sweeps           1.0
#   LOG_LEVEL       logging level name               INFO
# ─────────────────────────────────────────────────────────────────

import logging
import shlex
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_FORMAT = "%(asctime)s — %(levelname)s — [%(name)s] — %(message)s"

KNOWN_NOTIFIERS = ("sentry",)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    listen: str = "0.0.0.0:80"
    store: Literal["memory", "disk", "redis"] = "memory"
    store_path: Path = Path("condemn.json")
    redis_url: str = "redis://127.0.0.1:6379"
    notify: str = ""
    notify_command: Optional[str] = None
    sentry_dsn: Optional[str] = None
    sweep_interval: float = Field(1.0, gt=0)
    log_level: str = "INFO"

    @field_validator("listen")
    @classmethod
    def valid_listen(cls, v: str) -> str:
        host, sep, port = v.rpartition(":")
        if not sep or not host or not port.isdigit() or not 0 < int(port) < 65536:
            raise ValueError(f"expected host:port, got {v!r}")
        return v

    @field_validator("redis_url")
    @classmethod
    def valid_redis_url(cls, v: str) -> str:
        if not v.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError("unknown format; expected redis://host:port/db")
        return v

    @field_validator("notify")
    @classmethod
    def valid_notify(cls, v: str) -> str:
        for kind in _split(v):
            if kind not in KNOWN_NOTIFIERS:
                raise ValueError(
                    f"unknown notifier {kind!r}; choose from {', '.join(KNOWN_NOTIFIERS)}"
                )
        return v

    @field_validator("notify_command")
    @classmethod
    def valid_notify_command(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        # shlex raises ValueError on unbalanced quotes
        shlex.split(v)
        return v

    @field_validator("log_level")
    @classmethod
    def valid_log_level(cls, v: str) -> str:
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level {v!r}")
        return level

    @model_validator(mode="after")
    def sentry_needs_dsn(self):
        if "sentry" in self.notifiers and not self.sentry_dsn:
            raise ValueError("NOTIFY includes 'sentry' but SENTRY_DSN is not set")
        return self

    @property
    def notifiers(self) -> list[str]:
        return _split(self.notify)

    @property
    def host(self) -> str:
        return self.listen.rpartition(":")[0].strip("[]")

    @property
    def port(self) -> int:
        return int(self.listen.rpartition(":")[2])


def _split(value: str) -> list[str]:
    return [part.strip().lower() for part in value.split(",") if part.strip()]


def configure_logging(level: str = "INFO"):
    """Sets the global log format once for every module's named logger."""
    logging.basicConfig(level=level, format=LOG_FORMAT)
