"""
=============================================================================
CONFIGURATION
=============================================================================

Two dataclasses, one per layer:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ ServerConfig   transport: bind address, workers, timeouts, logging │
    │ AppConfig      resources: credentials, tokens, cookie lifetimes,   │
    │                session TTL, seed users, routing strictness          │
    └─────────────────────────────────────────────────────────────────────┘

Precedence (highest first): command-line flags, environment variables,
the defaults below. Both classes validate eagerly so a bad value stops
the process at startup rather than on the first request.

=============================================================================
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional, Tuple


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    """Float from the environment; "" or "none" means None."""
    raw = os.getenv(name)
    if raw is None:
        return default
    if raw.strip().lower() in ("", "none"):
        return None
    return float(raw)


@dataclass
class ServerConfig:
    """
    Transport settings.

    Development:
        ServerConfig(host="127.0.0.1", port=8080, log_level="DEBUG")

    Production:
        ServerConfig(host="0.0.0.0", port=80, max_workers=32)
    """

    # =========================================================================
    # NETWORK
    # =========================================================================

    host: str = "127.0.0.1"
    port: int = 8080            # 0 binds an ephemeral port (tests)
    backlog: int = 128
    buffer_size: int = 8192
    timeout: Optional[float] = 30.0

    # =========================================================================
    # HTTP
    # =========================================================================

    keep_alive: bool = True
    keep_alive_timeout: float = 5.0
    max_request_size: int = 10 * 1024 * 1024

    # =========================================================================
    # THREADING
    # =========================================================================

    min_workers: int = 4
    max_workers: int = 16

    # =========================================================================
    # LOGGING & IDENTITY
    # =========================================================================

    log_level: str = "INFO"
    log_format: str = "text"    # access log: "text" or "json"
    server_name: str = "ResourceServer/1.0"

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Build from environment variables:

            HTTP_HOST       bind address      (127.0.0.1)
            HTTP_PORT       port              (8080)
            HTTP_WORKERS    max workers       (16)
            HTTP_TIMEOUT    socket timeout s  (30)
            HTTP_LOG_LEVEL  logging level     (INFO)
        """
        return cls(
            host=os.getenv("HTTP_HOST", "127.0.0.1"),
            port=int(os.getenv("HTTP_PORT", "8080")),
            max_workers=int(os.getenv("HTTP_WORKERS", "16")),
            timeout=_env_float("HTTP_TIMEOUT", 30.0),
            log_level=os.getenv("HTTP_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """Raise ValueError on the first invalid setting."""
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', got {self.log_format!r}")


def _default_seed() -> List[Tuple[str, str]]:
    return [("Alice", "alice@example.com"), ("Bob", "bob@example.com")]


@dataclass
class AppConfig:
    """
    Resource-layer settings.

    The demo credentials are for local use only; set APP_ADMIN_PASSWORD
    and APP_API_TOKEN anywhere the server is reachable by others.
    """

    admin_user: str = "admin"
    admin_password: str = "password"
    api_token: str = "secret-token"

    session_ttl: Optional[float] = 3600     # None: cookie Max-Age is the only expiry
    session_max_age: int = 3600
    theme_max_age: int = 365 * 24 * 3600
    cache_max_age: int = 60

    seed_users: List[Tuple[str, str]] = field(default_factory=_default_seed)

    strict_methods: bool = False            # 405 + Allow instead of 404

    @classmethod
    def from_env(cls) -> "AppConfig":
        """
        Build from environment variables:

            APP_ADMIN_USER      login username   (admin)
            APP_ADMIN_PASSWORD  login password   (password)
            APP_API_TOKEN       bearer token     (secret-token)
            APP_SESSION_TTL     seconds or none  (3600)
        """
        return cls(
            admin_user=os.getenv("APP_ADMIN_USER", "admin"),
            admin_password=os.getenv("APP_ADMIN_PASSWORD", "password"),
            api_token=os.getenv("APP_API_TOKEN", "secret-token"),
            session_ttl=_env_float("APP_SESSION_TTL", 3600),
        )

    def validate(self) -> None:
        if not self.admin_user or not self.admin_password:
            raise ValueError("admin_user and admin_password must not be empty")

        if not self.api_token:
            raise ValueError("api_token must not be empty")

        if self.session_ttl is not None and self.session_ttl <= 0:
            raise ValueError("session_ttl must be > 0 or None")

        emails = [email for _, email in self.seed_users]
        if len(emails) != len(set(emails)):
            raise ValueError("seed_users must have unique emails")
