# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Environment-driven configuration for the mail gateway.

Settings come from process environment variables, optionally seeded from a
``.env`` file. Variables already present in the environment win over the
file, and a missing file is not an error.

Environment variables:
    PORT - HTTP listen port (default: 8080)
    HOST - HTTP bind address (default: 0.0.0.0)
    LOG_LEVEL - Logging level (default: INFO)
    SMTP_HOST, SMTP_PORT, SMTP_USER, SMTP_PASS, FROM_EMAIL - SMTP relay.
        When any of them is missing the service runs in mock mode.
    SMTP_PORT - SMTP port (default: 587)
    SMTP_TIMEOUT - Upper bound in seconds for one SMTP dialogue (default: 30)
    RATE_LIMIT_SECONDS - Cooldown between sends per client (default: 5)
    RATE_LIMIT_SWEEP_SECONDS - Interval of stale limiter entry eviction
        (default: 60)
    TRUST_FORWARDED_FOR - Key the limiter on ``X-Forwarded-For`` instead of
        the peer address (default: false)
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from dotenv import dotenv_values, load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_HTTP_PORT = 8080
DEFAULT_SMTP_PORT = 587
DEFAULT_SMTP_TIMEOUT = 30.0
DEFAULT_RATE_LIMIT_SECONDS = 5.0
DEFAULT_SWEEP_SECONDS = 60.0


@dataclass(frozen=True)
class SMTPConfig:
    """SMTP relay settings resolved from the environment.

    Attributes:
        host: SMTP server hostname.
        port: SMTP server port.
        user: Username for SMTP AUTH.
        password: Password for SMTP AUTH.
        from_email: Address written in the ``From`` header.
    """

    host: str = ""
    port: int = DEFAULT_SMTP_PORT
    user: str = ""
    password: str = ""
    from_email: str = ""

    def is_valid(self) -> bool:
        """Return True when every field is set and the port is positive."""
        return bool(self.host and self.port > 0 and self.user and self.password and self.from_email)

    def masked(self) -> dict[str, object]:
        """Return the config as a dict with the password hidden."""
        return {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "password": "***" if self.password else "",
            "from_email": self.from_email,
        }


@dataclass(frozen=True)
class Settings:
    """Service settings built once at startup."""

    http_host: str = "0.0.0.0"
    http_port: int = DEFAULT_HTTP_PORT
    log_level: str = "INFO"
    rate_limit_seconds: float = DEFAULT_RATE_LIMIT_SECONDS
    rate_limit_sweep_seconds: float = DEFAULT_SWEEP_SECONDS
    trust_forwarded_for: bool = False
    smtp_timeout: float = DEFAULT_SMTP_TIMEOUT
    smtp: SMTPConfig = field(default_factory=SMTPConfig)


def _is_truthy(value: str | None) -> bool:
    """Check if environment variable value is truthy."""
    return value is not None and value.strip().lower() in ("1", "true", "yes", "on")


def _parse_port(value: str | None) -> int:
    """Return a positive port from ``value`` or the SMTP default."""
    if value:
        try:
            port = int(value)
        except ValueError:
            return DEFAULT_SMTP_PORT
        if port > 0:
            return port
    return DEFAULT_SMTP_PORT


def resolve_smtp_config(environ: Mapping[str, str] | None = None) -> SMTPConfig:
    """Build an :class:`SMTPConfig` from environment variables.

    A ``SMTP_PORT`` that is missing, not an integer or not positive falls
    back silently to 587. No reachability check is performed.

    Args:
        environ: Mapping to read from. Defaults to ``os.environ``.

    Returns:
        SMTPConfig: The resolved, possibly invalid, configuration.
    """
    env = os.environ if environ is None else environ
    return SMTPConfig(
        host=env.get("SMTP_HOST", ""),
        port=_parse_port(env.get("SMTP_PORT")),
        user=env.get("SMTP_USER", ""),
        password=env.get("SMTP_PASS", ""),
        from_email=env.get("FROM_EMAIL", ""),
    )


def _read_environment(environ: Mapping[str, str] | None, env_file: str | None) -> Mapping[str, str]:
    if environ is None:
        if env_file and load_dotenv(env_file, override=False):
            logger.info("Loaded environment from %s", env_file)
        return os.environ
    if not env_file:
        return environ
    merged = {key: value for key, value in dotenv_values(env_file).items() if value is not None}
    merged.update(environ)
    return merged


def load_settings(environ: Mapping[str, str] | None = None, env_file: str | None = ".env") -> Settings:
    """Load the service settings.

    Args:
        environ: Mapping to read from. When None the process environment is
            used and ``env_file`` is loaded into it.
        env_file: Optional dotenv file seeding missing variables. Pass None to
            skip it.

    Returns:
        Settings: Immutable settings with the resolved SMTP configuration.
    """
    env = _read_environment(environ, env_file)

    def get_number(name: str, default: float, cast=float):
        raw = env.get(name)
        if raw is None or raw.strip() == "":
            return default
        try:
            value = cast(raw)
        except ValueError:
            logger.warning("Ignoring invalid %s=%r, using %s", name, raw, default)
            return default
        if value <= 0:
            logger.warning("Ignoring non-positive %s=%r, using %s", name, raw, default)
            return default
        return value

    return Settings(
        http_host=env.get("HOST") or "0.0.0.0",
        http_port=get_number("PORT", DEFAULT_HTTP_PORT, int),
        log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
        rate_limit_seconds=get_number("RATE_LIMIT_SECONDS", DEFAULT_RATE_LIMIT_SECONDS),
        rate_limit_sweep_seconds=get_number("RATE_LIMIT_SWEEP_SECONDS", DEFAULT_SWEEP_SECONDS),
        trust_forwarded_for=_is_truthy(env.get("TRUST_FORWARDED_FOR")),
        smtp_timeout=get_number("SMTP_TIMEOUT", DEFAULT_SMTP_TIMEOUT),
        smtp=resolve_smtp_config(env),
    )
