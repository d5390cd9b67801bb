"""Environment-driven configuration for the secureauth CLI."""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from secureauth.totp import DEFAULT_WINDOW_SECONDS


WINDOW_ENV = "SECUREAUTH_WINDOW"
SECRETS_ENV = "SECUREAUTH_SECRETS"


@dataclass(frozen=True)
class TotpConfig:
    window_seconds: int = DEFAULT_WINDOW_SECONDS
    # Raw "Label:SECRET" or "SECRET" entries
    secrets: tuple[str, ...] = ()

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "TotpConfig":
        """
        Build a configuration from environment variables.

        Args:
            environ: Mapping to read from (default: os.environ).

        Returns:
            TotpConfig with defaults for anything unset.

        Raises:
            ValueError: If SECUREAUTH_WINDOW is not a positive integer.
        """
        if environ is None:
            environ = os.environ

        window_seconds = DEFAULT_WINDOW_SECONDS
        raw_window = environ.get(WINDOW_ENV, "").strip()
        if raw_window:
            try:
                window_seconds = int(raw_window)
            except ValueError as e:
                raise ValueError(f"{WINDOW_ENV} must be an integer: {raw_window!r}") from e
            if window_seconds <= 0:
                raise ValueError(f"{WINDOW_ENV} must be positive, got {window_seconds}")

        raw_secrets = environ.get(SECRETS_ENV, "")
        secrets = tuple(part.strip() for part in raw_secrets.split(",") if part.strip())

        return cls(window_seconds=window_seconds, secrets=secrets)
