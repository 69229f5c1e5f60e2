"""Environment variable parsing shared by the ``from_env`` constructors."""

from __future__ import annotations

import os


class ConfigError(ValueError):
    """Raised when an environment variable holds an unusable value."""

    @classmethod
    def invalid_number(cls, name: str, raw: str) -> ConfigError:
        """Return an error for a value that is not a number."""
        return cls(f"{name} must be a number, got {raw!r}")

    @classmethod
    def not_positive(cls, name: str, value: float) -> ConfigError:
        """Return an error for a number that must be positive."""
        return cls(f"{name} must be positive, got {value}")


def env_str(name: str, default: str | None = None) -> str | None:
    """Return the stripped value of ``name``; blank counts as unset."""
    raw = os.environ.get(name, "").strip()
    return raw or default


def env_positive_float(name: str, default: float) -> float:
    """Return ``name`` as a positive float, or ``default`` when unset.

    Raises
    ------
    ConfigError
        If the variable is set but not a positive number.

    """
    raw = env_str(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigError.invalid_number(name, raw) from exc
    if value <= 0:
        raise ConfigError.not_positive(name, value)
    return value
