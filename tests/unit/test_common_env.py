"""Unit tests for environment parsing helpers."""

from __future__ import annotations

import pytest

from gitrelay.common.env import ConfigError, env_positive_float, env_str


class TestEnvStr:
    """Tests for string variables."""

    def test_strips_value(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Surrounding whitespace is removed."""
        monkeypatch.setenv("GITRELAY_TEST_VALUE", "  hello ")

        assert env_str("GITRELAY_TEST_VALUE") == "hello"

    def test_blank_uses_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Blank values fall back to the default."""
        monkeypatch.setenv("GITRELAY_TEST_VALUE", "   ")

        assert env_str("GITRELAY_TEST_VALUE", "fallback") == "fallback"


class TestEnvPositiveFloat:
    """Tests for positive numeric variables."""

    def test_unset_returns_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """An unset variable yields the default."""
        monkeypatch.delenv("GITRELAY_TEST_NUMBER", raising=False)

        assert env_positive_float("GITRELAY_TEST_NUMBER", 60.0) == 60.0

    def test_parses_number(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Numeric strings are parsed."""
        monkeypatch.setenv("GITRELAY_TEST_NUMBER", "2.5")

        assert env_positive_float("GITRELAY_TEST_NUMBER", 60.0) == 2.5

    @pytest.mark.parametrize(
        ("raw", "match"), [("soon", "must be a number"), ("0", "must be positive")]
    )
    def test_rejects_bad_values(
        self, monkeypatch: pytest.MonkeyPatch, raw: str, match: str
    ) -> None:
        """Non-numeric and non-positive values raise ConfigError."""
        monkeypatch.setenv("GITRELAY_TEST_NUMBER", raw)

        with pytest.raises(ConfigError, match=match):
            env_positive_float("GITRELAY_TEST_NUMBER", 60.0)
