"""Unit tests for femtologging integration helpers.

Run with:
    pytest tests/unit/test_logging.py
"""

from __future__ import annotations

import pytest

from gitrelay.logging import (
    configure_logging,
    format_log_message,
    log_error,
    log_exception,
    log_info,
    log_warning,
    normalize_log_level,
)


class _FakeLogger:
    """Collects log calls for assertions."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, object | None, bool]] = []

    def log(
        self,
        level: str,
        message: str,
        /,
        *,
        exc_info: object | None = None,
        stack_info: bool = False,
    ) -> str:
        self.calls.append((level, message, exc_info, stack_info))
        return message


@pytest.mark.parametrize(
    ("input_level", "expected_level", "expected_invalid"),
    [
        ("warning", "WARNING", False),
        (" debug ", "DEBUG", False),
        (None, "INFO", True),
        ("", "INFO", True),
        ("verbose", "INFO", True),
    ],
)
def test_normalize_log_level(
    input_level: str | None, expected_level: str, *, expected_invalid: bool
) -> None:
    """Normalise level names and flag unusable input."""
    level, invalid = normalize_log_level(input_level)
    assert level == expected_level, f"{input_level!r} should map to {expected_level}"
    assert invalid is expected_invalid, f"unexpected invalid flag for {input_level!r}"


def test_format_log_message_without_args_keeps_template() -> None:
    """A template with a literal percent survives when no args are given."""
    assert format_log_message("100% done") == "100% done"


def test_format_log_message_interpolates() -> None:
    """Percent formatting produces the expected message."""
    assert format_log_message("relay %s to %d", "push", 3) == "relay push to 3"


def test_log_info_formats_and_passes_level() -> None:
    """log_info formats messages and emits INFO level."""
    logger = _FakeLogger()

    log_info(logger, "hello %s", "reef")

    assert logger.calls == [("INFO", "hello reef", None, False)]


def test_log_warning_forwards_exc_info() -> None:
    """log_warning forwards exc_info to the logger."""
    logger = _FakeLogger()
    exc = ValueError("boom")

    log_warning(logger, "warning: %s", "oops", exc_info=exc)

    assert logger.calls == [("WARNING", "warning: oops", exc, False)]


def test_log_error_and_exception() -> None:
    """log_error defaults exc_info to None; log_exception forwards it."""
    logger = _FakeLogger()
    exc = RuntimeError("bad")

    log_error(logger, "error: %s", "oops")
    log_exception(logger, "failed", exc)

    assert logger.calls == [
        ("ERROR", "error: oops", None, False),
        ("ERROR", "failed", exc, False),
    ]


def test_configure_logging_passes_normalized_level(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """configure_logging installs the normalised level."""
    captured: dict[str, object] = {}

    def fake_basic_config(**kwargs: object) -> None:
        captured.update(kwargs)

    monkeypatch.setattr("gitrelay.logging.basicConfig", fake_basic_config)

    normalized, invalid = configure_logging("nope")

    assert (normalized, invalid) == ("INFO", True)
    assert captured == {"level": "INFO", "force": False}
