"""Unit tests for webhook signature verification."""

from __future__ import annotations

import pytest

from gitrelay.delivery.signature import compute_signature, verify_signature

BODY = b'{"zen": "Keep it logically awesome."}'


class TestVerifySignature:
    """Tests for HMAC verification over raw request bodies."""

    def test_matching_signature_passes(self) -> None:
        """The signature GitHub would send verifies."""
        signature = compute_signature(BODY, "s3cret")

        assert verify_signature(BODY, signature, "s3cret"), "valid signature rejected"

    @pytest.mark.parametrize("secret", [None, ""])
    def test_missing_secret_accepts_everything(self, secret: str | None) -> None:
        """No configured secret disables verification."""
        assert verify_signature(BODY, None, secret), "unsigned delivery rejected"
        assert verify_signature(BODY, "sha256=nonsense", secret), (
            "bogus signature rejected without a secret"
        )

    def test_missing_header_fails_when_secret_set(self) -> None:
        """A configured secret requires a signature header."""
        assert not verify_signature(BODY, None, "s3cret"), "unsigned delivery accepted"

    def test_flipped_body_byte_fails(self) -> None:
        """Changing a single byte of the body invalidates the signature."""
        signature = compute_signature(BODY, "s3cret")
        tampered = bytearray(BODY)
        tampered[2] ^= 0x01

        assert not verify_signature(bytes(tampered), signature, "s3cret"), (
            "tampered body accepted"
        )

    def test_wrong_secret_fails(self) -> None:
        """A signature made with another secret is rejected."""
        signature = compute_signature(BODY, "other")

        assert not verify_signature(BODY, signature, "s3cret")

    def test_non_ascii_header_fails(self) -> None:
        """Header values that cannot be ASCII-encoded are rejected."""
        assert not verify_signature(BODY, "sha256=é", "s3cret")

    def test_signature_has_prefix(self) -> None:
        """Computed signatures carry the sha256= prefix and a hex digest."""
        signature = compute_signature(BODY, "s3cret")

        assert signature.startswith("sha256=")
        assert len(signature) == len("sha256=") + 64
