"""HMAC verification of GitHub webhook deliveries.

GitHub signs the exact request body with the repository's webhook secret and
sends ``X-Hub-Signature-256: sha256=<hex>``. Verification must run over the
raw bytes received; a re-encoded JSON document can differ byte for byte from
what was signed.
"""

from __future__ import annotations

import hashlib
import hmac

SIGNATURE_HEADER = "X-Hub-Signature-256"
SIGNATURE_PREFIX = "sha256="


def compute_signature(raw_body: bytes, secret: str) -> str:
    """Return the ``sha256=<hex>`` header value GitHub would send.

    Examples
    --------
    >>> compute_signature(b"{}", "s")[:7]
    'sha256='

    """
    digest = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256)
    return SIGNATURE_PREFIX + digest.hexdigest()


def verify_signature(
    raw_body: bytes, signature: str | None, secret: str | None
) -> bool:
    """Check a delivery signature in constant time.

    Parameters
    ----------
    raw_body:
        Request body exactly as received.
    signature:
        Value of the ``X-Hub-Signature-256`` header, if any.
    secret:
        Webhook secret configured for the target. ``None`` or ``""`` disables
        verification and every delivery is accepted.

    Returns
    -------
    bool
        ``True`` when the signature matches or no secret is configured.

    """
    if not secret:
        return True
    if not signature:
        return False

    expected = compute_signature(raw_body, secret).encode("ascii")
    try:
        provided = signature.strip().encode("ascii")
    except UnicodeEncodeError:
        return False
    return hmac.compare_digest(expected, provided)
