"""Repository slug helpers.

GitHub identifies repositories as ``owner/name``. Routing entries, webhook
paths and payloads all use that notation, so parsing lives here rather than
being repeated at each call site.
"""

from __future__ import annotations


def repo_slug(owner: str, name: str) -> str:
    """Join an owner and repository name into ``owner/name``.

    Examples
    --------
    >>> repo_slug("octo", "reef")
    'octo/reef'

    """
    return f"{owner}/{name}"


def parse_repo_slug(slug: str) -> tuple[str, str]:
    """Split ``owner/name`` into its two parts.

    Parameters
    ----------
    slug:
        Repository slug, for example the ``full_name`` of a webhook payload.

    Returns
    -------
    tuple[str, str]
        ``(owner, name)``.

    Raises
    ------
    ValueError
        If ``slug`` does not contain exactly one separator with non-empty
        parts on either side.

    Examples
    --------
    >>> parse_repo_slug("octo/reef")
    ('octo', 'reef')

    """
    owner, sep, name = slug.strip().partition("/")
    if not sep or not owner or not name or "/" in name:
        msg = f"Invalid repository slug: expected 'owner/name', got {slug!r}"
        raise ValueError(msg)
    return owner, name
