"""Typed views over GitHub REST commit listings."""

from __future__ import annotations

import typing as typ

import msgspec


class RestUser(msgspec.Struct, kw_only=True):
    """GitHub account linked to a commit, when GitHub could match one."""

    login: str | None = None
    html_url: str | None = None


class GitAuthor(msgspec.Struct, kw_only=True):
    """Git-level author recorded in the commit object."""

    name: str | None = None
    email: str | None = None


class GitCommit(msgspec.Struct, kw_only=True):
    """The ``commit`` object of a REST commit listing entry."""

    message: str = ""
    author: GitAuthor | None = None


class CommitSummary(msgspec.Struct, kw_only=True):
    """One entry of ``GET /repos/{owner}/{name}/commits``."""

    sha: str
    html_url: str | None = None
    commit: GitCommit = msgspec.field(default_factory=GitCommit)
    author: RestUser | None = None

    @property
    def author_login(self) -> str | None:
        """Return the GitHub login, falling back to the git author name."""
        if self.author is not None and self.author.login:
            return self.author.login
        if self.commit.author is not None:
            return self.commit.author.name
        return None

    def as_push_commit(self) -> dict[str, typ.Any]:
        """Return the commit in the shape of a webhook ``push.commits`` item."""
        git_author = self.commit.author or GitAuthor()
        return {
            "id": self.sha,
            "message": self.commit.message,
            "url": self.html_url,
            "author": {"name": git_author.name, "email": git_author.email},
        }


class CommitDelta(msgspec.Struct, kw_only=True, frozen=True):
    """Commits newer than a checkpoint, newest first.

    ``checkpoint_found`` is false when the checkpoint lies outside the
    fetched window; ``commits`` then holds the whole window.
    """

    commits: list[CommitSummary]
    checkpoint_found: bool
    window_size: int
