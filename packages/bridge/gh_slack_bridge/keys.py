"""
Subscription key encoding.

A subscription is addressed by six fields, serialised as a slash-delimited
path::

    {owner}/{repo}/{slack_app_id}/{github_installation_id}/{team_id}/{channel_id}

The four leading segments identify a repository as seen by one GitHub App
installation and one Slack App. The prefix form ends with a trailing ``/`` so
that installation ``1`` never prefix-matches installation ``12``.
"""

from __future__ import annotations

from dataclasses import dataclass

SEPARATOR = "/"
_SEGMENTS = 6


class InvalidKeyError(ValueError):
    """A key field or encoded key string is malformed."""


def _check_segment(name: str, value: str) -> None:
    if not value:
        raise InvalidKeyError(f"{name} must not be empty")
    if SEPARATOR in value:
        raise InvalidKeyError(f"{name} must not contain {SEPARATOR!r}: {value!r}")


@dataclass(frozen=True)
class RepositoryKey:
    """The four mandatory segments: one repository under one installation."""

    owner: str
    repo: str
    slack_app_id: str
    github_installation_id: int

    def __post_init__(self) -> None:
        _check_segment("owner", self.owner)
        _check_segment("repo", self.repo)
        _check_segment("slack_app_id", self.slack_app_id)
        if isinstance(self.github_installation_id, bool) or not isinstance(
            self.github_installation_id, int
        ):
            raise InvalidKeyError("github_installation_id must be an integer")
        if self.github_installation_id <= 0:
            raise InvalidKeyError("github_installation_id must be positive")

    def channel(self, team_id: str, channel_id: str) -> SubscriptionKey:
        return SubscriptionKey(
            self.owner,
            self.repo,
            self.slack_app_id,
            self.github_installation_id,
            team_id,
            channel_id,
        )


@dataclass(frozen=True)
class SubscriptionKey(RepositoryKey):
    """A full key: repository plus the Slack team and channel to notify."""

    team_id: str = ""
    channel_id: str = ""

    def __post_init__(self) -> None:
        super().__post_init__()
        _check_segment("team_id", self.team_id)
        _check_segment("channel_id", self.channel_id)

    @property
    def repository(self) -> RepositoryKey:
        return RepositoryKey(
            self.owner, self.repo, self.slack_app_id, self.github_installation_id
        )


def encode_prefix(key: RepositoryKey) -> str:
    """Encode the four leading segments, always with a trailing separator."""
    return SEPARATOR.join(
        [key.owner, key.repo, key.slack_app_id, str(key.github_installation_id)]
    ) + SEPARATOR


def encode_key(key: SubscriptionKey) -> str:
    return f"{encode_prefix(key)}{key.team_id}{SEPARATOR}{key.channel_id}"


def decode_key(value: str) -> SubscriptionKey:
    """Invert :func:`encode_key`. Raises InvalidKeyError on malformed input."""
    parts = value.split(SEPARATOR)
    if len(parts) != _SEGMENTS:
        raise InvalidKeyError(f"expected {_SEGMENTS} segments in {value!r}")

    owner, repo, slack_app_id, installation_id, team_id, channel_id = parts
    try:
        github_installation_id = int(installation_id)
    except ValueError as exc:
        raise InvalidKeyError(f"installation id is not an integer in {value!r}") from exc

    return SubscriptionKey(
        owner, repo, slack_app_id, github_installation_id, team_id, channel_id
    )
