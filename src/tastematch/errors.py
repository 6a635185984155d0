# src/tastematch/errors.py
from __future__ import annotations


class TasteMatchError(Exception):
    """Base exception for the compatibility engine and its store."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self):
        return f"{type(self).__name__}: {self.message}"


class MalformedRankingError(TasteMatchError):
    """
    Ranking input that cannot be scored.

    Raised for rankings that point at unknown songs or users, duplicate ranks
    for one user, a song ranked twice by one user, or non-positive ranks.
    The same input always fails the same way, so callers should not retry.
    """


class UnknownUserError(MalformedRankingError):
    """The active user of a per-user report is not in the snapshot."""
