"""Domain errors raised by service functions."""

from __future__ import annotations


class NotFoundError(LookupError):
    """A referenced entity (topic, user, badge) does not exist.

    Services let this propagate; the HTTP layer turns it into a 404.
    """

    def __init__(self, kind: str, identifier: object) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")

    @property
    def detail(self) -> str:
        return f"{self.kind} not found"
