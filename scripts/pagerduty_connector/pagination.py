"""Continuation-token codec.

A token is an opaque string encoding a stack of ``PageState`` frames. The top
frame is the listing currently being paged; its ``token`` field holds the
record offset into that listing as a decimal string. An empty token means the
listing is complete.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from typing import Optional

from scripts.pagerduty_connector.errors import MalformedTokenError


@dataclass
class PageState:
    resource_type_id: str = ""
    resource_id: str = ""
    token: str = ""


class Bag:
    """Stack of page states. ``current()`` is the top of the stack."""

    def __init__(self) -> None:
        self._states: list[PageState] = []
        self._current: Optional[PageState] = None

    def push(self, state: PageState) -> None:
        if self._current is not None:
            self._states.append(self._current)
        self._current = state

    def pop(self) -> Optional[PageState]:
        """Remove and return the current frame; the frame below becomes current."""
        popped = self._current
        self._current = self._states.pop() if self._states else None
        return popped

    def current(self) -> Optional[PageState]:
        return self._current

    @property
    def page_token(self) -> str:
        return self._current.token if self._current else ""

    def frames(self) -> list[PageState]:
        """All frames, bottom first, current last."""
        if self._current is None:
            return list(self._states)
        return [*self._states, self._current]

    def next_token(self, page_token: str) -> str:
        """Point the current frame at ``page_token`` and serialise the bag.

        An empty ``page_token`` means the current listing is exhausted, so the
        frame is popped before marshalling.
        """
        if self._current is None:
            return ""
        if page_token:
            self._current.token = page_token
        else:
            self.pop()
        return self.marshal()

    def marshal(self) -> str:
        if self._current is None:
            return ""
        return json.dumps(
            {
                "states": [asdict(s) for s in self._states],
                "current_state": asdict(self._current),
            },
            separators=(",", ":"),
            sort_keys=True,
        )

    @classmethod
    def unmarshal(cls, token: str) -> "Bag":
        bag = cls()
        if not token:
            return bag
        try:
            data = json.loads(token)
        except ValueError as exc:
            raise MalformedTokenError(f"invalid continuation token: {token!r}") from exc
        if not isinstance(data, dict):
            raise MalformedTokenError(f"invalid continuation token: {token!r}")
        try:
            bag._states = [_state_from_dict(s) for s in data.get("states") or []]
            current = data.get("current_state")
            bag._current = _state_from_dict(current) if current else None
        except (TypeError, AttributeError) as exc:
            raise MalformedTokenError(f"invalid continuation token: {token!r}") from exc
        return bag

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Bag):
            return NotImplemented
        return self.frames() == other.frames()

    def __repr__(self) -> str:
        return f"Bag({self.frames()!r})"


def _state_from_dict(raw: dict) -> PageState:
    for key in ("resource_type_id", "resource_id", "token"):
        if not isinstance(raw.get(key, ""), str):
            raise TypeError(f"page state field {key} must be a string")
    return PageState(
        resource_type_id=raw.get("resource_type_id", ""),
        resource_id=raw.get("resource_id", ""),
        token=raw.get("token", ""),
    )


def convert_page_token(token: str) -> int:
    """Parse a frame's page token into a record offset. Empty means 0."""
    if token == "":
        return 0
    if not (token.isascii() and token.isdigit()):
        raise MalformedTokenError(f"failed to parse page token: {token!r}")
    return int(token)


def parse_page_token(token: str, resource_type_id: str, resource_id: str = "") -> tuple[Bag, int]:
    """Decode ``token``; seed a fresh frame for the given listing when it is empty."""
    bag = Bag.unmarshal(token)
    if bag.current() is None:
        bag.push(PageState(resource_type_id=resource_type_id, resource_id=resource_id))
    return bag, convert_page_token(bag.page_token)


def next_page_token(bag: Bag, offset: int) -> str:
    """Encode ``bag`` with its current frame advanced to ``offset``."""
    if offset < 0:
        raise ValueError(f"page offset must be non-negative, got {offset}")
    return bag.next_token(str(offset))
