"""Role accumulators and the grant-pass state object.

The role grant pass correlates three independently paged listings (teams,
team members, users) into two role -> member-id maps. The maps, the team id
list, the team cursor and the phase flags live in a ``GrantsProgress`` owned
by the role syncer and handed to the phase driver on every call. None of it
is encoded in the continuation token.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterator, Mapping, Optional

GROUP_ROLE_PREFIX = "group"
ACCOUNT_ROLE_PREFIX = "account"


def role_key(prefix: str, role: str) -> str:
    return f"{prefix}-{role}"


# Role name shown to consumers -> accumulator key. Account keys embed the
# PagerDuty user role as returned by the API ("limited_user", "user", ...).
GROUP_ACCESS_ROLES: Mapping[str, str] = MappingProxyType({
    "observer": role_key(GROUP_ROLE_PREFIX, "observer"),
    "responder": role_key(GROUP_ROLE_PREFIX, "responder"),
    "manager": role_key(GROUP_ROLE_PREFIX, "manager"),
})

ACCOUNT_ACCESS_ROLES: Mapping[str, str] = MappingProxyType({
    "owner": role_key(ACCOUNT_ROLE_PREFIX, "owner"),
    "admin": role_key(ACCOUNT_ROLE_PREFIX, "admin"),
    "observer": role_key(ACCOUNT_ROLE_PREFIX, "observer"),
    "responder": role_key(ACCOUNT_ROLE_PREFIX, "limited_user"),
    "manager": role_key(ACCOUNT_ROLE_PREFIX, "user"),
    "restricted_access": role_key(ACCOUNT_ROLE_PREFIX, "restricted_access"),
})


class RoleAccumulator:
    """role key -> set of member ids, built page by page."""

    def __init__(self) -> None:
        self._members: dict[str, set[str]] = {}

    def add(self, key: str, member_id: str) -> None:
        self._members.setdefault(key, set()).add(member_id)

    def members(self, key: str) -> Optional[frozenset[str]]:
        """Members under ``key``, or None when the key was never observed."""
        found = self._members.get(key)
        return frozenset(found) if found is not None else None

    def roles(self) -> list[str]:
        return sorted(self._members)

    def member_ids(self) -> set[str]:
        out: set[str] = set()
        for ids in self._members.values():
            out |= ids
        return out

    def as_dict(self) -> dict[str, frozenset[str]]:
        return {k: frozenset(v) for k, v in self._members.items()}

    def __contains__(self, key: object) -> bool:
        return key in self._members

    def __iter__(self) -> Iterator[str]:
        return iter(self.roles())

    def __len__(self) -> int:
        return len(self._members)


class Phase(str, enum.Enum):
    ENUMERATE_GROUPS = "enumerate_groups"
    ENUMERATE_MEMBERSHIPS = "enumerate_memberships"
    ENUMERATE_ACCOUNTS = "enumerate_accounts"
    COMPUTED = "computed"


@dataclass
class GrantsProgress:
    """Mutable state of one role grant pass.

    Phase flags only move false -> true. ``reset()`` abandons the pass and
    starts a new one.
    """

    groups_enumerated: bool = False
    memberships_enumerated: bool = False
    accounts_enumerated: bool = False

    group_ids: list[str] = field(default_factory=list)
    group_index: int = 0

    group_roles: RoleAccumulator = field(default_factory=RoleAccumulator)
    account_roles: RoleAccumulator = field(default_factory=RoleAccumulator)

    # Last continuation token handed out during this pass.
    last_token: Optional[str] = None

    @property
    def phase(self) -> Phase:
        if not self.groups_enumerated:
            return Phase.ENUMERATE_GROUPS
        if not self.memberships_enumerated:
            return Phase.ENUMERATE_MEMBERSHIPS
        if not self.accounts_enumerated:
            return Phase.ENUMERATE_ACCOUNTS
        return Phase.COMPUTED

    @property
    def started(self) -> bool:
        return self.last_token is not None or self.groups_enumerated

    @property
    def complete(self) -> bool:
        return self.phase is Phase.COMPUTED

    def flags(self) -> tuple[bool, bool, bool]:
        return (self.groups_enumerated, self.memberships_enumerated, self.accounts_enumerated)

    def current_group_id(self) -> str:
        return self.group_ids[self.group_index]

    def mark_groups_enumerated(self) -> None:
        self.groups_enumerated = True
        if not self.group_ids:
            # nothing to page through
            self.memberships_enumerated = True

    def mark_memberships_enumerated(self) -> None:
        self.memberships_enumerated = True

    def mark_accounts_enumerated(self) -> None:
        self.accounts_enumerated = True

    def members_for_role(self, key: str) -> list[str]:
        """Member ids holding ``key``.

        Account-level roles win; group roles are the fallback. Unknown keys
        yield an empty list.
        """
        members = self.account_roles.members(key)
        if members is None:
            members = self.group_roles.members(key)
        return sorted(members or ())

    def reset(self) -> None:
        self.groups_enumerated = False
        self.memberships_enumerated = False
        self.accounts_enumerated = False
        self.group_ids = []
        self.group_index = 0
        self.group_roles = RoleAccumulator()
        self.account_roles = RoleAccumulator()
        self.last_token = None
