"""Resource / entitlement / grant model and its builder functions.

Builders are pure constructors. Ids follow the composite conventions
``<resourceType>:<resourceID>:<slug>`` for entitlements and
``<entitlementID>:<principalType>:<principalID>`` for grants.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from scripts.pagerduty_connector.errors import MalformedIdError

TRAIT_USER = "user"
TRAIT_GROUP = "group"
TRAIT_ROLE = "role"

PURPOSE_ASSIGNMENT = "assignment"
PURPOSE_PERMISSION = "permission"


@dataclass(frozen=True)
class ResourceType:
    id: str
    display_name: str
    traits: tuple[str, ...] = ()


@dataclass(frozen=True)
class ResourceId:
    resource_type: str
    resource: str

    def __str__(self) -> str:
        return f"{self.resource_type}:{self.resource}"


@dataclass(frozen=True)
class Resource:
    id: ResourceId
    display_name: str
    trait: str
    profile: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)
    email: Optional[str] = None

    def profile_str(self, key: str) -> Optional[str]:
        value = self.profile.get(key)
        return value if isinstance(value, str) else None

    def profile_str_list(self, key: str) -> Optional[list[str]]:
        value = self.profile.get(key)
        if not isinstance(value, (list, tuple)):
            return None
        if not all(isinstance(v, str) for v in value):
            return None
        return list(value)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": {"resource_type": self.id.resource_type, "resource": self.id.resource},
            "display_name": self.display_name,
            "trait": self.trait,
            "profile": dict(self.profile),
            "email": self.email,
        }


@dataclass(frozen=True)
class Entitlement:
    id: str
    resource: Resource
    slug: str
    purpose: str
    display_name: str = ""
    description: str = ""
    grantable_to: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "resource": str(self.resource.id),
            "slug": self.slug,
            "purpose": self.purpose,
            "display_name": self.display_name,
            "description": self.description,
            "grantable_to": list(self.grantable_to),
        }


@dataclass(frozen=True)
class Grant:
    id: str
    entitlement: Entitlement
    principal: ResourceId
    expandable: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "entitlement": self.entitlement.id,
            "principal": str(self.principal),
        }
        if self.expandable:
            out["expandable"] = list(self.expandable)
        return out


# ----------------------------------------------------------------------
# Builders
# ----------------------------------------------------------------------

def new_user_resource(
    display_name: str,
    resource_type: ResourceType,
    object_id: str,
    email: Optional[str] = None,
    profile: Optional[dict[str, Any]] = None,
) -> Resource:
    return Resource(
        id=ResourceId(resource_type.id, object_id),
        display_name=display_name,
        trait=TRAIT_USER,
        profile=dict(profile or {}),
        email=email,
    )


def new_group_resource(
    display_name: str,
    resource_type: ResourceType,
    object_id: str,
    profile: Optional[dict[str, Any]] = None,
) -> Resource:
    return Resource(
        id=ResourceId(resource_type.id, object_id),
        display_name=display_name,
        trait=TRAIT_GROUP,
        profile=dict(profile or {}),
    )


def new_role_resource(
    display_name: str,
    resource_type: ResourceType,
    object_id: str,
    profile: Optional[dict[str, Any]] = None,
) -> Resource:
    return Resource(
        id=ResourceId(resource_type.id, object_id),
        display_name=display_name,
        trait=TRAIT_ROLE,
        profile=dict(profile or {}),
    )


def entitlement_id(resource: Resource, slug: str) -> str:
    return f"{resource.id.resource_type}:{resource.id.resource}:{slug}"


def _new_entitlement(
    resource: Resource,
    slug: str,
    purpose: str,
    display_name: str,
    description: str,
    grantable_to: Sequence[ResourceType],
) -> Entitlement:
    return Entitlement(
        id=entitlement_id(resource, slug),
        resource=resource,
        slug=slug,
        purpose=purpose,
        display_name=display_name,
        description=description,
        grantable_to=tuple(rt.id for rt in grantable_to),
    )


def new_assignment_entitlement(
    resource: Resource,
    slug: str,
    display_name: str = "",
    description: str = "",
    grantable_to: Sequence[ResourceType] = (),
) -> Entitlement:
    return _new_entitlement(
        resource, slug, PURPOSE_ASSIGNMENT, display_name, description, grantable_to
    )


def new_permission_entitlement(
    resource: Resource,
    slug: str,
    display_name: str = "",
    description: str = "",
    grantable_to: Sequence[ResourceType] = (),
) -> Entitlement:
    return _new_entitlement(
        resource, slug, PURPOSE_PERMISSION, display_name, description, grantable_to
    )


def new_grant(
    resource: Resource,
    slug: str,
    principal: ResourceId,
    expandable: Sequence[str] = (),
) -> Grant:
    """Grant ``principal`` the ``slug`` entitlement on ``resource``."""
    ent = Entitlement(
        id=entitlement_id(resource, slug),
        resource=resource,
        slug=slug,
        purpose=PURPOSE_ASSIGNMENT,
    )
    return Grant(
        id=f"{ent.id}:{principal.resource_type}:{principal.resource}",
        entitlement=ent,
        principal=principal,
        expandable=tuple(expandable),
    )


def extract_resource_ids(full_id: str) -> tuple[str, str]:
    """Split ``<resource_type>:<resource_id>:<entitlement_id>``.

    Returns (resource_id, entitlement_id).
    """
    parts = full_id.split(":")
    if len(parts) != 3:
        raise MalformedIdError(f"invalid resource id: {full_id}")
    return parts[1], parts[2]
