from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class Role(StrEnum):
    USER = "user"
    ADMIN = "admin"


class Capability(StrEnum):
    VIEW_ALL = "reservations.view_all"
    CANCEL_ANY = "reservations.cancel_any"


ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.USER: frozenset(),
    Role.ADMIN: frozenset({Capability.VIEW_ALL, Capability.CANCEL_ANY}),
}


@dataclass(frozen=True)
class Actor:
    id: str
    role: Role = Role.USER


def has_capability(actor: Actor, capability: Capability) -> bool:
    return capability in ROLE_CAPABILITIES.get(actor.role, frozenset())
