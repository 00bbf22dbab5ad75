"""
Role based access control.

Roles: admin | operator | viewer
Actions: create | read | update | delete | list
"""

from typing import Dict, FrozenSet, Literal

UserRole = Literal["admin", "operator", "viewer"]
Action = Literal["create", "read", "update", "delete", "list"]

ROLES = ("admin", "operator", "viewer")

ENTITIES = (
    "vendor",
    "user",
    "purchase",
    "batch",
    "vessel",
    "inventory",
    "measurement",
    "package",
    "cost",
    "report",
    "audit_log",
)

_ALL: FrozenSet[str] = frozenset({"create", "read", "update", "delete", "list"})
_READ: FrozenSet[str] = frozenset({"read", "list"})


def _matrix() -> Dict[str, Dict[str, FrozenSet[str]]]:
    admin = {entity: _ALL for entity in ENTITIES}
    admin["audit_log"] = _READ

    operator = {entity: _ALL for entity in ENTITIES}
    operator["vendor"] = frozenset({"create", "read", "update", "list"})
    operator["user"] = _READ
    operator["cost"] = _READ
    operator["report"] = frozenset({"create", "read", "list"})
    operator["audit_log"] = _READ

    viewer = {entity: _READ for entity in ENTITIES}

    return {"admin": admin, "operator": operator, "viewer": viewer}


RBAC_MATRIX = _matrix()


def can(role: str, action: str, entity: str) -> bool:
    perms = RBAC_MATRIX.get(role)
    if not perms:
        return False
    return action in perms.get(entity, frozenset())


def effective_role(user) -> str:
    if getattr(user, "is_superuser", False):
        return "admin"
    role = getattr(user, "role", None) or "viewer"
    return role if role in RBAC_MATRIX else "viewer"
