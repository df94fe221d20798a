"""Request principal supplied by the Identity Service.

Authentication happens upstream (gateway / session middleware); by the time a
request reaches the storefront it carries the resolved user id and role in
the ``X-User-Id`` and ``X-User-Role`` headers.
"""

from dataclasses import dataclass
from enum import Enum

from fastapi import Depends, Header, HTTPException

from shared.errors import Forbidden


class Role(Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"


@dataclass(frozen=True)
class Principal:
    user_id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def current_principal(
    x_user_id: str = Header(default=""),
    x_user_role: str = Header(default=Role.CUSTOMER.value),
) -> Principal:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing user identity")
    try:
        role = Role(x_user_role.lower())
    except ValueError:
        raise HTTPException(status_code=401, detail=f"Unknown role: {x_user_role}") from None
    return Principal(user_id=x_user_id, role=role)


def require_admin(principal: Principal = Depends(current_principal)) -> Principal:
    if not principal.is_admin:
        raise Forbidden({"role": ["Administrator role required"]})
    return principal
