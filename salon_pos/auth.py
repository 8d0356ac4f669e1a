from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request, status

from salon_pos.models import ApprovalStatus, StaffRole

Role = StaffRole


@dataclass
class Principal:
    id: int
    email: str
    full_name: str | None
    role: Role
    approval_status: ApprovalStatus

    @property
    def display_name(self) -> str:
        return (self.full_name or '').strip() or self.email

    @property
    def is_admin(self) -> bool:
        return is_admin_role(self.role)


def get_current_principal(request: Request) -> Principal:
    principal = getattr(request.state, "principal", None)
    if not principal:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    if principal.approval_status != ApprovalStatus.APPROVED:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN)
    return principal


def is_admin_role(role: Role) -> bool:
    return role == Role.ADMIN


def require_role(*allowed: Role):
    def _dep(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN)
        return principal

    return _dep


def assert_admin(principal: Principal) -> None:
    if not is_admin_role(principal.role):
        raise PermissionError('Unauthorized - Admin access required')
