# app/services/permissions.py
"""
Role -> capability table.

The table is static data: one frozen ``Permission`` row per ``UserRole``,
exposed through a read-only mapping. Ownership rules ("Admin OR creator",
"Admin OR author") are layered on top by ``can_modify`` and the services,
never stored in the table itself.
"""
from dataclasses import dataclass, fields
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Union

from app.db.enums import UserRole


@dataclass(frozen=True)
class Permission:
    canViewDashboard: bool = False
    canManageUsers: bool = False
    canCreateJobs: bool = False
    canEditJobs: bool = False
    canDeleteJobs: bool = False
    canCreateEstimates: bool = False
    canApproveEstimates: bool = False
    canUploadDrawings: bool = False
    canApproveDrawings: bool = False
    canCreateSubmittals: bool = False
    canManageProduction: bool = False
    canManageDelivery: bool = False
    canManageInventory: bool = False
    canViewReports: bool = False
    canExportData: bool = False

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


CAPABILITIES = tuple(f.name for f in fields(Permission))

ROLE_PERMISSIONS: Mapping[UserRole, Permission] = MappingProxyType({
    UserRole.Admin: Permission(**{name: True for name in CAPABILITIES}),
    UserRole.Estimator: Permission(
        canViewDashboard=True,
        canCreateEstimates=True,
        canViewReports=True,
    ),
    UserRole.Drafter: Permission(
        canViewDashboard=True,
        canUploadDrawings=True,
        canViewReports=True,
    ),
    UserRole.ProjectManager: Permission(
        canViewDashboard=True,
        canCreateJobs=True,
        canEditJobs=True,
        canApproveEstimates=True,
        canApproveDrawings=True,
        canCreateSubmittals=True,
        canViewReports=True,
        canExportData=True,
    ),
    UserRole.Production: Permission(
        canViewDashboard=True,
        canManageProduction=True,
        canManageDelivery=True,
        canViewReports=True,
    ),
    UserRole.InventoryManager: Permission(
        canViewDashboard=True,
        canManageInventory=True,
        canViewReports=True,
        canExportData=True,
    ),
    UserRole.Viewer: Permission(
        canViewDashboard=True,
        canViewReports=True,
    ),
})


def _as_role(role: Union[UserRole, str]) -> UserRole:
    if isinstance(role, UserRole):
        return role
    try:
        return UserRole(role)
    except ValueError:
        raise ValueError(f"Unknown role: {role!r}") from None


def _check_capability(capability: str) -> str:
    if capability not in CAPABILITIES:
        raise ValueError(f"Unknown capability: {capability!r}")
    return capability


def capabilities_of(role: Union[UserRole, str]) -> Permission:
    return ROLE_PERMISSIONS[_as_role(role)]


def has_permission(role: Union[UserRole, str], capability: str) -> bool:
    return getattr(capabilities_of(role), _check_capability(capability))


def has_permissions(role: Union[UserRole, str], capabilities: Iterable[str]) -> bool:
    """True when the role holds every capability listed."""
    return all(has_permission(role, c) for c in capabilities)


def has_any_permission(role: Union[UserRole, str], capabilities: Iterable[str]) -> bool:
    return any(has_permission(role, c) for c in capabilities)


def is_admin(role: Union[UserRole, str]) -> bool:
    return _as_role(role) is UserRole.Admin


def can_modify(
    role: Union[UserRole, str],
    capability: Optional[str],
    owner_id: Optional[str],
    user_id: str,
) -> bool:
    '''
    Ownership overlay: the blanket capability, or being the record's owner.

    :param role: caller role
    :param capability: blanket capability name; None means "Admin only"
    :param owner_id: creator / author of the record, may be None for legacy rows
    :param user_id: caller id
    '''
    if owner_id is not None and owner_id == user_id:
        return True
    if capability is None:
        return is_admin(role)
    return has_permission(role, capability)
