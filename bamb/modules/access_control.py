"""Grants guarding the access-control introspection endpoints."""

from bamb.core.access.grants import GrantTable, ResourceTriplet
from bamb.core.bootstrap import DomainModule

ACDB = ResourceTriplet("acdb")
ACDB_RESOURCE = ResourceTriplet("acdbResource")
ROLE_PRIVILEGES = ResourceTriplet("rolePrivileges")
RESOURCE_PRIVILEGES = ResourceTriplet("resourcePrivileges")


def build_grants() -> GrantTable:
    table = GrantTable("accessControl")
    for triplet in (ACDB, ACDB_RESOURCE, ROLE_PRIVILEGES, RESOURCE_PRIVILEGES):
        table.declare(triplet, ["*"])

    for role in ("BasicUser", "ProjectAdministrator", "ProjectManager", "SysAdmin"):
        table.role(role).read(ACDB.global_, ["*"])

    sys_admin = table.role("SysAdmin")
    sys_admin.read(ACDB_RESOURCE.global_, ["*"])
    sys_admin.read(ROLE_PRIVILEGES.global_, ["*"])
    sys_admin.read(RESOURCE_PRIVILEGES.global_, ["*"])
    return table


class AccessControlModule(DomainModule):
    name = "accessControl"

    def build_grants(self):
        return build_grants()
