from bamb.core.access.grants import GrantTable, ResourceTriplet

CLASSIFICATION_SYSTEMS = ResourceTriplet("classificationSystems")
CLASSIFICATION_ENTRIES = ResourceTriplet("classificationEntries")

CLASSIFICATION_SYSTEM_ATTRIBUTES = ["id", "name", "description", "entries"]
CLASSIFICATION_ENTRY_ATTRIBUTES = ["id", "systemId", "code", "label"]


def build_grants() -> GrantTable:
    table = GrantTable("core")
    table.declare(CLASSIFICATION_SYSTEMS, CLASSIFICATION_SYSTEM_ATTRIBUTES)
    table.declare(CLASSIFICATION_ENTRIES, CLASSIFICATION_ENTRY_ATTRIBUTES)

    for role in ("BasicUser", "ProjectManager"):
        table.role(role).read(CLASSIFICATION_SYSTEMS.global_, ["id", "name", "description"])
        table.role(role).read(CLASSIFICATION_ENTRIES.global_, ["*"])

    admin = table.role("ProjectAdministrator")
    for triplet in (CLASSIFICATION_SYSTEMS, CLASSIFICATION_ENTRIES):
        resource = triplet.global_
        admin.create(resource, ["*"]).read(resource, ["*"]).update(resource, ["*"]).delete(resource, ["*"])
    return table
