from bamb.core.access.grants import GrantTable, ResourceTriplet

INVENTORY = ResourceTriplet("inventory", "ownProjectInventory", "participatingProjectInventory")
ELEMENT_TYPE = ResourceTriplet("elementType", "ownProjectElementType", "participatingProjectElementType")

ELEMENT_ATTRIBUTES = [
    "uid",
    "projectId",
    "ifcId",
    "revitId",
    "name",
    "description",
    "reusePotential",
    "reuseDecision",
    "surfaceDamage",
    "elementType",
    "elementTypeUid",
    "hazardAssessment",
    "hazardAssessmentStatus",
    "properties",
    "materials",
    "circularities",
]

ELEMENT_TYPE_ATTRIBUTES = [
    "uid",
    "projectId",
    "name",
    "ifcType",
    "description",
    "classificationEntryId",
]

# What a contributing participant may see of someone else's inventory
SHARED_ELEMENT_ATTRIBUTES = [
    "uid",
    "projectId",
    "name",
    "description",
    "reusePotential",
    "reuseDecision",
    "elementType",
    "elementTypeUid",
    "materials",
]


def build_grants() -> GrantTable:
    table = GrantTable("inventory")
    table.declare(INVENTORY, ELEMENT_ATTRIBUTES)
    table.declare(ELEMENT_TYPE, ELEMENT_TYPE_ATTRIBUTES)

    basic_user = table.role("BasicUser")
    basic_user.read(INVENTORY.owned, ELEMENT_ATTRIBUTES)
    basic_user.create(INVENTORY.owned, ["*"])
    basic_user.update(INVENTORY.owned, ["*"])
    basic_user.delete(INVENTORY.owned, ["*"])
    basic_user.read(INVENTORY.shared, SHARED_ELEMENT_ATTRIBUTES)
    basic_user.create(INVENTORY.shared, ELEMENT_ATTRIBUTES)
    basic_user.update(INVENTORY.shared, [
        "ifcId",
        "revitId",
        "name",
        "description",
        "reusePotential",
    ])

    basic_user.read(ELEMENT_TYPE.owned, ["*"])
    basic_user.create(ELEMENT_TYPE.owned, ["*"])
    basic_user.read(ELEMENT_TYPE.shared, ["uid", "projectId", "name", "ifcType"])

    admin = table.role("ProjectAdministrator")
    for resource in (INVENTORY.global_, ELEMENT_TYPE.global_):
        admin.create(resource, ["*"]).read(resource, ["*"]).update(resource, ["*"]).delete(resource, ["*"])

    # Managers oversee every project but do not see hazard data
    table.role("ProjectManager").read(
        INVENTORY.global_, ["*", "!hazardAssessment", "!hazardAssessmentStatus"]
    )
    table.role("ProjectManager").read(ELEMENT_TYPE.global_, ["*"])
    return table
