from bamb.core.access.grants import GrantTable, ResourceTriplet

CIRCULARITY = ResourceTriplet("circularity", "ownProjectCircularity", "participatingProjectCircularity")

CIRCULARITY_ATTRIBUTES = [
    "uid",
    "projectId",
    "elementUid",
    "marketValue",
    "socialBalance",
    "savingsCO2",
]


def build_grants() -> GrantTable:
    table = GrantTable("circularity")
    table.declare(CIRCULARITY, CIRCULARITY_ATTRIBUTES)

    basic_user = table.role("BasicUser")
    basic_user.read(CIRCULARITY.owned, ["*"])
    basic_user.create(CIRCULARITY.owned, ["*"])
    basic_user.update(CIRCULARITY.owned, ["marketValue", "socialBalance", "savingsCO2"])
    basic_user.delete(CIRCULARITY.owned, ["*"])
    basic_user.read(CIRCULARITY.shared, ["uid", "projectId", "elementUid", "savingsCO2"])

    admin = table.role("ProjectAdministrator")
    admin.create(CIRCULARITY.global_, ["*"])
    admin.read(CIRCULARITY.global_, ["*"])
    admin.update(CIRCULARITY.global_, ["*"])
    admin.delete(CIRCULARITY.global_, ["*"])

    table.role("ProjectManager").read(CIRCULARITY.global_, ["uid", "projectId", "elementUid", "savingsCO2"])
    return table
