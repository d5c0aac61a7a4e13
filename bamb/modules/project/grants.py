from bamb.core.access.grants import GrantTable, ResourceTriplet

PROJECT = ResourceTriplet("project", "ownProject", "participatingProject")
PARTICIPANT = ResourceTriplet("projectParticipant", "ownProjectParticipant", "participatingProjectParticipant")

PROJECT_ATTRIBUTES = ["id", "name", "description", "ownerId", "createdAt", "participants"]
PARTICIPANT_ATTRIBUTES = ["id", "projectId", "userId", "role"]


def build_grants() -> GrantTable:
    table = GrantTable("project")
    table.declare(PROJECT, PROJECT_ATTRIBUTES)
    table.declare(PARTICIPANT, PARTICIPANT_ATTRIBUTES)

    basic_user = table.role("BasicUser")
    basic_user.create(PROJECT.global_, ["*"])
    basic_user.read(PROJECT.owned, ["*"])
    basic_user.update(PROJECT.owned, ["name", "description"])
    basic_user.delete(PROJECT.owned, ["*"])
    basic_user.read(PROJECT.shared, ["id", "name", "description", "ownerId"])

    basic_user.read(PARTICIPANT.owned, ["*"])
    basic_user.create(PARTICIPANT.owned, ["*"])
    basic_user.delete(PARTICIPANT.owned, ["*"])
    basic_user.read(PARTICIPANT.shared, ["projectId", "userId", "role"])

    admin = table.role("ProjectAdministrator")
    for resource in (PROJECT.global_, PARTICIPANT.global_):
        admin.create(resource, ["*"]).read(resource, ["*"]).update(resource, ["*"]).delete(resource, ["*"])

    table.role("ProjectManager").read(PROJECT.global_, ["id", "name", "description", "ownerId", "createdAt"])
    return table
