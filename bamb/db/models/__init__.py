"""Database models for the BAMB backend."""

from bamb.db.models.project import ParticipantRole, Project, ProjectParticipant
from bamb.db.models.classification import ClassificationEntry, ClassificationSystem
from bamb.db.models.inventory import (
    Element,
    ElementProperty,
    ElementType,
    HazardAssessment,
    HazardAssessmentStatus,
    Material,
    ReuseDecision,
    SurfaceDamage,
)
from bamb.db.models.circularity import Circularity

__all__ = [
    "Circularity",
    "ClassificationEntry",
    "ClassificationSystem",
    "Element",
    "ElementProperty",
    "ElementType",
    "HazardAssessment",
    "HazardAssessmentStatus",
    "Material",
    "ParticipantRole",
    "Project",
    "ProjectParticipant",
    "ReuseDecision",
    "SurfaceDamage",
]
