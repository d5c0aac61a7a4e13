import enum
import uuid

from sqlalchemy import Column, Enum, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from bamb.db.base import Base


def _values(enum_class):
    return [member.value for member in enum_class]


def _uid() -> str:
    return str(uuid.uuid4())


class ReuseDecision(str, enum.Enum):
    BACKFILLING = "backfilling"
    RECYCLING = "recycling"
    REUSE = "reuse"
    UNDEFINED = "undefined"


class HazardAssessmentStatus(str, enum.Enum):
    REQUESTED = "requested"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"


class HazardAssessment(str, enum.Enum):
    NO_HAZARD = "no_hazard"
    CONNECTION_ONLY = "connection_only"
    SURFACE_ONLY = "surface_only"
    OVERALL = "overall"


class SurfaceDamage(str, enum.Enum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ElementType(Base):
    __tablename__ = "element_types"
    __table_args__ = (UniqueConstraint("project_id", "name", name="unique_element_type_name_project"),)

    uid = Column(String(36), primary_key=True, default=_uid)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    ifc_type = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    classification_entry_id = Column(
        Integer, ForeignKey("classification_entries.id", ondelete="SET NULL"), nullable=True
    )

    elements = relationship("Element", back_populates="element_type")


class Element(Base):
    __tablename__ = "elements"
    __table_args__ = (UniqueConstraint("ifc_id", "project_id", name="unique_element_ifcid_project"),)

    uid = Column(String(36), primary_key=True, default=_uid)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    element_type_uid = Column(String(36), ForeignKey("element_types.uid", ondelete="SET NULL"), nullable=True)
    ifc_id = Column(String(255), nullable=True)
    revit_id = Column(String(255), nullable=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    reuse_potential = Column(Float, nullable=True)
    reuse_decision = Column(
        Enum(ReuseDecision, values_callable=_values), nullable=True, default=ReuseDecision.UNDEFINED
    )
    surface_damage = Column(Enum(SurfaceDamage, values_callable=_values), nullable=True)
    hazard_assessment = Column(
        Enum(HazardAssessment, values_callable=_values), nullable=True, default=HazardAssessment.NO_HAZARD
    )
    hazard_assessment_status = Column(
        Enum(HazardAssessmentStatus, values_callable=_values),
        nullable=True,
        default=HazardAssessmentStatus.REQUESTED,
    )

    element_type = relationship("ElementType", back_populates="elements")
    materials = relationship("Material", back_populates="element", cascade="all, delete-orphan")
    properties = relationship("ElementProperty", back_populates="element", cascade="all, delete-orphan")
    circularities = relationship("Circularity", back_populates="element")


class Material(Base):
    __tablename__ = "materials"

    uid = Column(String(36), primary_key=True, default=_uid)
    element_uid = Column(String(36), ForeignKey("elements.uid", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    volume = Column(Float, nullable=True)

    element = relationship("Element", back_populates="materials")


class ElementProperty(Base):
    __tablename__ = "element_properties"

    uid = Column(String(36), primary_key=True, default=_uid)
    element_uid = Column(String(36), ForeignKey("elements.uid", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    value = Column(String(255), nullable=True)
    unit = Column(String(50), nullable=True)

    element = relationship("Element", back_populates="properties")
