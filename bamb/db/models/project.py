import enum
from datetime import datetime

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from bamb.db.base import Base


class ParticipantRole(str, enum.Enum):
    GUEST = "Guest"
    CONTRIBUTOR = "Contributor"


class Project(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    owner_id = Column(Integer, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    participants = relationship(
        "ProjectParticipant", back_populates="project", cascade="all, delete-orphan"
    )


class ProjectParticipant(Base):
    __tablename__ = "project_participants"
    __table_args__ = (UniqueConstraint("project_id", "user_id", name="unique_user_project"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, nullable=False, index=True)
    role = Column(
        Enum(ParticipantRole, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=ParticipantRole.GUEST,
    )

    project = relationship("Project", back_populates="participants")
