from sqlalchemy import Column, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from bamb.db.base import Base


class ClassificationSystem(Base):
    __tablename__ = "classification_systems"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), unique=True, nullable=False)
    description = Column(Text, nullable=True)

    entries = relationship(
        "ClassificationEntry", back_populates="system", cascade="all, delete-orphan"
    )


class ClassificationEntry(Base):
    __tablename__ = "classification_entries"
    __table_args__ = (UniqueConstraint("system_id", "code", name="unique_entry_code_system"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    system_id = Column(Integer, ForeignKey("classification_systems.id", ondelete="CASCADE"), nullable=False)
    code = Column(String(100), nullable=False)
    label = Column(String(255), nullable=True)

    system = relationship("ClassificationSystem", back_populates="entries")
