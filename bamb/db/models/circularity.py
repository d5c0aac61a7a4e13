import uuid

from sqlalchemy import Column, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from bamb.db.base import Base


class Circularity(Base):
    __tablename__ = "circularities"

    uid = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    element_uid = Column(String(36), ForeignKey("elements.uid", ondelete="SET NULL"), nullable=True)
    market_value = Column(Float, nullable=True)
    social_balance = Column(Float, nullable=True)
    savings_co2 = Column(Float, nullable=True)

    element = relationship("Element", back_populates="circularities")
