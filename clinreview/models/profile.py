"""
Staff profile model.
Only approved (accept=True) profiles take part in scoring and hierarchy queries.
"""
from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from clinreview.database import Base
from clinreview.models.position import Role


class StaffProfile(Base):
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    username = Column(String, unique=True, index=True, nullable=False)
    position_id = Column(Integer, ForeignKey("positions.id"), nullable=True)
    accept = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    position = relationship("Position", back_populates="profiles")

    def __repr__(self):
        return f"<StaffProfile {self.username} ({self.role.value})>"

    @property
    def role(self) -> Role:
        """Profiles without a position are treated as clinicians."""
        if self.position is None:
            return Role.CLINICIAN
        return self.position.role

    @property
    def position_title(self):
        return self.position.position_title if self.position else None
