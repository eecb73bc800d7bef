from sqlalchemy import Column, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from clinreview.database import Base


class Assignment(Base):
    """
    Supervision edge: ``subordinate`` is supervised by ``supervisor``.

    The subordinate may be a clinician or a director; which relation a row
    belongs to is decided by the subordinate's role (see services.hierarchy).
    """
    __tablename__ = "assign"
    __table_args__ = (
        UniqueConstraint("subordinate_id", "supervisor_id", name="uq_assign_pair"),
    )

    id = Column(Integer, primary_key=True, index=True)
    subordinate_id = Column(Integer, ForeignKey("profiles.id"), nullable=False, index=True)
    supervisor_id = Column(Integer, ForeignKey("profiles.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    subordinate = relationship("StaffProfile", foreign_keys=[subordinate_id])
    supervisor = relationship("StaffProfile", foreign_keys=[supervisor_id])
