from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from clinreview.database import Base


class KPIGroup(Base):
    """One (title, director, kpi) membership row of a named KPI group."""
    __tablename__ = "kpi_group"
    __table_args__ = (
        UniqueConstraint("title", "director_id", "kpi_id", name="uq_kpi_group_member"),
    )

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False, index=True)
    director_id = Column(Integer, ForeignKey("profiles.id"), nullable=False, index=True)
    kpi_id = Column(Integer, ForeignKey("kpis.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    kpi = relationship("KPI")
    director = relationship("StaffProfile")
