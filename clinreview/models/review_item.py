from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from clinreview.database import Base
from clinreview.core.periods import utcnow


class ReviewItem(Base):
    __tablename__ = "review_items"

    id = Column(Integer, primary_key=True, index=True)
    staff_id = Column(Integer, ForeignKey("profiles.id"), nullable=False, index=True)
    kpi_id = Column(Integer, ForeignKey("kpis.id"), nullable=False, index=True)
    director_id = Column(Integer, ForeignKey("profiles.id"), nullable=True)
    met_check = Column(Boolean, nullable=False)
    notes = Column(Text, nullable=True)  # only when not met
    plan = Column(Text, nullable=True)  # only when not met
    score = Column(Integer, nullable=False)  # KPI weight if met, else 0
    date = Column(DateTime, default=utcnow, nullable=False, index=True)
    file_url = Column(String, nullable=True)

    staff = relationship("StaffProfile", foreign_keys=[staff_id])
    director = relationship("StaffProfile", foreign_keys=[director_id])
    kpi = relationship("KPI")
