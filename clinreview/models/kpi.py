from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, CheckConstraint
from sqlalchemy.sql import func
from clinreview.database import Base

MIN_WEIGHT = 1
MAX_WEIGHT = 20


class KPI(Base):
    __tablename__ = "kpis"
    __table_args__ = (
        CheckConstraint(f"weight BETWEEN {MIN_WEIGHT} AND {MAX_WEIGHT}", name="ck_kpi_weight_range"),
    )

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    weight = Column(Integer, nullable=False)
    floor = Column(String, nullable=True, index=True)
    is_removed = Column(Boolean, default=False, nullable=False)  # soft-delete flag
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<KPI {self.title} (w={self.weight})>"
