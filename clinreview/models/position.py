from sqlalchemy import Column, Integer, String, Enum
from sqlalchemy.orm import relationship
import enum
from clinreview.database import Base


class Role(str, enum.Enum):
    """
    Staff roles, derived from a profile's position.

    - SUPER_ADMIN: approves profiles, manages KPIs and the director hierarchy
    - DIRECTOR: reviews assigned clinicians and subordinate directors
    - CLINICIAN: reviewed staff member
    """
    CLINICIAN = "clinician"
    DIRECTOR = "director"
    SUPER_ADMIN = "super-admin"


class Position(Base):
    __tablename__ = "positions"

    id = Column(Integer, primary_key=True, index=True)
    position_title = Column(String, nullable=False, unique=True)
    role = Column(Enum(Role, values_callable=lambda e: [m.value for m in e]), default=Role.CLINICIAN, nullable=False)

    profiles = relationship("StaffProfile", back_populates="position")

    def __repr__(self):
        return f"<Position {self.position_title} ({self.role.value})>"
