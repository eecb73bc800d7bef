"""Seed positions, the starter KPI catalogue and two demo profiles."""
from clinreview.database import init_db, session_scope
from clinreview.models.kpi import KPI
from clinreview.models.position import Position, Role
from clinreview.models.profile import StaffProfile

POSITIONS = [
    ("Registered Nurse", Role.CLINICIAN),
    ("Director of Nursing", Role.DIRECTOR),
    ("Administrator", Role.SUPER_ADMIN),
]

KPIS = [
    ("Patient Satisfaction", "Maintain patient satisfaction scores above 90%", 9, "1st Floor"),
    ("Documentation Compliance", "Complete patient documentation within 24 hours", 8, "2nd Floor"),
    ("Continuing Education", "Complete required continuing education hours", 6, "1st Floor"),
    ("Team Collaboration", "Demonstrate effective teamwork and communication", 7, "3rd Floor"),
    ("Clinical Outcomes", "Achieve target clinical outcome measures", 10, "2nd Floor"),
]


def create_position(db, title, role):
    existing = db.query(Position).filter(Position.position_title == title).first()
    if existing:
        print(f"Position {title} already exists. Skipping.")
        return existing
    position = Position(position_title=title, role=role)
    db.add(position)
    db.commit()
    db.refresh(position)
    print(f"Created position {title} ({role.value})")
    return position


def create_kpi(db, title, description, weight, floor):
    if db.query(KPI).filter(KPI.title == title).first():
        print(f"KPI {title} already exists. Skipping.")
        return
    db.add(KPI(title=title, description=description, weight=weight, floor=floor, is_removed=False))
    db.commit()
    print(f"Created KPI {title} (weight {weight}, {floor})")


def create_profile(db, name, username, position):
    if db.query(StaffProfile).filter(StaffProfile.username == username).first():
        print(f"Profile {username} already exists. Skipping.")
        return
    db.add(StaffProfile(name=name, username=username, position_id=position.id, accept=True))
    db.commit()
    print(f"Created approved profile {username} -> {position.position_title}")


if __name__ == "__main__":
    init_db()
    with session_scope() as db:
        positions = {role: create_position(db, title, role) for title, role in POSITIONS}
        for row in KPIS:
            create_kpi(db, *row)
        create_profile(db, "Dana Director", "director@example.com", positions[Role.DIRECTOR])
        create_profile(db, "Casey Clinician", "clinician@example.com", positions[Role.CLINICIAN])
