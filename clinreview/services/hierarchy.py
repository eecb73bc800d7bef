"""
Supervision hierarchy.

A single assignment table stores two relations: director -> clinician and
director -> director. ``HierarchyResolver`` splits the rows by the
subordinate's role once, then answers queries from the two explicit
relations. Only approved profiles ever appear in results.
"""
import enum
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from clinreview.models.position import Role
from clinreview.services.records import AssignmentRecord, ProfileRecord


class Relation(str, enum.Enum):
    CLINICIAN_SUPERVISION = "clinician"
    DIRECTOR_SUPERVISION = "director"


def relation_for(role: Role) -> Optional[Relation]:
    """Relation an assignment row belongs to, given its subordinate's role."""
    if role is Role.CLINICIAN:
        return Relation.CLINICIAN_SUPERVISION
    if role is Role.DIRECTOR:
        return Relation.DIRECTOR_SUPERVISION
    if role is Role.SUPER_ADMIN:
        return None
    raise ValueError(f"Unhandled role: {role}")


@dataclass(frozen=True)
class Supervision:
    subordinate_id: int
    supervisor_id: int
    relation: Relation


class HierarchyResolver:
    def __init__(self, profiles: Iterable[ProfileRecord], assignments: Iterable[AssignmentRecord]):
        self._profiles: Dict[int, ProfileRecord] = {p.id: p for p in profiles}
        self._ordered = list(self._profiles.values())
        self.clinician_supervision: List[Supervision] = []
        self.director_supervision: List[Supervision] = []
        self._all_subordinates = set()

        for row in assignments:
            self._all_subordinates.add(row.subordinate_id)
            subordinate = self._profiles.get(row.subordinate_id)
            if subordinate is None:
                continue
            relation = relation_for(subordinate.role)
            edge = Supervision(row.subordinate_id, row.supervisor_id, relation) if relation else None
            if relation is Relation.CLINICIAN_SUPERVISION:
                self.clinician_supervision.append(edge)
            elif relation is Relation.DIRECTOR_SUPERVISION:
                self.director_supervision.append(edge)

    def _approved(self, role: Role) -> List[ProfileRecord]:
        return [p for p in self._ordered if p.accept and p.role is role]

    def _subordinates(self, edges: Sequence[Supervision], supervisor_id: int, role: Role) -> List[ProfileRecord]:
        ids = {e.subordinate_id for e in edges if e.supervisor_id == supervisor_id}
        return [p for p in self._approved(role) if p.id in ids]

    def _supervisor(self, edges: Sequence[Supervision], subordinate_id: int) -> Optional[ProfileRecord]:
        edge = next((e for e in edges if e.subordinate_id == subordinate_id), None)
        if edge is None:
            return None
        supervisor = self._profiles.get(edge.supervisor_id)
        if supervisor is None or not supervisor.accept:
            return None
        return supervisor

    def profile(self, profile_id: int) -> Optional[ProfileRecord]:
        return self._profiles.get(profile_id)

    def directors(self) -> List[ProfileRecord]:
        return self._approved(Role.DIRECTOR)

    def assigned_clinicians(self, director_id: int) -> List[ProfileRecord]:
        return self._subordinates(self.clinician_supervision, director_id, Role.CLINICIAN)

    def assigned_directors(self, director_id: int) -> List[ProfileRecord]:
        return self._subordinates(self.director_supervision, director_id, Role.DIRECTOR)

    def unassigned_clinicians(self) -> List[ProfileRecord]:
        return [p for p in self._approved(Role.CLINICIAN) if p.id not in self._all_subordinates]

    def unassigned_directors(self) -> List[ProfileRecord]:
        return [p for p in self._approved(Role.DIRECTOR) if p.id not in self._all_subordinates]

    def director_of(self, staff_id: int) -> Optional[ProfileRecord]:
        """Supervisor of a staff member, whichever relation they belong to."""
        return self._supervisor(self.clinician_supervision + self.director_supervision, staff_id)

    def supervisor_of_director(self, director_id: int) -> Optional[ProfileRecord]:
        return self._supervisor(self.director_supervision, director_id)

    def supervisor_chain(self, director_id: int) -> List[ProfileRecord]:
        """Supervisors above a director, nearest first. Stops if a loop is met."""
        chain, seen = [], {director_id}
        current = self.supervisor_of_director(director_id)
        while current is not None and current.id not in seen:
            chain.append(current)
            seen.add(current.id)
            current = self.supervisor_of_director(current.id)
        return chain

    def would_create_cycle(self, subordinate_id: int, supervisor_id: int) -> bool:
        """True if ``subordinate_id`` already sits above ``supervisor_id``."""
        if subordinate_id == supervisor_id:
            return True
        above = {e.subordinate_id: e.supervisor_id for e in self.director_supervision}
        seen = set()
        current = supervisor_id
        while current in above and current not in seen:
            seen.add(current)
            current = above[current]
            if current == subordinate_id:
                return True
        return False
