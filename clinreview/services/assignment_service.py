"""
Assignment mutations for both supervision relations.

All checks run against fresh rows before the write: both profiles exist and
are approved, the supervisor is a director, the subordinate's role matches
the relation, the subordinate has no supervisor yet, and a director edge
must not close a loop in the director hierarchy.
"""
from typing import List

from clinreview.core.exceptions import ConflictError, NotFoundError, ValidationFailed
from clinreview.models.assignment import Assignment
from clinreview.models.position import Role
from clinreview.models.profile import StaffProfile
from clinreview.services.base import BaseService
from clinreview.services.entity_store import Collection
from clinreview.services.gateway import TableGateway
from clinreview.services.hierarchy import HierarchyResolver, Relation, relation_for
from clinreview.services.records import AssignmentRecord, ProfileRecord


class AssignmentService(BaseService):

    def __init__(self, db, store=None):
        super().__init__(db, store)
        self.assignments = TableGateway(db, Assignment)
        self.profiles = TableGateway(db, StaffProfile)

    def _approved_profile(self, profile_id: int) -> StaffProfile:
        profile = self.profiles.get(profile_id)
        if profile is None or not profile.accept:
            raise NotFoundError(f"Approved staff member {profile_id} not found")
        return profile

    def resolver(self) -> HierarchyResolver:
        profiles = self.profiles.select(embed=("position",))
        rows = self.assignments.select()
        return HierarchyResolver(
            [ProfileRecord.from_model(p) for p in profiles],
            [AssignmentRecord.from_model(a) for a in rows],
        )

    def _assign(self, subordinate_id: int, supervisor_id: int, relation: Relation) -> Assignment:
        if subordinate_id == supervisor_id:
            raise ValidationFailed("A staff member cannot supervise themselves", field="supervisor_id")

        subordinate = self._approved_profile(subordinate_id)
        supervisor = self._approved_profile(supervisor_id)

        if supervisor.role is not Role.DIRECTOR:
            raise ValidationFailed("Supervisor must be a director", field="supervisor_id")
        if relation_for(subordinate.role) is not relation:
            raise ValidationFailed(
                f"Staff member {subordinate_id} is not a {relation.value}", field="subordinate_id"
            )

        existing = self.assignments.select({"subordinate_id": subordinate_id}, limit=1)
        if existing:
            raise ConflictError(
                f"Staff member {subordinate_id} is already supervised by {existing[0].supervisor_id}"
            )

        if relation is Relation.DIRECTOR_SUPERVISION and self.resolver().would_create_cycle(subordinate_id, supervisor_id):
            raise ValidationFailed(
                "Assignment would create a cycle in the director hierarchy", field="supervisor_id"
            )

        with self.transaction("create assignment"):
            row = self.assignments.insert([
                {"subordinate_id": subordinate_id, "supervisor_id": supervisor_id}
            ])[0]
        self.log_info(f"Assigned {relation.value} {subordinate_id} to director {supervisor_id}")
        self._refresh()
        return row

    def _unassign(self, subordinate_id: int, supervisor_id: int, relation: Relation):
        rows = self.assignments.select({"subordinate_id": subordinate_id, "supervisor_id": supervisor_id})
        if not rows:
            raise NotFoundError(f"No assignment of {subordinate_id} to {supervisor_id}")
        with self.transaction("delete assignment"):
            self.assignments.delete({"subordinate_id": subordinate_id, "supervisor_id": supervisor_id})
        self.log_info(f"Unassigned {relation.value} {subordinate_id} from director {supervisor_id}")
        self._refresh()

    def _refresh(self):
        if self.store is not None:
            self.store.refresh(self.db, Collection.ASSIGNMENTS)

    def assign_clinician(self, clinician_id: int, director_id: int) -> Assignment:
        return self._assign(clinician_id, director_id, Relation.CLINICIAN_SUPERVISION)

    def unassign_clinician(self, clinician_id: int, director_id: int):
        self._unassign(clinician_id, director_id, Relation.CLINICIAN_SUPERVISION)

    def assign_director(self, subordinate_director_id: int, supervisor_director_id: int) -> Assignment:
        return self._assign(subordinate_director_id, supervisor_director_id, Relation.DIRECTOR_SUPERVISION)

    def unassign_director(self, subordinate_director_id: int, supervisor_director_id: int):
        self._unassign(subordinate_director_id, supervisor_director_id, Relation.DIRECTOR_SUPERVISION)

    def list_assignments(self) -> List[Assignment]:
        return self.assignments.select(order_by="created_at", descending=True)
