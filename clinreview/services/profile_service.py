from typing import List, Optional

from clinreview.core.exceptions import ConflictError, NotFoundError, ValidationFailed
from clinreview.models.position import Position, Role
from clinreview.models.profile import StaffProfile
from clinreview.services.base import BaseService
from clinreview.services.entity_store import Collection
from clinreview.services.gateway import TableGateway


class ProfileService(BaseService):
    """Positions and staff profiles. Profiles start unapproved and are never hard-deleted."""

    def __init__(self, db, store=None):
        super().__init__(db, store)
        self.positions = TableGateway(db, Position)
        self.profiles = TableGateway(db, StaffProfile)

    def _refresh(self):
        if self.store is not None:
            self.store.refresh(self.db, Collection.PROFILES)

    def list_positions(self) -> List[Position]:
        return self.positions.select(order_by="position_title")

    def create_position(self, title: str, role: Role) -> Position:
        if not title or not title.strip():
            raise ValidationFailed("Position title is required", field="position_title")
        if self.positions.select({"position_title": title.strip()}, limit=1):
            raise ConflictError(f"Position '{title}' already exists")
        with self.transaction("create position"):
            return self.positions.insert([{"position_title": title.strip(), "role": role}])[0]

    def _position(self, position_id: Optional[int]) -> Optional[Position]:
        if position_id is None:
            return None
        position = self.positions.get(position_id)
        if position is None:
            raise ValidationFailed(f"Position {position_id} not found", field="position_id")
        return position

    def get(self, profile_id: int) -> StaffProfile:
        profile = self.profiles.get(profile_id)
        if profile is None:
            raise NotFoundError(f"Staff member {profile_id} not found")
        return profile

    def list_profiles(self, approved_only: bool = False, role: Optional[Role] = None) -> List[StaffProfile]:
        filters = {"accept": True} if approved_only else None
        rows = self.profiles.select(filters, order_by="name", embed=("position",))
        if role is not None:
            rows = [row for row in rows if row.role is role]
        return rows

    def register(self, name: str, username: str, position_id: Optional[int] = None) -> StaffProfile:
        if not name or not name.strip():
            raise ValidationFailed("Name is required", field="name")
        if not username or not username.strip():
            raise ValidationFailed("Username is required", field="username")
        self._position(position_id)
        if self.profiles.select({"username": username.strip()}, limit=1):
            raise ConflictError(f"Username '{username}' is already taken")
        with self.transaction("create profile"):
            profile = self.profiles.insert([{
                "name": name.strip(),
                "username": username.strip(),
                "position_id": position_id,
                "accept": False,
            }])[0]
        self.log_info(f"Registered profile {profile.username}; awaiting approval")
        self._refresh()
        return profile

    def set_approval(self, profile_id: int, accept: bool) -> StaffProfile:
        self.get(profile_id)
        with self.transaction("update profile approval"):
            profile = self.profiles.update({"accept": accept}, {"id": profile_id})[0]
        self.log_info(f"Profile {profile_id} {'approved' if accept else 'approval revoked'}")
        self._refresh()
        return profile

    def update(self, profile_id: int, name: Optional[str] = None, position_id: Optional[int] = None) -> StaffProfile:
        self.get(profile_id)
        changes = {}
        if name is not None:
            if not name.strip():
                raise ValidationFailed("Name is required", field="name")
            changes["name"] = name.strip()
        if position_id is not None:
            self._position(position_id)
            changes["position_id"] = position_id
        if not changes:
            return self.get(profile_id)
        with self.transaction("update profile"):
            profile = self.profiles.update(changes, {"id": profile_id})[0]
        self._refresh()
        return profile
