"""
Process-wide entity store.

Holds immutable snapshots of the four collections the scoring and hierarchy
code reads (KPIs including removed ones, profiles, assignments, review
items). Each collection has a version counter that is bumped on every
replacement; subscribers are notified with the changed collection.

Refreshing is a read path: when the data store fails, the last-known-good
snapshot stays in place and the failure is logged.
"""
import enum
import logging
import threading
from typing import Callable, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from clinreview.core.exceptions import DataAccessError
from clinreview.models.assignment import Assignment
from clinreview.models.kpi import KPI
from clinreview.models.profile import StaffProfile
from clinreview.models.review_item import ReviewItem
from clinreview.services.gateway import TableGateway
from clinreview.services.records import AssignmentRecord, KPIRecord, ProfileRecord, ReviewRecord

logger = logging.getLogger(__name__)


class Collection(str, enum.Enum):
    KPIS = "kpis"
    PROFILES = "profiles"
    ASSIGNMENTS = "assignments"
    REVIEW_ITEMS = "review_items"


Listener = Callable[[Collection], None]


def _load_kpis(db: Session) -> Tuple[KPIRecord, ...]:
    rows = TableGateway(db, KPI).select(order_by="created_at")
    return tuple(KPIRecord.from_model(row) for row in rows)


def _load_profiles(db: Session) -> Tuple[ProfileRecord, ...]:
    rows = TableGateway(db, StaffProfile).select(order_by="name", embed=("position",))
    return tuple(ProfileRecord.from_model(row) for row in rows)


def _load_assignments(db: Session) -> Tuple[AssignmentRecord, ...]:
    rows = TableGateway(db, Assignment).select(order_by="created_at", descending=True)
    return tuple(AssignmentRecord.from_model(row) for row in rows)


def _load_review_items(db: Session) -> Tuple[ReviewRecord, ...]:
    rows = TableGateway(db, ReviewItem).select(order_by="date", descending=True)
    return tuple(ReviewRecord.from_model(row) for row in rows)


_LOADERS = {
    Collection.KPIS: _load_kpis,
    Collection.PROFILES: _load_profiles,
    Collection.ASSIGNMENTS: _load_assignments,
    Collection.REVIEW_ITEMS: _load_review_items,
}


class EntityStore:
    def __init__(self):
        self._snapshots: Dict[Collection, tuple] = {c: () for c in Collection}
        self._versions: Dict[Collection, int] = {c: 0 for c in Collection}
        self._loaded: Dict[Collection, bool] = {c: False for c in Collection}
        self._locks: Dict[Collection, threading.Lock] = {c: threading.Lock() for c in Collection}
        self._listeners: List[Listener] = []

    # --- change notification ---

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _notify(self, collection: Collection):
        for listener in list(self._listeners):
            try:
                listener(collection)
            except Exception:
                logger.exception(f"Entity store listener failed for {collection.value}")

    # --- writes ---

    def replace(self, collection: Collection, records) -> int:
        """Swap in a new snapshot. Returns the new version."""
        with self._locks[collection]:
            self._snapshots[collection] = tuple(records)
            self._versions[collection] += 1
            self._loaded[collection] = True
            version = self._versions[collection]
        self._notify(collection)
        return version

    def refresh(self, db: Session, collection: Collection) -> bool:
        try:
            records = _LOADERS[collection](db)
        except DataAccessError as e:
            logger.warning(
                f"Refreshing {collection.value} failed, keeping last snapshot: {e.message}",
                extra={"collection": collection.value, "version": self._versions[collection]},
            )
            return False
        self.replace(collection, records)
        return True

    def refresh_all(self, db: Session) -> bool:
        results = [self.refresh(db, collection) for collection in Collection]
        return all(results)

    def ensure_loaded(self, db: Session):
        for collection in Collection:
            if not self._loaded[collection]:
                self.refresh(db, collection)

    # --- reads ---

    def version(self, collection: Collection) -> int:
        return self._versions[collection]

    @property
    def versions(self) -> Dict[Collection, int]:
        return dict(self._versions)

    @property
    def kpis(self) -> Tuple[KPIRecord, ...]:
        return self._snapshots[Collection.KPIS]

    @property
    def active_kpis(self) -> List[KPIRecord]:
        return [k for k in self.kpis if not k.is_removed]

    @property
    def removed_kpis(self) -> List[KPIRecord]:
        return [k for k in self.kpis if k.is_removed]

    @property
    def profiles(self) -> Tuple[ProfileRecord, ...]:
        return self._snapshots[Collection.PROFILES]

    @property
    def approved_profiles(self) -> List[ProfileRecord]:
        return [p for p in self.profiles if p.accept]

    @property
    def assignments(self) -> Tuple[AssignmentRecord, ...]:
        return self._snapshots[Collection.ASSIGNMENTS]

    @property
    def review_items(self) -> Tuple[ReviewRecord, ...]:
        return self._snapshots[Collection.REVIEW_ITEMS]

    def kpi_lookup(self) -> Dict[int, KPIRecord]:
        """All KPIs by id, removed ones included."""
        return {k.id: k for k in self.kpis}

    def profile(self, profile_id: int) -> Optional[ProfileRecord]:
        return next((p for p in self.profiles if p.id == profile_id), None)
