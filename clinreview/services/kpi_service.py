from typing import Any, Dict, List, Optional

from clinreview.core.exceptions import ConflictError, NotFoundError, ValidationFailed
from clinreview.models.kpi import KPI, MAX_WEIGHT, MIN_WEIGHT
from clinreview.models.kpi_group import KPIGroup
from clinreview.models.review_item import ReviewItem
from clinreview.services.base import BaseService
from clinreview.services.entity_store import Collection
from clinreview.services.gateway import TableGateway


def validate_weight(weight: Optional[int]):
    if weight is not None and not MIN_WEIGHT <= weight <= MAX_WEIGHT:
        raise ValidationFailed(f"Weight must be between {MIN_WEIGHT} and {MAX_WEIGHT}", field="weight")


class KPIService(BaseService):
    """KPI catalogue: create, edit, soft-delete, restore, purge."""

    def __init__(self, db, store=None):
        super().__init__(db, store)
        self.kpis = TableGateway(db, KPI)

    def _get(self, kpi_id: int) -> KPI:
        kpi = self.kpis.get(kpi_id)
        if kpi is None:
            raise NotFoundError(f"KPI {kpi_id} not found")
        return kpi

    def _refresh(self):
        if self.store is not None:
            self.store.refresh(self.db, Collection.KPIS)

    def list_active(self, floor: Optional[str] = None) -> List[KPI]:
        filters: Dict[str, Any] = {"is_removed": False}
        if floor:
            filters["floor"] = floor
        return self.kpis.select(filters, order_by="created_at")

    def list_removed(self) -> List[KPI]:
        return self.kpis.select({"is_removed": True}, order_by="created_at")

    def get(self, kpi_id: int) -> KPI:
        return self._get(kpi_id)

    def create(self, title: str, description: str, weight: int, floor: Optional[str] = None) -> KPI:
        if not title or not title.strip():
            raise ValidationFailed("Title is required", field="title")
        validate_weight(weight)
        with self.transaction("create KPI"):
            kpi = self.kpis.insert([{
                "title": title.strip(),
                "description": description or "",
                "weight": weight,
                "floor": floor,
                "is_removed": False,
            }])[0]
        self._refresh()
        return kpi

    def update(self, kpi_id: int, changes: Dict[str, Any]) -> KPI:
        self._get(kpi_id)
        validate_weight(changes.get("weight"))
        if "title" in changes and (not changes["title"] or not changes["title"].strip()):
            raise ValidationFailed("Title is required", field="title")
        with self.transaction("update KPI"):
            kpi = self.kpis.update(changes, {"id": kpi_id})[0]
        self._refresh()
        return kpi

    def soft_delete(self, kpi_id: int) -> KPI:
        """Hide from review sessions; historical reviews keep its weight."""
        return self.update(kpi_id, {"is_removed": True})

    def restore(self, kpi_id: int) -> KPI:
        return self.update(kpi_id, {"is_removed": False})

    def permanently_delete(self, kpi_id: int):
        """Purge a removed KPI. KPIs with recorded reviews are kept for history."""
        kpi = self._get(kpi_id)
        if not kpi.is_removed:
            raise ValidationFailed("Only removed KPIs can be permanently deleted", field="kpi_id")
        if TableGateway(self.db, ReviewItem).select({"kpi_id": kpi_id}, limit=1):
            raise ConflictError(f"KPI '{kpi.title}' has recorded reviews and cannot be permanently deleted")
        with self.transaction("permanently delete KPI"):
            TableGateway(self.db, KPIGroup).delete({"kpi_id": kpi_id})
            self.kpis.delete({"id": kpi_id})
        self.log_info(f"Permanently deleted KPI {kpi_id}")
        self._refresh()

    def floors(self) -> List[str]:
        return sorted({kpi.floor for kpi in self.list_active() if kpi.floor and kpi.floor.strip()})

    def stats(self) -> Dict[str, Any]:
        rows = self.kpis.select()
        active = [kpi for kpi in rows if not kpi.is_removed]
        by_floor: Dict[str, int] = {}
        for kpi in active:
            key = kpi.floor or "Unassigned"
            by_floor[key] = by_floor.get(key, 0) + 1
        return {
            "total": len(rows),
            "active": len(active),
            "removed": len(rows) - len(active),
            "average_weight": round(sum(k.weight for k in active) / len(active), 2) if active else 0,
            "by_floor": by_floor,
        }
