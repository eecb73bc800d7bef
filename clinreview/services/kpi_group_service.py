"""
Named KPI groups.

A group is stored as one row per (title, director, kpi). Groups only narrow
the KPIs shown in a review session; they never affect scores.
"""
from typing import Dict, List, Any

from clinreview.core.exceptions import ConflictError, NotFoundError, ValidationFailed
from clinreview.models.kpi import KPI
from clinreview.models.kpi_group import KPIGroup
from clinreview.services.base import BaseService
from clinreview.services.gateway import TableGateway


class KPIGroupService(BaseService):

    def __init__(self, db, store=None):
        super().__init__(db, store)
        self.groups = TableGateway(db, KPIGroup)
        self.kpis = TableGateway(db, KPI)

    def _validate(self, title: str, kpi_ids: List[int]) -> List[int]:
        if not title or not title.strip():
            raise ValidationFailed("Group title is required", field="title")
        unique_ids = list(dict.fromkeys(kpi_ids))
        if not unique_ids:
            raise ValidationFailed("Select at least one KPI for the group", field="kpi_ids")
        found = {kpi.id for kpi in self.kpis.select(in_=("id", unique_ids))}
        missing = [kpi_id for kpi_id in unique_ids if kpi_id not in found]
        if missing:
            raise ValidationFailed(f"Unknown KPI ids: {missing}", field="kpi_ids")
        return unique_ids

    def _rows(self, title: str, director_id: int, kpi_ids: List[int]) -> List[Dict[str, Any]]:
        return [{"title": title, "director_id": director_id, "kpi_id": kpi_id} for kpi_id in kpi_ids]

    def create_group(self, title: str, director_id: int, kpi_ids: List[int]) -> List[KPIGroup]:
        title = (title or "").strip()
        kpi_ids = self._validate(title, kpi_ids)
        if self.title_exists(title, director_id):
            raise ConflictError(f"A group named '{title}' already exists")
        with self.transaction("create KPI group"):
            rows = self.groups.insert(self._rows(title, director_id, kpi_ids))
        self.log_info(f"Created KPI group '{title}' for director {director_id} with {len(rows)} KPI(s)")
        return rows

    def update_group(self, title: str, director_id: int, new_kpi_ids: List[int]) -> List[KPIGroup]:
        """Replace the group's membership with exactly ``new_kpi_ids``."""
        if not self.title_exists(title, director_id):
            raise NotFoundError(f"KPI group '{title}' not found")
        new_kpi_ids = list(dict.fromkeys(new_kpi_ids))
        if new_kpi_ids:
            new_kpi_ids = self._validate(title, new_kpi_ids)
        with self.transaction("update KPI group"):
            self.groups.delete({"title": title, "director_id": director_id})
            rows = self.groups.insert(self._rows(title, director_id, new_kpi_ids)) if new_kpi_ids else []
        self.log_info(f"Updated KPI group '{title}' for director {director_id}: {len(rows)} KPI(s)")
        return rows

    def delete_group(self, title: str, director_id: int):
        with self.transaction("delete KPI group"):
            count = self.groups.delete({"title": title, "director_id": director_id})
        if count == 0:
            raise NotFoundError(f"KPI group '{title}' not found")

    def list_group_titles(self, director_id: int) -> List[str]:
        rows = self.groups.select({"director_id": director_id})
        return sorted({row.title for row in rows if row.title and row.title.strip()})

    def list_kpis_in_group(self, director_id: int, title: str) -> List[int]:
        rows = self.groups.select({"director_id": director_id, "title": title}, order_by="id")
        return [row.kpi_id for row in rows]

    def title_exists(self, title: str, director_id: int) -> bool:
        return bool(self.groups.select({"title": title, "director_id": director_id}, limit=1))

    def group_stats(self, director_id: int) -> Dict[str, Any]:
        rows = self.groups.select({"director_id": director_id})
        titles = sorted({row.title for row in rows})
        total_groups = len(titles)
        return {
            "total_groups": total_groups,
            "total_kpis": len(rows),
            "average_kpis_per_group": round(len(rows) / total_groups, 2) if total_groups else 0,
            "group_titles": titles,
        }

    def groups_with_details(self, director_id: int) -> List[KPIGroup]:
        return self.groups.select(
            {"director_id": director_id}, order_by="created_at", descending=True, embed=("kpi", "director")
        )
