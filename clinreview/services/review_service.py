"""
Review Service Layer

Keeps at most one review item per (staff member, KPI, period).

Submitting a review for a period deletes whatever items already exist for
that staff member and KPI inside the period and inserts the new one. Both
steps run in one transaction, so a failed insert leaves the previous item in
place and concurrent submissions resolve as last-writer-wins. When the caller
already holds the id of the item being edited, the item is updated in place
and keeps its id.

Validation always runs before the first write.
"""
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from clinreview.core.exceptions import NotFoundError, ValidationFailed
from clinreview.core.periods import (
    Period,
    as_naive_utc,
    is_valid_monthly_review_date,
    month_number,
    month_period,
    utcnow,
)
from clinreview.models.kpi import KPI
from clinreview.models.profile import StaffProfile
from clinreview.models.review_item import ReviewItem
from clinreview.schemas.review import ReviewSubmission, SessionEntry
from clinreview.services.base import BaseService
from clinreview.services.entity_store import Collection
from clinreview.services.file_storage import FileStorage
from clinreview.services.gateway import TableGateway


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def missing_not_met_fields(submission: ReviewSubmission) -> List[str]:
    """Fields a 'not met' review still needs."""
    if submission.met:
        return []
    return [name for name in ("notes", "plan") if _blank(getattr(submission, name))]


class ReviewService(BaseService):

    def __init__(self, db: Session, store=None, storage: Optional[FileStorage] = None):
        super().__init__(db, store)
        self.storage = storage
        self.reviews = TableGateway(db, ReviewItem)
        self.kpis = TableGateway(db, KPI)
        self.profiles = TableGateway(db, StaffProfile)

    # --- lookups ---

    def _approved_staff(self, staff_id: int) -> StaffProfile:
        staff = self.profiles.get(staff_id)
        if staff is None or not staff.accept:
            raise NotFoundError(f"Approved staff member {staff_id} not found")
        return staff

    def _reviewable_kpi(self, kpi_id: int) -> KPI:
        kpi = self.kpis.get(kpi_id)
        if kpi is None:
            raise NotFoundError(f"KPI {kpi_id} not found")
        if kpi.is_removed:
            raise ValidationFailed(f"KPI '{kpi.title}' has been removed", field="kpi_id")
        return kpi

    def _existing_in_range(self, staff_id: int, kpi_id: int, start: datetime, end: datetime) -> List[ReviewItem]:
        rows = self.reviews.select(
            {"staff_id": staff_id, "kpi_id": kpi_id},
            date_range=("date", start, end),
            order_by="date",
            descending=True,
            embed=("staff",),
        )
        return [row for row in rows if row.staff is not None and row.staff.accept]

    # --- validation ---

    def _validate(self, submission: ReviewSubmission, now: datetime,
                  start: Optional[datetime] = None, end: Optional[datetime] = None):
        missing = missing_not_met_fields(submission)
        if missing:
            raise ValidationFailed(
                "Performance notes and an improvement plan are required when a KPI is not met",
                field=missing[0],
            )
        if submission.review_date is not None:
            if submission.review_date > now:
                raise ValidationFailed("Review date cannot be in the future", field="review_date")
            if start is not None and not (start <= submission.review_date <= end):
                raise ValidationFailed("Review date falls outside the review period", field="review_date")

    @staticmethod
    def _review_date(submission: ReviewSubmission, start: datetime, end: datetime, now: datetime) -> datetime:
        if submission.review_date is not None:
            return submission.review_date
        return now if start <= now <= end else start

    def _row_values(self, submission: ReviewSubmission, kpi: KPI, file_url: Optional[str]) -> Dict:
        return {
            "met_check": submission.met,
            "notes": None if submission.met else submission.notes.strip(),
            "plan": None if submission.met else submission.plan.strip(),
            "score": kpi.weight if submission.met else 0,
            "director_id": submission.director_id,
            "file_url": file_url,
        }

    # --- reconciliation ---

    def _reconcile(self, staff_id: int, kpi: KPI, start: datetime, end: datetime,
                   submission: ReviewSubmission, now: datetime) -> ReviewItem:
        """Delete-then-insert inside the caller's transaction."""
        existing = self._existing_in_range(staff_id, kpi.id, start, end)
        prior_file = next((row.file_url for row in existing if row.file_url), None)
        if existing:
            self.reviews.delete(in_=("id", [row.id for row in existing]))
        values = self._row_values(submission, kpi, submission.file_url or prior_file)
        values.update({
            "staff_id": staff_id,
            "kpi_id": kpi.id,
            "date": self._review_date(submission, start, end, now),
        })
        item = self.reviews.insert([values])[0]
        self.log_info(
            f"Reconciled review for staff {staff_id} / KPI {kpi.id}: replaced {len(existing)} item(s)"
        )
        return item

    def replace_review(self, staff_id: int, kpi_id: int, period_start: datetime, period_end: datetime,
                       submission: ReviewSubmission) -> ReviewItem:
        period_start, period_end = as_naive_utc(period_start), as_naive_utc(period_end)
        if period_end < period_start:
            raise ValidationFailed("Period end precedes period start", field="period_end")
        now = utcnow()
        self._approved_staff(staff_id)
        kpi = self._reviewable_kpi(kpi_id)
        self._validate(submission, now, period_start, period_end)
        self._review_date_not_future(self._review_date(submission, period_start, period_end, now), now)

        with self.transaction("replace review"):
            item = self._reconcile(staff_id, kpi, period_start, period_end, submission, now)
        self._refresh()
        return item

    def replace_review_for_period(self, staff_id: int, kpi_id: int, period: Period,
                                  submission: ReviewSubmission) -> ReviewItem:
        return self.replace_review(staff_id, kpi_id, period.start, period.end, submission)

    @staticmethod
    def _review_date_not_future(review_date: datetime, now: datetime):
        if review_date > now:
            raise ValidationFailed("Cannot review a period that has not started yet", field="review_date")

    def update_review(self, review_id: int, submission: ReviewSubmission) -> ReviewItem:
        item = self._existing_item(review_id)
        self._validate(submission, utcnow())
        with self.transaction("update review"):
            item = self._update_in_place(item, submission)
        self._refresh()
        return item

    def _existing_item(self, review_id: int) -> ReviewItem:
        item = self.reviews.get(review_id)
        if item is None:
            raise NotFoundError(f"Review item {review_id} not found")
        self._approved_staff(item.staff_id)
        return item

    def _update_in_place(self, item: ReviewItem, submission: ReviewSubmission) -> ReviewItem:
        values = self._row_values(submission, item.kpi, submission.file_url or item.file_url)
        if submission.review_date is not None:
            values["date"] = submission.review_date
        return self.reviews.update(values, {"id": item.id})[0]

    def submit_session(self, staff_id: int, period: Period, entries: Iterable[SessionEntry],
                       director_id: Optional[int] = None, kpi_ids: Optional[List[int]] = None) -> List[ReviewItem]:
        """
        Submit a whole review session for one staff member and period.

        Every KPI in scope (``kpi_ids`` or all active KPIs) needs an entry, and
        every 'not met' entry needs notes and a plan; nothing is written unless
        the whole session validates.
        """
        now = utcnow()
        self._approved_staff(staff_id)
        self._review_date_not_future(period.start, now)
        entries = list(entries)
        by_kpi = {entry.kpi_id: entry for entry in entries}

        if kpi_ids is None:
            scope = self.kpis.select({"is_removed": False}, order_by="title")
        else:
            scope = self.kpis.select(in_=("id", kpi_ids), order_by="title")
        unreviewed = [kpi.title for kpi in scope if kpi.id not in by_kpi]
        if unreviewed:
            raise ValidationFailed(
                "Please complete reviews for all KPIs in the selected group before submitting. "
                f"Missing reviews for: {', '.join(unreviewed)}",
                field="entries",
            )

        kpis = {kpi.id: kpi for kpi in self.kpis.select(in_=("id", by_kpi.keys()))}
        unknown = [kpi_id for kpi_id in by_kpi if kpi_id not in kpis]
        if unknown:
            raise NotFoundError(f"KPI {unknown[0]} not found")
        removed = [
            kpis[e.kpi_id].title for e in entries
            if e.existing_review_id is None and kpis[e.kpi_id].is_removed
        ]
        if removed:
            raise ValidationFailed(f"KPI '{removed[0]}' has been removed", field="kpi_id")
        incomplete = [kpis[e.kpi_id].title for e in entries if missing_not_met_fields(e)]
        if incomplete:
            raise ValidationFailed(
                'For KPIs marked as "Not Met", please fill in Performance Notes and Improvement Plan. '
                f"Missing information for: {', '.join(incomplete)}",
                field="entries",
            )
        for entry in entries:
            self._validate(entry, now, period.start, period.end)

        existing_items = {}
        for entry in entries:
            if entry.existing_review_id is not None:
                item = self._existing_item(entry.existing_review_id)
                if item.staff_id != staff_id or item.kpi_id != entry.kpi_id:
                    raise ValidationFailed(
                        f"Review {item.id} does not belong to this staff member and KPI",
                        field="existing_review_id",
                    )
                existing_items[entry.kpi_id] = item

        saved = []
        with self.transaction("submit review session"):
            for entry in entries:
                if director_id is not None and entry.director_id is None:
                    entry = entry.model_copy(update={"director_id": director_id})
                if entry.kpi_id in existing_items:
                    saved.append(self._update_in_place(existing_items[entry.kpi_id], entry))
                else:
                    saved.append(self._reconcile(staff_id, kpis[entry.kpi_id], period.start, period.end, entry, now))
        self.log_info(f"Submitted {len(saved)} review item(s) for staff {staff_id} in {period.key}")
        self._refresh()
        return saved

    def create_review_for_month(self, staff_id: int, kpi_id: int, month: str, year: int,
                                submission: ReviewSubmission, today=None) -> ReviewItem:
        """Monthly review dated at noon on the 1st; only the current or previous month is accepted."""
        try:
            number = int(month) if str(month).isdigit() else month_number(month)
            period = month_period(year, number)
        except ValueError as e:
            raise ValidationFailed(str(e), field="month")
        review_date = datetime(year, number, 1, 12, 0, 0)
        if not is_valid_monthly_review_date(review_date, today):
            raise ValidationFailed(
                "Reviews can only be created for the current month or previous month", field="month"
            )
        submission = submission.model_copy(update={"review_date": min(review_date, utcnow())})
        return self.replace_review(staff_id, kpi_id, period.start, period.end, submission)

    # --- reads ---

    def _visible(self, rows: List[ReviewItem]) -> List[ReviewItem]:
        """Only reviews of approved staff, written by approved directors (or none)."""
        return [
            row for row in rows
            if row.staff is not None and row.staff.accept
            and (row.director is None or row.director.accept)
        ]

    def reviews_for_period(self, staff_id: int, period: Period) -> List[ReviewItem]:
        rows = self.reviews.select(
            {"staff_id": staff_id},
            date_range=("date", period.start, period.end),
            order_by="date",
            descending=True,
            embed=("staff", "director", "kpi"),
        )
        return self._visible(rows)

    def reviews_for_staff(self, staff_id: int, kpi_id: Optional[int] = None) -> List[ReviewItem]:
        filters = {"staff_id": staff_id}
        if kpi_id is not None:
            filters["kpi_id"] = kpi_id
        rows = self.reviews.select(filters, order_by="date", descending=True, embed=("staff", "director", "kpi"))
        return self._visible(rows)

    def review_exists(self, staff_id: int, kpi_id: int, period: Period) -> bool:
        return bool(self._existing_in_range(staff_id, kpi_id, period.start, period.end))

    def delete_review(self, review_id: int):
        item = self.reviews.get(review_id)
        if item is None:
            raise NotFoundError(f"Review item {review_id} not found")
        file_url = item.file_url
        with self.transaction("delete review"):
            self.reviews.delete({"id": review_id})
        if file_url and self.storage is not None:
            if self.storage.exists(file_url):
                self.storage.delete(file_url)
            else:
                self.log_warning(f"Attachment {file_url} of review {review_id} was already gone")
        self._refresh()

    def _refresh(self):
        if self.store is not None:
            self.store.refresh(self.db, Collection.REVIEW_ITEMS)
