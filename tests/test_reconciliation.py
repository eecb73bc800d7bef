"""Review reconciliation: at most one review item per staff member, KPI and period."""
import pytest
from datetime import date, datetime, timedelta
from unittest.mock import patch

from clinreview.core.exceptions import DataAccessError, NotFoundError, ValidationFailed
from clinreview.core.periods import current_period, PeriodKind, week_period
from clinreview.models.review_item import ReviewItem
from clinreview.schemas.review import ReviewSubmission, SessionEntry
from clinreview.services.entity_store import Collection
from clinreview.services.file_storage import FileStorage
from clinreview.services.gateway import TableGateway
from clinreview.services.review_service import ReviewService, missing_not_met_fields

PERIOD = week_period(2024, 10)


def _items(db_session, staff, kpi):
    return db_session.query(ReviewItem).filter(
        ReviewItem.staff_id == staff.id, ReviewItem.kpi_id == kpi.id
    ).all()


@pytest.fixture
def staff(make_profile):
    return make_profile("Casey")


@pytest.fixture
def kpi(make_kpi):
    return make_kpi("Documentation Compliance", weight=8)


@pytest.fixture
def service(db_session, staff, kpi, store):
    return ReviewService(db_session, store)


def test_missing_not_met_fields():
    assert missing_not_met_fields(ReviewSubmission(met=True)) == []
    assert missing_not_met_fields(ReviewSubmission(met=False, notes=" ")) == ["notes", "plan"]
    assert missing_not_met_fields(ReviewSubmission(met=False, notes="n", plan="p")) == []


def test_replace_is_idempotent_per_period(db_session, service, staff, kpi):
    service.replace_review_for_period(staff.id, kpi.id, PERIOD, ReviewSubmission(met=True))
    second = service.replace_review_for_period(
        staff.id, kpi.id, PERIOD, ReviewSubmission(met=False, notes="Late charts", plan="Daily audit")
    )

    rows = _items(db_session, staff, kpi)
    assert len(rows) == 1
    assert rows[0].id == second.id
    assert rows[0].met_check is False
    assert rows[0].score == 0
    assert rows[0].notes == "Late charts"


def test_met_review_scores_weight_and_clears_notes(db_session, service, staff, kpi):
    item = service.replace_review_for_period(
        staff.id, kpi.id, PERIOD, ReviewSubmission(met=True, notes="ignored", plan="ignored")
    )
    assert item.score == 8
    assert item.notes is None
    assert item.plan is None


def test_default_date_is_period_start_for_past_periods(service, staff, kpi):
    item = service.replace_review_for_period(staff.id, kpi.id, PERIOD, ReviewSubmission(met=True))
    assert item.date == PERIOD.start


def test_reviews_in_other_periods_are_untouched(db_session, service, staff, kpi, make_review):
    make_review(staff, kpi, True, PERIOD.start - timedelta(days=1))
    service.replace_review_for_period(staff.id, kpi.id, PERIOD, ReviewSubmission(met=True))
    assert len(_items(db_session, staff, kpi)) == 2


def test_attachment_carries_over(db_session, service, staff, kpi):
    service.replace_review_for_period(
        staff.id, kpi.id, PERIOD, ReviewSubmission(met=True, file_url="/files/review-files/1/1/a.pdf")
    )
    item = service.replace_review_for_period(staff.id, kpi.id, PERIOD, ReviewSubmission(met=True))
    assert item.file_url == "/files/review-files/1/1/a.pdf"


def test_not_met_requires_notes_and_plan(db_session, service, staff, kpi):
    with pytest.raises(ValidationFailed) as exc:
        service.replace_review_for_period(staff.id, kpi.id, PERIOD, ReviewSubmission(met=False, notes="x"))
    assert exc.value.field == "plan"
    assert _items(db_session, staff, kpi) == []


def test_review_date_must_fall_in_period(service, staff, kpi):
    submission = ReviewSubmission(met=True, review_date=PERIOD.end + timedelta(days=1))
    with pytest.raises(ValidationFailed) as exc:
        service.replace_review_for_period(staff.id, kpi.id, PERIOD, submission)
    assert exc.value.field == "review_date"


def test_future_period_is_rejected(service, staff, kpi):
    next_week = current_period(PeriodKind.WEEK, date.today() + timedelta(days=14))
    with pytest.raises(ValidationFailed):
        service.replace_review_for_period(staff.id, kpi.id, next_week, ReviewSubmission(met=True))


def test_inverted_bounds_are_rejected(service, staff, kpi):
    with pytest.raises(ValidationFailed):
        service.replace_review(staff.id, kpi.id, PERIOD.end, PERIOD.start, ReviewSubmission(met=True))


def test_removed_kpi_cannot_be_reviewed(service, staff, make_kpi):
    removed = make_kpi("Old KPI", is_removed=True)
    with pytest.raises(ValidationFailed):
        service.replace_review_for_period(staff.id, removed.id, PERIOD, ReviewSubmission(met=True))


def test_unapproved_staff_cannot_be_reviewed(service, kpi, make_profile):
    pending = make_profile("Pending", accept=False)
    with pytest.raises(NotFoundError):
        service.replace_review_for_period(pending.id, kpi.id, PERIOD, ReviewSubmission(met=True))


def test_replace_refreshes_store(service, store, staff, kpi):
    version = store.version(Collection.REVIEW_ITEMS)
    service.replace_review_for_period(staff.id, kpi.id, PERIOD, ReviewSubmission(met=True))
    assert store.version(Collection.REVIEW_ITEMS) == version + 1
    assert [r.kpi_id for r in store.review_items] == [kpi.id]


def test_failed_lookup_aborts_before_any_write(db_session, service, store, staff, kpi):
    prior = service.replace_review_for_period(staff.id, kpi.id, PERIOD, ReviewSubmission(met=True))
    prior_id = prior.id
    version = store.version(Collection.REVIEW_ITEMS)
    snapshot = store.review_items

    with patch.object(TableGateway, "select", side_effect=DataAccessError("connection lost")), \
            patch.object(TableGateway, "delete") as delete, \
            patch.object(TableGateway, "insert") as insert:
        with pytest.raises(DataAccessError):
            service.replace_review_for_period(
                staff.id, kpi.id, PERIOD, ReviewSubmission(met=False, notes="n", plan="p")
            )
    delete.assert_not_called()
    insert.assert_not_called()

    rows = _items(db_session, staff, kpi)
    assert [(row.id, row.met_check) for row in rows] == [(prior_id, True)]
    assert store.version(Collection.REVIEW_ITEMS) == version
    assert store.review_items == snapshot


def test_failed_insert_keeps_the_previous_item(db_session, service, store, staff, kpi):
    prior = service.replace_review_for_period(staff.id, kpi.id, PERIOD, ReviewSubmission(met=True))
    prior_id = prior.id
    version = store.version(Collection.REVIEW_ITEMS)
    snapshot = store.review_items

    with patch.object(TableGateway, "insert", side_effect=DataAccessError("insert rejected")):
        with pytest.raises(DataAccessError):
            service.replace_review_for_period(
                staff.id, kpi.id, PERIOD, ReviewSubmission(met=False, notes="n", plan="p")
            )

    rows = _items(db_session, staff, kpi)
    assert [(row.id, row.met_check, row.score) for row in rows] == [(prior_id, True, 8)]
    assert store.version(Collection.REVIEW_ITEMS) == version
    assert store.review_items == snapshot


def test_update_in_place_keeps_id(service, staff, kpi):
    item = service.replace_review_for_period(staff.id, kpi.id, PERIOD, ReviewSubmission(met=True))
    updated = service.update_review(item.id, ReviewSubmission(met=False, notes="n", plan="p"))
    assert updated.id == item.id
    assert updated.score == 0
    assert updated.date == PERIOD.start


def test_update_missing_review(service):
    with pytest.raises(NotFoundError):
        service.update_review(9999, ReviewSubmission(met=True))


def test_review_exists(service, staff, kpi):
    assert not service.review_exists(staff.id, kpi.id, PERIOD)
    service.replace_review_for_period(staff.id, kpi.id, PERIOD, ReviewSubmission(met=True))
    assert service.review_exists(staff.id, kpi.id, PERIOD)
    assert not service.review_exists(staff.id, kpi.id, week_period(2024, 11))


def test_reads_hide_unapproved_directors(service, staff, kpi, make_profile, make_review):
    from clinreview.models.position import Role
    pending_director = make_profile("Pending", role=Role.DIRECTOR, accept=False)
    make_review(staff, kpi, True, PERIOD.start, director=pending_director)
    service.replace_review_for_period(
        staff.id, kpi.id, week_period(2024, 12), ReviewSubmission(met=True)
    )
    assert len(service.reviews_for_staff(staff.id)) == 1
    assert service.reviews_for_period(staff.id, PERIOD) == []


# --- sessions ---

def test_session_requires_every_kpi_in_scope(db_session, service, staff, kpi, make_kpi):
    other = make_kpi("Team Collaboration", weight=7)
    with pytest.raises(ValidationFailed) as exc:
        service.submit_session(staff.id, PERIOD, [SessionEntry(kpi_id=kpi.id, met=True)])
    assert "Team Collaboration" in exc.value.message
    assert _items(db_session, staff, kpi) == []
    assert _items(db_session, staff, other) == []


def test_session_names_incomplete_not_met_entries(service, staff, kpi):
    with pytest.raises(ValidationFailed) as exc:
        service.submit_session(staff.id, PERIOD, [SessionEntry(kpi_id=kpi.id, met=False)])
    assert "Documentation Compliance" in exc.value.message


def test_session_writes_one_item_per_kpi(db_session, service, staff, kpi, make_kpi, make_profile):
    from clinreview.models.position import Role
    director = make_profile("Dana", role=Role.DIRECTOR)
    other = make_kpi("Team Collaboration", weight=7)
    entries = [
        SessionEntry(kpi_id=kpi.id, met=True),
        SessionEntry(kpi_id=other.id, met=False, notes="n", plan="p"),
    ]
    saved = service.submit_session(staff.id, PERIOD, entries, director_id=director.id)
    assert len(saved) == 2
    assert all(item.director_id == director.id for item in saved)

    service.submit_session(staff.id, PERIOD, entries, director_id=director.id)
    assert len(_items(db_session, staff, kpi)) == 1
    assert len(_items(db_session, staff, other)) == 1


def test_session_scoped_to_group(db_session, service, staff, kpi, make_kpi):
    make_kpi("Not In Group")
    saved = service.submit_session(staff.id, PERIOD, [SessionEntry(kpi_id=kpi.id, met=True)], kpi_ids=[kpi.id])
    assert [item.kpi_id for item in saved] == [kpi.id]


def test_session_updates_existing_item_in_place(service, staff, kpi):
    item = service.replace_review_for_period(staff.id, kpi.id, PERIOD, ReviewSubmission(met=True))
    saved = service.submit_session(
        staff.id, PERIOD,
        [SessionEntry(kpi_id=kpi.id, met=False, notes="n", plan="p", existing_review_id=item.id)],
    )
    assert saved[0].id == item.id
    assert saved[0].met_check is False


def test_session_rejects_foreign_existing_item(service, staff, kpi, make_profile, make_review):
    other_staff = make_profile("Other")
    foreign = make_review(other_staff, kpi, True, PERIOD.start)
    with pytest.raises(ValidationFailed) as exc:
        service.submit_session(
            staff.id, PERIOD, [SessionEntry(kpi_id=kpi.id, met=True, existing_review_id=foreign.id)]
        )
    assert exc.value.field == "existing_review_id"


def test_session_rejects_removed_kpi(db_session, service, staff, kpi, make_kpi):
    removed = make_kpi("Old KPI", is_removed=True)
    with pytest.raises(ValidationFailed) as exc:
        service.submit_session(
            staff.id, PERIOD,
            [SessionEntry(kpi_id=kpi.id, met=True), SessionEntry(kpi_id=removed.id, met=True)],
        )
    assert exc.value.field == "kpi_id"
    assert "Old KPI" in exc.value.message
    assert _items(db_session, staff, kpi) == []


# --- monthly reviews ---

def test_monthly_review_is_dated_noon_on_the_first(db_session, service, staff, kpi):
    item = service.create_review_for_month(
        staff.id, kpi.id, "February", 2024, ReviewSubmission(met=True), today=date(2024, 3, 5)
    )
    assert item.date == datetime(2024, 2, 1, 12, 0, 0)

    service.create_review_for_month(
        staff.id, kpi.id, "2", 2024, ReviewSubmission(met=False, notes="n", plan="p"), today=date(2024, 3, 5)
    )
    assert len(_items(db_session, staff, kpi)) == 1


def test_monthly_review_outside_window(service, staff, kpi):
    with pytest.raises(ValidationFailed) as exc:
        service.create_review_for_month(
            staff.id, kpi.id, "January", 2024, ReviewSubmission(met=True), today=date(2024, 3, 5)
        )
    assert exc.value.field == "month"


def test_monthly_review_unknown_month(service, staff, kpi):
    with pytest.raises(ValidationFailed):
        service.create_review_for_month(staff.id, kpi.id, "Smarch", 2024, ReviewSubmission(met=True))


# --- deletion ---

def test_delete_review_removes_attachment(db_session, staff, kpi, store, tmp_path):
    storage = FileStorage(root=str(tmp_path), public_base_url="/files")
    url = storage.upload(b"%PDF-1.4", "evidence.pdf", "application/pdf", f"{staff.id}/{kpi.id}/evidence.pdf")
    service = ReviewService(db_session, store, storage)
    item = service.replace_review_for_period(staff.id, kpi.id, PERIOD, ReviewSubmission(met=True, file_url=url))

    service.delete_review(item.id)

    assert _items(db_session, staff, kpi) == []
    assert not storage.exists(url)


def test_delete_missing_review(service):
    with pytest.raises(NotFoundError):
        service.delete_review(9999)
