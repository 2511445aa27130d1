from datetime import date, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from app.models.review_schedule import ReviewSchedule
from app.repositories.review_repository import ReviewRepository
from app.services.lesson_service import LessonService
from app.services.review_service import ReviewService
from app.utils.exceptions import NotFoundError, ReviewStateError, ValidationError
from app.utils.helpers import today_local


@pytest.fixture
def lesson_service(db_session, notifier):
    return LessonService(db_session, notifier=notifier)


@pytest.fixture
def review_service(db_session, notifier):
    return ReviewService(db_session, notifier=notifier)


def first_review(lesson_service, lesson_date="2024-01-01", **lesson_fields):
    lesson_fields.setdefault("title", "word")
    lesson = lesson_service.create_lesson(lesson_date=lesson_date, **lesson_fields)
    return lesson_service.get_lesson_reviews(lesson.id)[0]


def test_mark_complete_sets_timestamp(lesson_service, review_service):
    review = first_review(lesson_service)

    completed = review_service.mark_complete(review.id)

    assert completed.completed is True
    assert completed.completed_at is not None


def test_mark_complete_twice_keeps_first_timestamp(lesson_service, review_service):
    review = first_review(lesson_service)

    first = review_service.mark_complete(review.id).completed_at
    second = review_service.mark_complete(review.id).completed_at

    assert first == second


def test_repeated_conditional_update_touches_no_rows(lesson_service, db_session):
    review = first_review(lesson_service)
    repo = ReviewRepository(db_session)
    from app.utils.helpers import now_utc

    assert repo.mark_completed(review.id, now_utc()) == 1
    assert repo.mark_completed(review.id, now_utc()) == 0


def test_toggle_round_trip_only_changes_completion(lesson_service, review_service):
    review = first_review(lesson_service)
    review_date, interval = review.review_date, review.review_interval

    review_service.toggle_complete(review.id)
    reverted = review_service.toggle_complete(review.id)

    assert reverted.completed is False
    assert reverted.completed_at is None
    assert reverted.review_date == review_date
    assert reverted.review_interval == interval


def test_completion_invariant_holds_after_every_transition(lesson_service, review_service, db_session):
    review = first_review(lesson_service)
    for operation in (review_service.mark_complete, review_service.mark_incomplete,
                      review_service.toggle_complete, review_service.toggle_complete,
                      review_service.mark_complete):
        operation(review.id)
        for row in db_session.query(ReviewSchedule).all():
            assert row.completed == (row.completed_at is not None)


def test_corrupted_completed_flag_treated_as_pending(lesson_service, review_service, db_session):
    review = first_review(lesson_service)
    ReviewRepository(db_session).overwrite_fields(review.id, completed=True, completed_at=None)

    loaded = review_service.get_review(review.id)
    assert loaded.is_completed is False
    assert loaded.to_dict()["completed"] is False

    repaired = review_service.mark_complete(review.id)
    assert repaired.completed is True and repaired.completed_at is not None


def test_reschedule_changes_date_but_not_interval(lesson_service, review_service):
    review = first_review(lesson_service)

    moved = review_service.reschedule(review.id, "2024-01-15")

    assert moved.review_date == date(2024, 1, 15)
    assert moved.review_interval == 0
    assert moved.lesson.lesson_date == date(2024, 1, 1)


def test_completed_review_cannot_be_rescheduled(lesson_service, review_service):
    review = first_review(lesson_service)
    review_service.mark_complete(review.id)

    with pytest.raises(ReviewStateError):
        review_service.reschedule(review.id, "2024-01-15")


def test_reschedule_rejects_bad_date(lesson_service, review_service):
    review = first_review(lesson_service)
    with pytest.raises(ValidationError):
        review_service.reschedule(review.id, "15/01/2024")


def test_move_to_tomorrow(lesson_service, review_service):
    review = first_review(lesson_service)
    moved = review_service.move_to_tomorrow(review.id)
    assert moved.review_date == today_local() + timedelta(days=1)


def test_update_review_requires_a_field(lesson_service, review_service):
    review = first_review(lesson_service)
    with pytest.raises(ValidationError):
        review_service.update_review(review.id)


def test_update_review_reopens_then_reschedules(lesson_service, review_service):
    review = first_review(lesson_service)
    review_service.mark_complete(review.id)

    updated = review_service.update_review(review.id, review_date="2024-02-01", completed=False)

    assert updated.completed is False
    assert updated.review_date == date(2024, 2, 1)


def test_delete_single_review_keeps_lesson(lesson_service, review_service):
    review = first_review(lesson_service)
    lesson_id = review.lesson_id

    review_service.delete_review(review.id)

    assert len(lesson_service.get_lesson_reviews(lesson_id)) == 3
    with pytest.raises(NotFoundError):
        review_service.get_review(review.id)
    with pytest.raises(NotFoundError):
        review_service.delete_review(review.id)


def test_persistence_failure_propagates_and_leaves_state(lesson_service, review_service, monkeypatch, notifier):
    review = first_review(lesson_service)
    notifier.events.clear()

    def failing_update(*args, **kwargs):
        raise OperationalError("UPDATE review_schedule", {}, Exception("database is locked"))

    monkeypatch.setattr(review_service.review_repo, "mark_completed", failing_update)

    with pytest.raises(OperationalError):
        review_service.mark_complete(review.id)

    assert review_service.get_review(review.id).completed is False
    assert notifier.events == []


def test_today_view_groups_linked_reviews(lesson_service, review_service):
    today = today_local().isoformat()
    link = lesson_service.create_lesson(title="React Hooks", lesson_type="link",
                                        link_url="https://react.dev", lesson_date=today)
    child = lesson_service.create_lesson(title="useEffect", lesson_date=today, linked_lesson_id=link.id)

    reviews = review_service.get_today_reviews()
    overview = review_service.get_reviews_overview()

    assert {r.lesson_id for r in reviews} == {link.id, child.id}
    grouped = overview["today"]
    assert [r.lesson_id for r in grouped.display_reviews] == [link.id]
    parent_id = grouped.display_reviews[0].id
    assert [r.lesson_id for r in grouped.children_of(parent_id)] == [child.id]
    # 未来7天内：link 的 day1、day3、day7 都带着 child
    upcoming = overview["upcoming"]
    assert len(upcoming.display_reviews) == 3
    assert sum(len(children) for children in upcoming.children_by_parent_id.values()) == 3


def test_child_rescheduled_away_from_parent_surfaces(lesson_service, review_service):
    link = lesson_service.create_lesson(title="React Hooks", lesson_type="link",
                                        link_url="https://react.dev", lesson_date="2024-02-01")
    child = lesson_service.create_lesson(title="useEffect", lesson_date="2024-02-01", linked_lesson_id=link.id)
    child_review = lesson_service.get_lesson_reviews(child.id)[0]

    review_service.reschedule(child_review.id, "2024-02-03")

    feb_first = review_service.get_reviews_for_date("2024-02-01")
    assert [r.lesson_id for r in feb_first.display_reviews] == [link.id]
    assert feb_first.children_by_parent_id == {}
    feb_third = review_service.get_reviews_for_date("2024-02-03")
    assert [r.lesson_id for r in feb_third.display_reviews] == [child.id]


def test_past_view_lists_completed_reviews(lesson_service, review_service):
    past = (today_local() - timedelta(days=10)).isoformat()
    lesson = lesson_service.create_lesson(title="old", lesson_date=past)
    reviews = lesson_service.get_lesson_reviews(lesson.id)
    review_service.mark_complete(reviews[0].id)

    overview = review_service.get_reviews_overview()

    assert [r.id for r in overview["past"].display_reviews] == [reviews[0].id]


def test_calendar_month(lesson_service, review_service):
    link = lesson_service.create_lesson(title="React Hooks", lesson_type="link",
                                        link_url="https://react.dev", lesson_date="2024-01-28")
    lesson_service.create_lesson(title="useEffect", lesson_date="2024-01-28", linked_lesson_id=link.id)
    review_service.mark_complete(lesson_service.get_lesson_reviews(link.id)[0].id)

    calendar = review_service.get_calendar_month(2024, 1)

    assert list(calendar["days"].keys()) == ["2024-01-28", "2024-01-29", "2024-01-31"]
    for grouped in calendar["days"].values():
        assert len(grouped.display_reviews) == 1
        assert sum(len(c) for c in grouped.children_by_parent_id.values()) == 1
    assert calendar["completed_count"] == 1
    assert calendar["pending_count"] == 5
    assert calendar["end_date"] == "2024-01-31"


def test_calendar_rejects_bad_month(review_service):
    with pytest.raises(ValidationError):
        review_service.get_calendar_month(2024, 13)


def test_invalid_date_leaves_completed_review_untouched(lesson_service, review_service, notifier):
    review = first_review(lesson_service)
    completed_at = review_service.mark_complete(review.id).completed_at
    notifier.events.clear()

    with pytest.raises(ValidationError):
        review_service.update_review(review.id, review_date="2024-02-30", completed=False)

    unchanged = review_service.get_review(review.id)
    assert unchanged.completed is True
    assert unchanged.completed_at == completed_at
    assert unchanged.review_date == date(2024, 1, 1)
    assert notifier.events == []


def test_reopen_and_reschedule_in_one_update(lesson_service, review_service, notifier):
    review = first_review(lesson_service)
    review_service.mark_complete(review.id)
    notifier.events.clear()

    updated = review_service.update_review(review.id, review_date="2024-01-20", completed=False)

    assert updated.completed is False and updated.completed_at is None
    assert updated.review_date == date(2024, 1, 20)
    assert updated.review_interval == 0
    assert len(notifier.events) == 1
