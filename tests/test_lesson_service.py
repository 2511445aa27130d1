from datetime import date

import pytest

from app.models.lesson import Lesson
from app.models.review_schedule import ReviewSchedule
from app.repositories.review_repository import ReviewRepository
from app.services.lesson_service import LessonService
from app.services.review_service import ReviewService
from app.utils.exceptions import ValidationError, NotFoundError


@pytest.fixture
def lesson_service(db_session, notifier):
    return LessonService(db_session, notifier=notifier)


def test_create_word_lesson_schedules_four_reviews(lesson_service, db_session):
    lesson = lesson_service.create_lesson(title="serendipity", lesson_type="word", lesson_date="2024-01-01")

    reviews = lesson_service.get_lesson_reviews(lesson.id)
    assert [(r.review_interval, r.review_date) for r in reviews] == [
        (0, date(2024, 1, 1)),
        (1, date(2024, 1, 2)),
        (3, date(2024, 1, 4)),
        (7, date(2024, 1, 8)),
    ]
    assert all(r.completed is False and r.completed_at is None for r in reviews)


def test_create_lesson_publishes_changes(lesson_service, notifier):
    lesson = lesson_service.create_lesson(title="hello", lesson_date="2024-01-01")
    assert ("lessons", "insert", lesson.id) in [(e.table, e.action, e.record_id) for e in notifier.events]


def test_link_lesson_requires_url(lesson_service):
    with pytest.raises(ValidationError):
        lesson_service.create_lesson(title="React Hooks", lesson_type="link", lesson_date="2024-02-01")


def test_link_fields_are_normalized(lesson_service):
    link = lesson_service.create_lesson(
        title="React Hooks", lesson_type="link", lesson_date="2024-02-01",
        link_url=" https://react.dev/reference/react ",
    )
    word = lesson_service.create_lesson(
        title="useEffect", lesson_type="word", lesson_date="2024-02-01",
        link_url="https://ignored.example", linked_lesson_id=link.id,
    )

    assert link.link_url == "https://react.dev/reference/react"
    assert link.linked_lesson_id is None
    assert word.link_url is None
    assert word.linked_lesson_id == link.id


def test_cannot_link_to_non_link_lesson(lesson_service):
    word = lesson_service.create_lesson(title="apple", lesson_date="2024-01-01")
    with pytest.raises(ValidationError):
        lesson_service.create_lesson(title="banana", lesson_date="2024-01-01", linked_lesson_id=word.id)


def test_cannot_link_to_missing_lesson(lesson_service):
    with pytest.raises(ValidationError):
        lesson_service.create_lesson(title="banana", lesson_date="2024-01-01", linked_lesson_id=12345)


@pytest.mark.parametrize("fields", [
    {"title": "  "},
    {"title": "ok", "lesson_type": "video"},
    {"title": "ok", "lesson_date": "2024/01/01"},
])
def test_invalid_lesson_rejected(lesson_service, db_session, fields):
    fields.setdefault("lesson_date", "2024-01-01")
    with pytest.raises(ValidationError):
        lesson_service.create_lesson(**fields)
    assert db_session.query(Lesson).count() == 0


def test_failed_review_insert_rolls_back_lesson(lesson_service, db_session, monkeypatch):
    def broken_rows(lesson_id, lesson_date):
        return [{"lesson_id": lesson_id, "review_date": date(2024, 1, 1), "review_interval": 5,
                 "completed": False, "completed_at": None}]

    monkeypatch.setattr("app.services.lesson_service.build_review_rows", broken_rows)

    with pytest.raises(Exception):
        lesson_service.create_lesson(title="atomic", lesson_date="2024-01-01")

    assert db_session.query(Lesson).count() == 0
    assert db_session.query(ReviewSchedule).count() == 0


def test_delete_lesson_removes_all_reviews(lesson_service, db_session):
    lesson = lesson_service.create_lesson(title="ephemeral", lesson_date="2024-01-01")
    review_service = ReviewService(db_session, notifier=lesson_service.notifier)
    reviews = lesson_service.get_lesson_reviews(lesson.id)
    review_service.mark_complete(reviews[0].id)
    review_service.mark_complete(reviews[1].id)

    lesson_service.delete_lesson(lesson.id)

    assert ReviewRepository(db_session).get_reviews_by_lesson(lesson.id) == []
    assert db_session.query(ReviewSchedule).count() == 0
    with pytest.raises(NotFoundError):
        lesson_service.get_lesson(lesson.id)


def test_delete_missing_lesson(lesson_service):
    with pytest.raises(NotFoundError):
        lesson_service.delete_lesson(999)


def test_deleting_link_lesson_detaches_children(lesson_service):
    link = lesson_service.create_lesson(title="docs", lesson_type="link", link_url="https://x.dev",
                                        lesson_date="2024-01-01")
    child = lesson_service.create_lesson(title="term", lesson_date="2024-01-01", linked_lesson_id=link.id)

    lesson_service.delete_lesson(link.id)

    assert lesson_service.get_lesson(child.id).linked_lesson_id is None
    assert len(lesson_service.get_lesson_reviews(child.id)) == 4


def test_editing_lesson_date_does_not_move_reviews(lesson_service):
    lesson = lesson_service.create_lesson(title="stable", lesson_date="2024-01-01")

    updated = lesson_service.update_lesson(lesson.id, lesson_date="2024-03-01", title="renamed")

    assert updated.lesson_date == date(2024, 3, 1)
    assert updated.title == "renamed"
    assert lesson_service.get_lesson_reviews(lesson.id)[0].review_date == date(2024, 1, 1)


def test_lesson_cannot_link_to_itself(lesson_service):
    link = lesson_service.create_lesson(title="docs", lesson_type="link", link_url="https://x.dev",
                                        lesson_date="2024-01-01")
    word = lesson_service.create_lesson(title="term", lesson_date="2024-01-01")
    with pytest.raises(ValidationError):
        lesson_service.update_lesson(word.id, linked_lesson_id=word.id)
    # 改成链接类型后关联被清空
    lesson_service.update_lesson(word.id, linked_lesson_id=link.id)
    changed = lesson_service.update_lesson(word.id, lesson_type="link", link_url="https://y.dev")
    assert changed.linked_lesson_id is None


def test_update_rejects_unknown_fields(lesson_service):
    lesson = lesson_service.create_lesson(title="x", lesson_date="2024-01-01")
    with pytest.raises(ValidationError):
        lesson_service.update_lesson(lesson.id, review_interval=2)


def test_list_lessons_filters(lesson_service):
    lesson_service.create_lesson(title="React Hooks", lesson_type="link", link_url="https://react.dev",
                                 lesson_date="2024-01-02")
    lesson_service.create_lesson(title="useEffect", content="side effects hook", lesson_date="2024-01-01")
    lesson_service.create_lesson(title="I am hooked", lesson_type="sentence", lesson_date="2024-01-03")

    assert [l.title for l in lesson_service.list_link_lessons()] == ["React Hooks"]
    assert [l.title for l in lesson_service.list_lessons(search="hook")] == [
        "I am hooked", "React Hooks", "useEffect"
    ]
    assert [l.title for l in lesson_service.list_lessons(lesson_type="sentence")] == ["I am hooked"]
    assert lesson_service.get_lessons_count() == 3


def test_delete_all_lessons(lesson_service, db_session):
    link = lesson_service.create_lesson(title="docs", lesson_type="link", link_url="https://x.dev",
                                        lesson_date="2024-01-01")
    lesson_service.create_lesson(title="term", lesson_date="2024-01-01", linked_lesson_id=link.id)

    assert lesson_service.delete_all_lessons() == 2
    assert db_session.query(Lesson).count() == 0
    assert db_session.query(ReviewSchedule).count() == 0


def test_retyping_link_lesson_detaches_children(lesson_service):
    link = lesson_service.create_lesson(title="React", lesson_type="link", link_url="https://react.dev",
                                        lesson_date="2024-01-01")
    child = lesson_service.create_lesson(title="useState", lesson_date="2024-01-01", linked_lesson_id=link.id)

    retyped = lesson_service.update_lesson(link.id, lesson_type="word")

    assert retyped.lesson_type == "word"
    assert retyped.link_url is None
    assert lesson_service.get_lesson(child.id).linked_lesson_id is None


def test_editing_link_lesson_keeps_children(lesson_service):
    link = lesson_service.create_lesson(title="React", lesson_type="link", link_url="https://react.dev",
                                        lesson_date="2024-01-01")
    child = lesson_service.create_lesson(title="useState", lesson_date="2024-01-01", linked_lesson_id=link.id)

    lesson_service.update_lesson(link.id, title="React docs")

    assert lesson_service.get_lesson(child.id).linked_lesson_id == link.id
