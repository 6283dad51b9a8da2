import threading
from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from cityguide.core.errors import DuplicateReviewError, NotFoundError, ValidationError
from cityguide.db.session import SessionLocal
from cityguide.models.reviews import Review
from cityguide.services import review_store


def test_create_review_strips_comment(db, make_user, make_place):
    user, place = make_user("Ravi"), make_place()

    review = review_store.create_review(
        db, place_id=place.id, user_id=user.id, user_name=user.name, rating=4, comment="  Lovely  "
    )

    assert review.comment == "Lovely"
    assert review.user_name == "Ravi"
    assert review.owner_reply is None
    assert review_store.count_by_place(db, place.id) == 1


@pytest.mark.parametrize("rating", [0, 6, -1, 4.5, True, "5"])
def test_create_review_rejects_bad_rating(db, make_user, make_place, rating):
    user, place = make_user(), make_place()

    with pytest.raises(ValidationError) as exc:
        review_store.create_review(
            db, place_id=place.id, user_id=user.id, user_name=user.name, rating=rating, comment="ok"
        )
    assert exc.value.field == "rating"
    assert review_store.count_by_place(db, place.id) == 0


@pytest.mark.parametrize("comment", ["", "   ", None])
def test_create_review_requires_comment(db, make_user, make_place, comment):
    user, place = make_user(), make_place()

    with pytest.raises(ValidationError) as exc:
        review_store.create_review(
            db, place_id=place.id, user_id=user.id, user_name=user.name, rating=3, comment=comment
        )
    assert exc.value.field == "comment"


def test_duplicate_review_is_rejected_by_constraint(db, make_user, make_place):
    user, place = make_user(), make_place()
    review_store.create_review(db, place_id=place.id, user_id=user.id, user_name=user.name, rating=5, comment="a")

    with pytest.raises(DuplicateReviewError):
        review_store.create_review(
            db, place_id=place.id, user_id=user.id, user_name=user.name, rating=1, comment="b"
        )

    # Session is still usable after the rollback.
    assert [r.rating for r in review_store.list_by_place(db, place.id)] == [5]


def test_same_author_on_other_place_is_fine(db, make_user, make_place):
    user = make_user()
    p1, p2 = make_place("One"), make_place("Two")

    review_store.create_review(db, place_id=p1.id, user_id=user.id, user_name=user.name, rating=5, comment="a")
    review_store.create_review(db, place_id=p2.id, user_id=user.id, user_name=user.name, rating=2, comment="b")

    assert review_store.count_by_place(db, p1.id) == 1
    assert review_store.count_by_place(db, p2.id) == 1


def test_concurrent_duplicate_submissions_one_wins(db, make_user, make_place):
    user, place = make_user(), make_place()
    barrier = threading.Barrier(2)
    outcomes: list[str] = []
    lock = threading.Lock()

    def submit(rating: int) -> None:
        session = SessionLocal()
        try:
            barrier.wait()
            review_store.create_review(
                session, place_id=place.id, user_id=user.id, user_name="Racer", rating=rating, comment="race"
            )
            result = "ok"
        except DuplicateReviewError:
            result = "duplicate"
        finally:
            session.close()
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=submit, args=(r,)) for r in (2, 4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(outcomes) == ["duplicate", "ok"]
    assert review_store.count_by_place(db, place.id) == 1


def test_list_by_place_newest_first(db, make_user, make_place):
    place = make_place()
    now = datetime.utcnow()
    for i, user in enumerate([make_user("Old"), make_user("Mid"), make_user("New")]):
        review_store.create_review(
            db,
            place_id=place.id,
            user_id=user.id,
            user_name=user.name,
            rating=3,
            comment="c",
            created_at=now + timedelta(minutes=i),
        )

    assert [r.user_name for r in review_store.list_by_place(db, place.id)] == ["New", "Mid", "Old"]
    assert [r.user_name for r in review_store.list_by_place(db, place.id, newest_first=False)] == ["Old", "Mid", "New"]


def test_set_owner_reply(db, make_user, make_place):
    user, place = make_user(), make_place()
    review = review_store.create_review(
        db, place_id=place.id, user_id=user.id, user_name=user.name, rating=4, comment="ok"
    )

    updated = review_store.set_owner_reply(db, place_id=place.id, review_id=review.id, reply_text=" Thanks! ")
    assert updated.owner_reply == "Thanks!"
    assert updated.owner_reply_at is not None

    again = review_store.set_owner_reply(db, place_id=place.id, review_id=review.id, reply_text="Edited")
    assert again.owner_reply == "Edited"


def test_set_owner_reply_errors(db, make_user, make_place):
    user, place, other = make_user(), make_place("Mine"), make_place("Other")
    review = review_store.create_review(
        db, place_id=place.id, user_id=user.id, user_name=user.name, rating=4, comment="ok"
    )

    with pytest.raises(NotFoundError):
        review_store.set_owner_reply(db, place_id=other.id, review_id=review.id, reply_text="hi")
    with pytest.raises(NotFoundError):
        review_store.set_owner_reply(db, place_id=place.id, review_id="missing", reply_text="hi")
    with pytest.raises(ValidationError):
        review_store.set_owner_reply(db, place_id=place.id, review_id=review.id, reply_text="  ")


def test_delete_by_place(db, make_user, make_place):
    keep, drop = make_place("Keep"), make_place("Drop")
    for user in (make_user(), make_user()):
        for place in (keep, drop):
            review_store.create_review(
                db, place_id=place.id, user_id=user.id, user_name=user.name, rating=3, comment="c"
            )

    assert review_store.delete_by_place(db, drop.id) == 2
    assert review_store.count_by_place(db, drop.id) == 0
    assert review_store.count_by_place(db, keep.id) == 2
    assert db.query(Review).count() == 2


class _PgDiag:
    def __init__(self, constraint_name):
        self.constraint_name = constraint_name


class _PgError(Exception):
    def __init__(self, message, constraint_name):
        super().__init__(message)
        self.diag = _PgDiag(constraint_name)


@pytest.mark.parametrize(
    "orig, expected",
    [
        (Exception("UNIQUE constraint failed: reviews.place_id, reviews.user_id"), True),
        (Exception("UNIQUE constraint failed: reviews.id"), False),
        (Exception("FOREIGN KEY constraint failed"), False),
        (Exception("Duplicate entry 'a-b' for key 'reviews.uq_reviews_place_user'"), True),
        (_PgError('duplicate key value violates unique constraint "uq_reviews_place_user"', "uq_reviews_place_user"), True),
        (_PgError('duplicate key value violates unique constraint "reviews_pkey"', "reviews_pkey"), False),
    ],
)
def test_only_the_place_author_constraint_means_duplicate(orig, expected):
    exc = IntegrityError("INSERT INTO reviews", {}, orig)
    assert review_store._is_duplicate_review(exc) is expected


def test_other_integrity_errors_propagate(db, make_user, make_place, monkeypatch):
    user, place = make_user(), make_place()

    def failing_commit():
        raise IntegrityError("INSERT INTO reviews", {}, Exception("UNIQUE constraint failed: reviews.id"))

    monkeypatch.setattr(db, "commit", failing_commit)

    with pytest.raises(IntegrityError):
        review_store.create_review(db, place_id=place.id, user_id=user.id, user_name=user.name, rating=3, comment="x")
