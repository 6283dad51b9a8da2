from datetime import datetime

from sqlalchemy.exc import IntegrityError

from cityguide.models.places import Place
from cityguide.models.reviews import Review
from cityguide.services import review_store
from cityguide.services.legacy_migration import LegacyReview, migrate_legacy_reviews
from scripts import migrate_legacy_reviews as migrate_script


def _legacy(user, rating, comment="Lovely", **extra):
    item = {"userId": user.id, "userName": user.name, "rating": rating, "comment": comment}
    item.update(extra)
    return item


def test_legacy_review_accepts_camel_and_snake_case():
    a = LegacyReview.model_validate({"userId": "u1", "userName": "A", "rating": 4, "comment": "ok"})
    b = LegacyReview.model_validate({"user_id": "u1", "user_name": "A", "rating": 4, "comment": "ok"})
    assert a == b


def test_migrates_embedded_reviews(db, make_place, make_user):
    alice, bob = make_user("Alice"), make_user("Bob")
    place = make_place(
        "Old Place",
        legacy_reviews=[
            _legacy(alice, 5, createdAt="2023-05-01T10:00:00", ownerReply="Thanks!", ownerReplyAt="2023-05-02T09:00:00"),
            _legacy(bob, 2, "Meh", createdAt="2023-06-01T10:00:00"),
        ],
    )
    make_place("No reviews")

    report = migrate_legacy_reviews(db)

    assert report.places_scanned == 2
    assert report.places_with_reviews == 1
    assert (report.migrated, report.skipped, report.failed) == (2, 0, 0)
    assert report.reviews_in_store == 2

    db.expire_all()
    stored = db.get(Place, place.id)
    assert (stored.total_reviews, stored.average_rating, stored.rating) == (2, 3.5, 3.5)
    # the embedded array is kept
    assert len(stored.legacy_reviews) == 2

    alice_review = db.query(Review).filter_by(user_id=alice.id).one()
    assert alice_review.created_at == datetime(2023, 5, 1, 10, 0)
    assert alice_review.owner_reply == "Thanks!"
    assert alice_review.owner_reply_at == datetime(2023, 5, 2, 9, 0)


def test_rerun_skips_everything(db, make_place, make_user):
    alice, bob = make_user(), make_user()
    place = make_place(legacy_reviews=[_legacy(alice, 4), _legacy(bob, 3)])

    migrate_legacy_reviews(db)
    report = migrate_legacy_reviews(db)

    assert (report.migrated, report.skipped, report.failed) == (0, 2, 0)
    assert db.query(Review).count() == 2
    db.expire_all()
    stored = db.get(Place, place.id)
    assert (stored.total_reviews, stored.average_rating) == (2, 3.5)


def test_partially_migrated_place(db, make_place, make_user):
    alice, bob = make_user(), make_user()
    place = make_place(legacy_reviews=[_legacy(alice, 5), _legacy(bob, 1)])
    review_store.create_review(db, place_id=place.id, user_id=alice.id, user_name=alice.name, rating=5, comment="x")

    report = migrate_legacy_reviews(db)

    assert (report.migrated, report.skipped) == (1, 1)
    db.expire_all()
    assert db.get(Place, place.id).total_reviews == 2


def test_invalid_elements_are_counted_as_failed(db, make_place, make_user):
    alice, bob, carol = make_user(), make_user(), make_user()
    place = make_place(
        legacy_reviews=[
            _legacy(alice, 9),
            {"userName": "No id", "rating": 3, "comment": "x"},
            _legacy(bob, 4, "   "),
            _legacy(carol, 4),
        ]
    )

    report = migrate_legacy_reviews(db)

    assert (report.migrated, report.skipped, report.failed) == (1, 0, 3)
    db.expire_all()
    assert db.get(Place, place.id).total_reviews == 1


def test_script_exit_code(db, make_place, make_user, capsys):
    alice = make_user()
    make_place(legacy_reviews=[_legacy(alice, 4)])
    assert migrate_script.main([]) == 0
    assert "Reviews migrated:            1" in capsys.readouterr().out

    make_place("Broken", legacy_reviews=[_legacy(alice, 0)])
    assert migrate_script.main([]) == 1


def test_storage_error_on_one_review_does_not_stop_the_run(db, make_place, make_user, monkeypatch):
    alice, bob = make_user("Alice"), make_user("Bob")
    gone = {"userId": "deleted-user", "userName": "Gone", "rating": 1, "comment": "x"}
    first = make_place("A", legacy_reviews=[gone, _legacy(alice, 4)])
    second = make_place("B", legacy_reviews=[_legacy(bob, 2)])

    real_create = review_store.create_review

    def create_review(db, **kwargs):
        if kwargs["user_id"] == "deleted-user":
            raise IntegrityError("INSERT INTO reviews", {}, Exception("FOREIGN KEY constraint failed"))
        return real_create(db, **kwargs)

    monkeypatch.setattr(review_store, "create_review", create_review)

    report = migrate_legacy_reviews(db)

    assert (report.migrated, report.skipped, report.failed) == (2, 0, 1)
    assert report.reviews_in_store == 2
    db.expire_all()
    assert db.get(Place, first.id).total_reviews == 1
    assert db.get(Place, second.id).average_rating == 2.0
