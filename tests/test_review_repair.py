import pytest

from cityguide.models.places import Place
from cityguide.models.reviews import Review
from cityguide.services import review_store
from cityguide.services.ratings import ReviewAggregate, recompute_place_aggregate
from cityguide.services.review_repair import repair_review_stats
from scripts import repair_review_stats as repair_script


def _seed_reviews(db, place, make_user, ratings):
    for rating in ratings:
        user = make_user()
        review_store.create_review(
            db, place_id=place.id, user_id=user.id, user_name=user.name, rating=rating, comment="c"
        )


def test_repairs_drifted_place(db, make_place, make_user):
    place = make_place("Drifted", total_reviews=5, average_rating=4.2, rating=4.2)
    _seed_reviews(db, place, make_user, [5, 4, 3])

    report = repair_review_stats(db)

    assert report.places_scanned == 1
    assert report.updated == 1
    assert report.already_correct == 0
    repair = report.repairs[0]
    assert repair.before == ReviewAggregate(5, 4.2)
    assert repair.after == ReviewAggregate(3, 4.0)

    db.expire_all()
    stored = db.get(Place, place.id)
    assert (stored.total_reviews, stored.average_rating, stored.rating) == (3, 4.0, 4.0)


def test_second_run_changes_nothing(db, make_place, make_user):
    good = make_place("Good")
    _seed_reviews(db, good, make_user, [2, 5])
    recompute_place_aggregate(db, good.id)
    make_place("Stale", total_reviews=2, average_rating=1.0, rating=1.0)
    make_place("Zero rated", total_reviews=0, average_rating=3.5, rating=3.5)

    first = repair_review_stats(db)
    assert first.updated == 2
    assert first.already_correct == 1

    second = repair_review_stats(db)
    assert second.updated == 0
    assert second.already_correct == 3
    assert second.repairs == []


def test_tolerance_and_legacy_rating_field(db, make_place, make_user):
    close = make_place("Close enough")
    _seed_reviews(db, close, make_user, [4, 4, 5])
    # true mean 4.333..., stored rounded
    close.total_reviews, close.average_rating, close.rating = 3, 4.33, 4.33
    lagging = make_place("Rating lags")
    _seed_reviews(db, lagging, make_user, [5])
    lagging.total_reviews, lagging.average_rating, lagging.rating = 1, 5.0, 0.0
    db.commit()

    report = repair_review_stats(db)

    assert [r.name for r in report.repairs] == ["Rating lags"]
    db.expire_all()
    assert db.get(Place, lagging.id).rating == 5.0


def test_dry_run_does_not_write(db, make_place):
    place = make_place(total_reviews=4, average_rating=2.0, rating=2.0)

    report = repair_review_stats(db, dry_run=True)

    assert report.updated == 1
    db.expire_all()
    assert db.get(Place, place.id).total_reviews == 4


def test_orphaned_reviews_reported_and_deleted(db, make_place, make_user):
    place = make_place()
    user = make_user()
    db.add(Review(place_id="gone", user_id=user.id, user_name=user.name, rating=3, comment="orphan"))
    db.commit()
    _seed_reviews(db, place, make_user, [4])

    report = repair_review_stats(db)
    assert report.orphaned_reviews == 1
    assert report.orphans_deleted == 0

    report = repair_review_stats(db, delete_orphans=True)
    assert report.orphans_deleted == 1
    assert db.query(Review).count() == 1
    assert report.total_reviews == 1
    assert report.places_with_reviews == 1


def test_repair_script_main(db, make_place, capsys):
    make_place(total_reviews=1, average_rating=5.0, rating=5.0)

    assert repair_script.main([]) == 0
    out = capsys.readouterr().out
    assert "Places updated:          1" in out

    assert repair_script.main(["--dry-run"]) == 0
    assert "Places updated:          0" in capsys.readouterr().out


@pytest.mark.parametrize("ratings", [[1], [1, 2, 3, 4, 5], [5] * 7])
def test_matches_request_path(db, make_place, make_user, ratings):
    place = make_place()
    _seed_reviews(db, place, make_user, ratings)
    recompute_place_aggregate(db, place.id)

    assert repair_review_stats(db).updated == 0


def test_places_with_reviews_counts_true_totals_in_dry_run(db, make_place, make_user):
    reviewed = make_place("Reviewed", total_reviews=0, average_rating=0.0, rating=0.0)
    _seed_reviews(db, reviewed, make_user, [4, 5])
    make_place("Empty", total_reviews=3, average_rating=4.0, rating=4.0)

    report = repair_review_stats(db, dry_run=True)

    assert report.updated == 2
    assert report.places_with_reviews == 1
    assert report.total_reviews == 2
