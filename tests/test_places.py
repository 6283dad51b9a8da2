from cityguide.models.places import Place


def _seed_places(db):
    db.add_all(
        [
            Place(name="Cafe Alpha", category="Cafe", city="Mumbai", description="Filter coffee", address="Linking Rd 1", average_rating=4.7, rating=4.7, total_reviews=12),
            Place(name="Cafe Beta", category="Cafe", city="Mumbai", description="Tea house", address="Hill Rd 2", average_rating=4.1, rating=4.1, total_reviews=5),
            Place(name="Regal Cinema", category="Cinema", city="Mumbai", description="Old single screen", address="Colaba 3", average_rating=4.9, rating=4.9, total_reviews=2),
            Place(name="Lodhi Garden", category="Park", city="Delhi", description="Tombs and lawns, a cafe nearby", address="Lodhi Rd", average_rating=4.8, rating=4.8, total_reviews=7),
        ]
    )
    db.commit()


def test_places_filter_city_and_min_rating(client, db):
    _seed_places(db)

    r = client.get("/places", params={"city": "Mumbai", "min_rating": 4.5, "limit": 100, "offset": 0})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["total"] == 2
    names = [x["name"] for x in body["items"]]
    assert names == ["Regal Cinema", "Cafe Alpha"]


def test_places_sort_by_total_reviews(client, db):
    _seed_places(db)

    r = client.get("/places", params={"sort": "total_reviews"})
    assert r.status_code == 200, r.text
    assert [x["total_reviews"] for x in r.json()["items"]] == [12, 7, 5, 2]

    r = client.get("/places", params={"sort": "bogus"})
    assert r.status_code == 400
    assert r.json()["error"] == "validation_error"


def test_places_search_and_pagination(client, db):
    _seed_places(db)

    # matches two names and one description
    r1 = client.get("/places/search", params={"keyword": "CAFE", "limit": 2, "offset": 0})
    assert r1.status_code == 200, r1.text
    body1 = r1.json()
    assert body1["total"] == 3
    assert len(body1["items"]) == 2

    r2 = client.get("/places/search", params={"keyword": "cafe", "limit": 2, "offset": 2})
    body2 = r2.json()
    assert len(body2["items"]) == 1
    assert body2["items"][0]["id"] not in {p["id"] for p in body1["items"]}

    r3 = client.get("/places/search", params={"keyword": "cafe", "city": "Delhi"})
    assert [p["name"] for p in r3.json()["items"]] == ["Lodhi Garden"]


def test_cities_and_get_place(client, db):
    _seed_places(db)

    r = client.get("/places/cities")
    assert r.json()["items"] == ["Delhi", "Mumbai"]

    place_id = client.get("/places", params={"city": "Delhi"}).json()["items"][0]["id"]
    r = client.get(f"/places/{place_id}")
    assert r.status_code == 200
    assert r.json()["name"] == "Lodhi Garden"

    r = client.get("/places/does-not-exist")
    assert r.status_code == 404
    assert r.json()["error"] == "not_found"
