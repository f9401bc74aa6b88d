import pytest


@pytest.fixture
def book_id(app):
    return app.state.library.create_book("Dune", author="Frank Herbert").id


def post_review(client, book_id, headers=None, **fields):
    payload = {"rating": 4, "comment": "Good read", "username": "guest"}
    payload.update(fields)
    return client.post(f"/api/books/{book_id}/reviews", json=payload, headers=headers or {})


def test_guest_can_review(client, book_id):
    resp = post_review(client, book_id)
    assert resp.status_code == 201
    review = resp.json()
    assert review["userId"] is None
    assert review["rating"] == 4

    listed = client.get(f"/api/books/{book_id}/reviews").json()
    assert [r["id"] for r in listed] == [review["id"]]


def test_review_validation(client, book_id):
    assert post_review(client, 999).status_code == 404

    bad_rating = post_review(client, book_id, rating=7)
    assert bad_rating.status_code == 400
    assert bad_rating.json()["message"] == "Rating must be between 1 and 5"

    no_comment = post_review(client, book_id, comment="")
    assert no_comment.json()["message"] == "Review comment is required"


def test_owner_can_update_and_delete(client, book_id, user_headers):
    review = post_review(client, book_id, headers=user_headers).json()

    upd = client.put(f"/api/reviews/{review['id']}", headers=user_headers, json={"comment": "Even better"})
    assert upd.status_code == 200
    assert upd.json()["comment"] == "Even better"
    assert upd.json()["rating"] == 4

    deleted = client.delete(f"/api/reviews/{review['id']}", headers=user_headers)
    assert deleted.status_code == 204
    assert client.get(f"/api/books/{book_id}/reviews").json() == []


def test_others_cannot_touch_review(client, book_id, user_headers, make_user):
    review = post_review(client, book_id, headers=user_headers).json()
    _, other_headers = make_user("Mallory", "mallory@example.com")

    forbidden = client.put(f"/api/reviews/{review['id']}", headers=other_headers, json={"rating": 1})
    assert forbidden.status_code == 403
    assert forbidden.json()["message"] == "You don't have permission to update this review"

    anonymous = client.delete(f"/api/reviews/{review['id']}")
    assert anonymous.status_code == 403
    assert anonymous.json()["message"] == "You don't have permission to delete this review"


def test_guest_reviews_are_locked(client, book_id, user_headers):
    review = post_review(client, book_id).json()
    assert client.delete(f"/api/reviews/{review['id']}", headers=user_headers).status_code == 403


def test_admin_can_moderate(client, book_id, user_headers, admin_headers):
    review = post_review(client, book_id, headers=user_headers).json()
    assert client.delete(f"/api/reviews/{review['id']}", headers=admin_headers).status_code == 204


def test_missing_review(client, user_headers):
    resp = client.put("/api/reviews/999", headers=user_headers, json={"rating": 3})
    assert resp.status_code == 404
    assert resp.json()["message"] == "Review not found"
