import pytest


@pytest.mark.parametrize("path", ["/api/admin/users", "/api/admin/books", "/api/admin/authors", "/api/admin/reviews"])
def test_admin_routes_need_admin(client, user_headers, path):
    assert client.get(path).status_code == 401
    forbidden = client.get(path, headers=user_headers)
    assert forbidden.status_code == 403
    assert forbidden.json()["message"] == "Access denied: Admin privilege required"


def test_list_users_envelope(client, admin_headers, make_user):
    make_user()
    users = client.get("/api/admin/users", headers=admin_headers).json()["users"]
    assert {u["email"] for u in users} == {"admin@example.com", "reader@example.com"}
    assert all("password" not in u for u in users)


def test_create_user(client, admin_headers):
    resp = client.post("/api/admin/users", headers=admin_headers,
                       json={"name": "Staff", "email": "staff@example.com", "password": "staff1234"})
    assert resp.status_code == 201
    assert resp.json()["message"] == "User created successfully"
    assert resp.json()["user"]["email_verified"] is True

    pending = client.post("/api/admin/users", headers=admin_headers,
                          json={"name": "New", "email": "new@example.com", "password": "new12345",
                                "email_verified": False, "sendVerificationEmail": True})
    assert pending.json()["message"] == "User created successfully. Verification email sent."

    dup = client.post("/api/admin/users", headers=admin_headers,
                      json={"name": "Staff", "email": "staff@example.com", "password": "staff1234"})
    assert dup.status_code == 400


def test_get_user_with_collection(client, app, admin_headers, make_user):
    user, _ = make_user()
    lib = app.state.library
    for title in ("Zorba", "Anna Karenina"):
        lib.add_to_collection(user.id, lib.create_book(title).id)

    resp = client.get(f"/api/admin/users/{user.id}", headers=admin_headers).json()["user"]

    assert resp["email"] == "reader@example.com"
    assert [b["title"] for b in resp["books"]] == ["Anna Karenina", "Zorba"]
    assert client.get("/api/admin/users/999", headers=admin_headers).status_code == 404


def test_update_user(client, admin_headers, make_user):
    user, _ = make_user()

    resp = client.put(f"/api/admin/users/{user.id}", headers=admin_headers, json={"role": "ADMIN"})
    assert resp.json()["message"] == "User updated successfully"
    assert resp.json()["user"]["role"] == "ADMIN"

    taken = client.put(f"/api/admin/users/{user.id}", headers=admin_headers, json={"email": "admin@example.com"})
    assert taken.status_code == 400
    assert taken.json()["message"] == "Email is already in use"

    empty = client.put(f"/api/admin/users/{user.id}", headers=admin_headers, json={})
    assert empty.json()["message"] == "No valid fields to update"


def test_change_password_and_delete(client, admin_headers, make_user):
    user, _ = make_user()

    assert client.post(f"/api/admin/users/{user.id}/change-password", headers=admin_headers,
                       json={}).json()["message"] == "New password is required"
    ok = client.post(f"/api/admin/users/{user.id}/change-password", headers=admin_headers,
                     json={"newPassword": "reset1234"})
    assert ok.json() == {"message": "User password changed successfully"}
    login = client.post("/api/auth/login", json={"email": "reader@example.com", "password": "reset1234"})
    assert login.status_code == 200

    assert client.delete(f"/api/admin/users/{user.id}", headers=admin_headers).json() == {
        "message": "User deleted successfully"}
    assert client.delete(f"/api/admin/users/{user.id}", headers=admin_headers).status_code == 404


def test_admin_books_and_authors(client, admin_headers):
    book = client.post("/api/admin/books", headers=admin_headers,
                       json={"title": "Neuromancer", "author": "William Gibson"}).json()["book"]
    assert client.get(f"/api/admin/books/{book['id']}", headers=admin_headers).json()["book"]["title"] == "Neuromancer"

    authors = client.get("/api/admin/authors", headers=admin_headers).json()["authors"]
    assert authors[0]["name"] == "William Gibson"
    detail = client.get(f"/api/admin/authors/{authors[0]['id']}", headers=admin_headers).json()
    assert [b["title"] for b in detail["books"]] == ["Neuromancer"]

    assert client.put(f"/api/admin/books/{book['id']}", headers=admin_headers,
                      json={"title": "Count Zero"}).status_code == 200
    assert client.delete(f"/api/admin/books/{book['id']}", headers=admin_headers).status_code == 200


def test_admin_reviews(client, app, admin_headers):
    book = app.state.library.create_book("Dune")
    review = app.state.reviews.create(book.id, "guest", 3, "Fine")

    listed = client.get("/api/admin/reviews", headers=admin_headers).json()
    assert listed[0]["book_title"] == "Dune"
    assert len(client.get(f"/api/admin/reviews/book/{book.id}", headers=admin_headers).json()) == 1

    upd = client.put(f"/api/admin/reviews/{review.id}", headers=admin_headers, json={"rating": 5})
    assert upd.json()["rating"] == 5

    assert client.delete(f"/api/admin/reviews/{review.id}", headers=admin_headers).status_code == 204
    assert client.delete(f"/api/admin/reviews/{review.id}", headers=admin_headers).status_code == 404
