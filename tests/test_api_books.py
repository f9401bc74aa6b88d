from library_app.openlibrary import ExternalServiceError

OPEN_LIBRARY_BOOK = {
    "title": "Clean Code",
    "author": "Robert C. Martin",
    "authors": [{"name": "Robert C. Martin", "url": None}],
    "publishYear": 2008,
    "isbn": "9780132350884",
    "cover": "https://covers.openlibrary.org/b/id/1-M.jpg",
    "description": None,
}


def create(client, headers, **fields):
    payload = {"title": "Dune", "author": "Frank Herbert"}
    payload.update(fields)
    return client.post("/api/books", headers=headers, json=payload)


def test_list_books_envelope(client):
    resp = client.get("/api/books")
    assert resp.status_code == 200
    assert resp.json() == {"books": []}


def test_create_requires_auth(client):
    resp = create(client, {})
    assert resp.status_code == 401


def test_create_and_get(client, user_headers):
    resp = create(client, user_headers, isbn="9780441013593", publishYear=1965)
    assert resp.status_code == 201
    book = resp.json()["book"]
    assert book["authors"][0]["name"] == "Frank Herbert"
    assert book["authors"][0]["is_primary"] is True

    fetched = client.get(f"/api/books/{book['id']}")
    assert fetched.json()["book"]["title"] == "Dune"
    assert client.get("/api/books/999").status_code == 404


def test_create_with_author_list(client, user_headers):
    resp = client.post("/api/books", headers=user_headers,
                       json={"title": "Good Omens", "authors": [{"name": "Terry Pratchett"}, {"name": "Neil Gaiman"}]})
    assert resp.json()["book"]["author"] == "Terry Pratchett, Neil Gaiman"


def test_create_requires_title(client, user_headers):
    resp = client.post("/api/books", headers=user_headers, json={"author": "x"})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Title is required"


def test_existing_isbn_returns_book_and_collects_it(client, user_headers):
    first = create(client, user_headers, isbn="9780441013593").json()["book"]

    again = create(client, user_headers, isbn="9780441013593", title="Another title")

    assert again.status_code == 200
    assert again.json()["message"] == "Book already exists and has been added to your collection"
    assert again.json()["book"]["id"] == first["id"]
    collection = client.get("/api/books/user/collection", headers=user_headers).json()["books"]
    assert [b["id"] for b in collection] == [first["id"]]


def test_create_and_collect(client, user_headers):
    resp = create(client, user_headers, addToCollection=True)
    assert resp.json()["message"] == "Book created successfully and added to your collection"
    assert len(client.get("/api/books/user/collection", headers=user_headers).json()["books"]) == 1


def test_update_and_delete(client, user_headers):
    book = create(client, user_headers).json()["book"]

    upd = client.put(f"/api/books/{book['id']}", headers=user_headers,
                     json={"title": "Dune Messiah", "author": "Frank Herbert"})
    assert upd.json()["message"] == "Book updated successfully"
    assert upd.json()["book"]["title"] == "Dune Messiah"

    assert client.put("/api/books/999", headers=user_headers, json={"title": "x"}).status_code == 404

    deleted = client.delete(f"/api/books/{book['id']}", headers=user_headers)
    assert deleted.json() == {"message": "Book deleted successfully"}
    assert client.delete(f"/api/books/{book['id']}", headers=user_headers).status_code == 404


def test_search(client, user_headers):
    create(client, user_headers)
    create(client, user_headers, title="Emma", author="Jane Austen")

    assert client.get("/api/books/search").status_code == 400
    found = client.get("/api/books/search", params={"q": "austen"}).json()["books"]
    assert [b["title"] for b in found] == ["Emma"]


def test_collection_endpoints(client, user_headers):
    book = create(client, user_headers).json()["book"]

    assert client.post("/api/books/user/collection", headers=user_headers, json={}).status_code == 400
    assert client.post("/api/books/user/collection", headers=user_headers,
                       json={"bookId": 999}).status_code == 404

    added = client.post("/api/books/user/collection", headers=user_headers, json={"bookId": book["id"]})
    assert added.status_code == 201

    removed = client.delete(f"/api/books/user/collection/{book['id']}", headers=user_headers)
    assert removed.status_code == 200
    again = client.delete(f"/api/books/user/collection/{book['id']}", headers=user_headers)
    assert again.status_code == 404


def test_collection_requires_auth(client):
    assert client.get("/api/books/user/collection").status_code == 401


def test_create_by_isbn(client, user_headers, openlibrary):
    openlibrary.fetch_book.return_value = OPEN_LIBRARY_BOOK

    resp = client.post("/api/books/isbn", headers=user_headers, json={"isbn": "9780132350884"})

    assert resp.status_code == 201
    assert resp.json()["book"]["isbn"] == "9780132350884"
    openlibrary.fetch_book.assert_called_once_with("9780132350884")

    dup = client.post("/api/books/isbn", headers=user_headers, json={"isbn": "9780132350884"})
    assert dup.status_code == 400
    assert dup.json()["message"] == "Book with this ISBN already exists in the catalog"

    collect = client.post("/api/books/isbn", headers=user_headers,
                          json={"isbn": "9780132350884", "addToCollection": True})
    assert collect.status_code == 200


def test_create_by_isbn_errors(client, user_headers, openlibrary):
    assert client.post("/api/books/isbn", headers=user_headers, json={}).status_code == 400

    openlibrary.fetch_book.return_value = None
    missing = client.post("/api/books/isbn", headers=user_headers, json={"isbn": "0000000000"})
    assert missing.status_code == 404
    assert missing.json()["message"] == "Book not found with this ISBN"

    openlibrary.fetch_book.side_effect = ExternalServiceError("down")
    down = client.post("/api/books/isbn", headers=user_headers, json={"isbn": "1111111111"})
    assert down.status_code == 502


def test_isbn_lookup_is_rate_limited(client, app, user_headers, openlibrary):
    openlibrary.fetch_book.return_value = None
    limit = app.state.openlibrary_limiter.limit

    codes = [client.post("/api/books/isbn", headers=user_headers, json={"isbn": f"00000000{i:02d}"}).status_code
             for i in range(limit + 1)]

    assert codes[:limit] == [404] * limit
    assert codes[-1] == 429
    last = client.post("/api/books/isbn", headers=user_headers, json={"isbn": "0000000099"})
    assert last.json()["message"] == "Rate limit exceeded. Please try again later."
    assert last.json()["retryAfter"] > 0


def test_search_openlibrary(client, openlibrary):
    openlibrary.search.return_value = {"books": [OPEN_LIBRARY_BOOK], "total": 1, "offset": 0, "limit": 1}

    resp = client.get("/api/books/search/openlibrary", params={"query": "clean code", "type": "title"})

    assert resp.status_code == 200
    assert resp.json()["books"][0]["title"] == "Clean Code"
    openlibrary.search.assert_called_once_with("clean code", "title")

    openlibrary.search.return_value = None
    nothing = client.get("/api/books/search/openlibrary", params={"query": "zzz", "type": "author"})
    assert nothing.status_code == 404
    assert nothing.json()["message"] == "No books found for this author"


def test_unknown_author_id_is_404(client, user_headers):
    resp = create(client, user_headers, authors=[{"id": 999, "name": "Ghost"}])
    assert resp.status_code == 404
    assert resp.json() == {"message": "Author not found"}
    assert client.get("/api/books").json() == {"books": []}
