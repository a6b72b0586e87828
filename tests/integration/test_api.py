"""
Integration tests for API endpoints.
"""

import csv
import io
import re

import pytest

pytestmark = pytest.mark.asyncio

API = "/api/v1"
EXPORT_HEADER = "Title,Author,Genres,PublishedDate,Rating,Edition,ISBN"


def csv_upload(content: str, filename: str = "books.csv", content_type: str = "text/csv") -> dict:
    return {"file": (filename, content.encode("utf-8"), content_type)}


async def create_book(client, headers, **overrides) -> dict:
    data = {
        "title": "Dune",
        "author": "Frank Herbert",
        "genres": ["Fiction"],
        "published_date": "1965",
        "rating": 5,
    }
    data.update(overrides)
    response = await client.post(f"{API}/books", json=data, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    async def test_health_check(self, client):
        """Test basic health check endpoint."""
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "connected"
        assert "X-Request-ID" in response.headers


class TestAuthEndpoints:
    """Tests for registration, login and identity."""

    async def test_register(self, client):
        response = await client.post(
            f"{API}/auth/register",
            json={
                "email": "New.Reader@Example.com",
                "password": "secret1",
                "confirm_password": "secret1",
                "display_name": "New Reader",
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["token"]
        assert data["token_type"] == "bearer"
        assert data["email"] == "new.reader@example.com"
        assert data["display_name"] == "New Reader"
        assert data["expires_at"]
        assert "auth-token" in response.cookies

    async def test_register_duplicate_email(self, client, register_user):
        await register_user("taken@example.com")

        response = await client.post(
            f"{API}/auth/register",
            json={"email": "TAKEN@example.com", "password": "secret1", "confirm_password": "secret1"},
        )

        assert response.status_code == 409
        assert response.json()["code"] == "CONFLICT"

    @pytest.mark.parametrize("payload", [
        {"email": "a@example.com", "password": "short", "confirm_password": "short"},
        {"email": "a@example.com", "password": "secret1", "confirm_password": "secret2"},
        {"email": "not-an-email", "password": "secret1", "confirm_password": "secret1"},
    ])
    async def test_register_validation(self, client, payload):
        response = await client.post(f"{API}/auth/register", json=payload)

        assert response.status_code == 422

    async def test_login_and_me(self, client, register_user):
        await register_user("reader@example.com")

        login = await client.post(
            f"{API}/auth/login",
            json={"email": "reader@example.com", "password": "correct-horse"},
        )
        assert login.status_code == 200
        token = login.json()["token"]
        client.cookies.clear()

        me = await client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert me.status_code == 200
        assert me.json()["email"] == "reader@example.com"
        assert me.json()["id"] == login.json()["user_id"]

    async def test_cookie_credential(self, client, register_user):
        await register_user("cookie@example.com")
        login = await client.post(
            f"{API}/auth/login",
            json={"email": "cookie@example.com", "password": "correct-horse"},
        )
        assert login.status_code == 200

        # The client keeps the auth cookie from the login response
        response = await client.get(f"{API}/auth/me")

        assert response.status_code == 200
        assert response.json()["email"] == "cookie@example.com"

    async def test_logout_clears_cookie(self, client, register_user):
        await register_user("leaving@example.com")
        await client.post(
            f"{API}/auth/login",
            json={"email": "leaving@example.com", "password": "correct-horse"},
        )

        response = await client.post(f"{API}/auth/logout")
        assert response.status_code == 204

        assert (await client.get(f"{API}/auth/me")).status_code == 401

    async def test_oauth2_token_form(self, client, register_user):
        await register_user("form@example.com")

        response = await client.post(
            f"{API}/auth/token",
            data={"username": "form@example.com", "password": "correct-horse"},
        )

        assert response.status_code == 200
        assert response.json()["token_type"] == "bearer"
        assert response.json()["access_token"]

    async def test_wrong_password_and_unknown_email_look_alike(self, client, register_user):
        await register_user("reader@example.com")

        wrong = await client.post(f"{API}/auth/login", json={"email": "reader@example.com", "password": "nope"})
        unknown = await client.post(f"{API}/auth/login", json={"email": "ghost@example.com", "password": "nope"})

        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json()["error"] == unknown.json()["error"] == "Incorrect email or password"


class TestAuthenticationBoundary:
    """Requests without a valid credential are rejected the same way."""

    @pytest.mark.parametrize("headers", [
        {},
        {"Authorization": "Bearer"},
        {"Authorization": "Bearer not.a.jwt"},
        {"Authorization": "Basic dXNlcjpwYXNz"},
    ])
    async def test_rejected(self, client, headers):
        response = await client.get(f"{API}/books", headers=headers)

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        body = response.json()
        assert body["error"] == "Could not validate credentials"
        assert body["code"] == "NOT_AUTHENTICATED"
        assert body["detail"] is None

    @pytest.mark.parametrize("method, path", [
        ("get", "/books/some-id"),
        ("get", "/stats"),
        ("get", "/genres"),
        ("get", "/export/books"),
        ("post", "/import/books"),
        ("get", "/auth/me"),
    ])
    async def test_protected_routes(self, client, method, path):
        response = await getattr(client, method)(f"{API}{path}")

        assert response.status_code == 401


class TestLockout:
    """Tests for the login lockout boundary."""

    async def login(self, client, password):
        return await client.post(
            f"{API}/auth/login",
            json={"email": "target@example.com", "password": password},
        )

    async def test_locks_after_limit(self, client, register_user):
        await register_user("target@example.com")

        for _ in range(4):
            assert (await self.login(client, "wrong")).status_code == 401

        fifth = await self.login(client, "wrong")
        assert fifth.status_code == 423
        assert fifth.json()["code"] == "ACCOUNT_LOCKED"

        # Correct password is refused while locked
        assert (await self.login(client, "correct-horse")).status_code == 423

    async def test_one_below_limit_does_not_lock(self, client, register_user):
        await register_user("target@example.com")

        for _ in range(4):
            await self.login(client, "wrong")

        assert (await self.login(client, "correct-horse")).status_code == 200

    async def test_success_resets_counter(self, client, register_user):
        await register_user("target@example.com")

        for _ in range(4):
            await self.login(client, "wrong")
        assert (await self.login(client, "correct-horse")).status_code == 200

        for _ in range(4):
            assert (await self.login(client, "wrong")).status_code == 401
        assert (await self.login(client, "correct-horse")).status_code == 200

    async def test_lock_expires(self, client, register_user, db_session):
        from datetime import timedelta

        from shelfkeeper.storage.models import utcnow
        from shelfkeeper.storage.user_repository import UserRepository

        await register_user("target@example.com")
        for _ in range(5):
            await self.login(client, "wrong")
        assert (await self.login(client, "correct-horse")).status_code == 423

        user = await UserRepository(db_session).get_by_email("target@example.com")
        user.locked_until = utcnow() - timedelta(seconds=1)
        await db_session.commit()

        assert (await self.login(client, "correct-horse")).status_code == 200


class TestBooksEndpoints:
    """Tests for book CRUD endpoints."""

    async def test_create_book(self, client, alice_headers, sample_book_data):
        """Test creating a new book."""
        response = await client.post(f"{API}/books", json=sample_book_data, headers=alice_headers)

        assert response.status_code == 201
        data = response.json()
        assert "id" in data
        assert data["title"] == sample_book_data["title"]
        assert sorted(data["genres"]) == ["Classic", "Fiction"]
        assert data["published_date"] == "1925-04-10"

    async def test_get_book_by_id(self, client, alice_headers, sample_book_data):
        """Test retrieving a book by ID."""
        created = await create_book(client, alice_headers, **sample_book_data)

        response = await client.get(f"{API}/books/{created['id']}", headers=alice_headers)

        assert response.status_code == 200
        assert response.json()["title"] == sample_book_data["title"]

    async def test_get_nonexistent_book(self, client, alice_headers):
        """Test retrieving a nonexistent book returns 404."""
        response = await client.get(f"{API}/books/nonexistent-id", headers=alice_headers)

        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    @pytest.mark.parametrize("overrides", [
        {"rating": 6},
        {"rating": 0},
        {"title": "   "},
        {"published_date": ""},
        {"genres": ["x" * 51]},
    ])
    async def test_create_validation(self, client, alice_headers, sample_book_data, overrides):
        sample_book_data.update(overrides)

        response = await client.post(f"{API}/books", json=sample_book_data, headers=alice_headers)

        assert response.status_code == 422

    async def test_update_book(self, client, alice_headers):
        created = await create_book(client, alice_headers, genres=["Fiction"])

        response = await client.put(
            f"{API}/books/{created['id']}",
            json={
                "title": "Dune Messiah",
                "author": "Frank Herbert",
                "genres": ["Science"],
                "published_date": "1969",
                "rating": 4,
            },
            headers=alice_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Dune Messiah"
        assert data["genres"] == ["Science"]
        assert data["rating"] == 4

    async def test_delete_book(self, client, alice_headers):
        created = await create_book(client, alice_headers)

        response = await client.delete(f"{API}/books/{created['id']}", headers=alice_headers)
        assert response.status_code == 204

        assert (await client.get(f"{API}/books/{created['id']}", headers=alice_headers)).status_code == 404

    async def test_list_books(self, client, alice_headers, sample_books_batch):
        """Test listing books with pagination."""
        for book in sample_books_batch:
            await create_book(client, alice_headers, **book)

        response = await client.get(
            f"{API}/books",
            params={"page": 1, "page_size": 2, "sort_by": "title", "sort_direction": "asc"},
            headers=alice_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert [b["title"] for b in data["items"]] == ["1984", "Pride and Prejudice"]
        assert data["total_items"] == 3
        assert data["total_pages"] == 2
        assert data["has_previous_page"] is False
        assert data["has_next_page"] is True

    async def test_list_filters(self, client, alice_headers, sample_books_batch):
        for book in sample_books_batch:
            await create_book(client, alice_headers, **book)

        by_genre = await client.get(
            f"{API}/books", params=[("genres", "dystopian"), ("genres", "Romance")], headers=alice_headers,
        )
        by_rating = await client.get(f"{API}/books", params={"rating": 4}, headers=alice_headers)
        by_search = await client.get(f"{API}/books", params={"search": "LEE"}, headers=alice_headers)

        assert {b["title"] for b in by_genre.json()["items"]} == {"1984", "Pride and Prejudice"}
        assert {b["title"] for b in by_rating.json()["items"]} == {"1984", "To Kill a Mockingbird"}
        assert [b["title"] for b in by_search.json()["items"]] == ["To Kill a Mockingbird"]

    async def test_list_rejects_bad_params(self, client, alice_headers):
        assert (await client.get(f"{API}/books", params={"page_size": 101}, headers=alice_headers)).status_code == 422
        assert (await client.get(f"{API}/books", params={"sort_by": "owner_id"}, headers=alice_headers)).status_code == 422

    async def test_empty_list(self, client, alice_headers):
        data = (await client.get(f"{API}/books", headers=alice_headers)).json()

        assert data["items"] == []
        assert data["total_items"] == 0
        assert data["total_pages"] == 0
        assert data["has_next_page"] is False


class TestOwnershipIsolation:
    """One user's books are invisible to another."""

    async def test_list_is_scoped(self, client, alice_headers, bob_headers):
        await create_book(client, alice_headers, title="Alice's")
        await create_book(client, bob_headers, title="Bob's")

        alice_titles = [b["title"] for b in (await client.get(f"{API}/books", headers=alice_headers)).json()["items"]]
        bob_titles = [b["title"] for b in (await client.get(f"{API}/books", headers=bob_headers)).json()["items"]]

        assert alice_titles == ["Alice's"]
        assert bob_titles == ["Bob's"]

    async def test_foreign_book_looks_missing(self, client, alice_headers, bob_headers):
        """Someone else's book answers exactly like a missing one."""
        book = await create_book(client, alice_headers)
        update = {"title": "Taken", "author": "Bob", "published_date": "2020", "rating": 1, "genres": []}

        foreign_get = await client.get(f"{API}/books/{book['id']}", headers=bob_headers)
        missing_get = await client.get(f"{API}/books/does-not-exist", headers=bob_headers)
        foreign_put = await client.put(f"{API}/books/{book['id']}", json=update, headers=bob_headers)
        foreign_delete = await client.delete(f"{API}/books/{book['id']}", headers=bob_headers)

        for response in (foreign_get, foreign_put, foreign_delete):
            assert response.status_code == missing_get.status_code == 404
            assert response.json()["error"] == missing_get.json()["error"]
            assert response.json()["code"] == missing_get.json()["code"]

        untouched = await client.get(f"{API}/books/{book['id']}", headers=alice_headers)
        assert untouched.json()["title"] == "Dune"

    async def test_stats_are_scoped(self, client, alice_headers, bob_headers):
        await create_book(client, alice_headers, title="A", rating=5, genres=["Fiction", "Classic"])
        await create_book(client, alice_headers, title="B", rating=2, genres=["Fiction"])
        await create_book(client, bob_headers, title="C", rating=1, genres=["History"])

        stats = (await client.get(f"{API}/stats", headers=alice_headers)).json()

        assert stats["total_books"] == 2
        assert stats["average_rating"] == 3.5
        assert stats["genre_distribution"] == [
            {"genre": "Fiction", "count": 2, "average_rating": 3.5},
            {"genre": "Classic", "count": 1, "average_rating": 5.0},
        ]

    async def test_genres_are_shared(self, client, alice_headers, bob_headers):
        await create_book(client, alice_headers, genres=["Cyberpunk"])

        response = await client.get(f"{API}/genres", params={"search": "cyber"}, headers=bob_headers)

        assert response.status_code == 200
        assert response.json() == [{"name": "Cyberpunk", "is_system_genre": False}]


class TestImportEndpoint:
    """Tests for POST /import/books."""

    async def test_import_scenario(self, client, alice_headers):
        content = (
            EXPORT_HEADER + "\n"
            "Dune,Herbert,,1965,5,,\n"
            "Dune,Herbert,,1965,4,,\n"
            ",NoTitle,,2000,3,,\n"
        )

        response = await client.post(f"{API}/import/books", files=csv_upload(content), headers=alice_headers)

        assert response.status_code == 200
        data = response.json()
        assert (data["total_rows"], data["created"], data["duplicates"], data["rejected"]) == (3, 1, 1, 1)
        assert [(r["row"], r["status"], r["reason"]) for r in data["rows"]] == [
            (1, "created", None),
            (2, "duplicate", "duplicate of row 1"),
            (3, "invalid", "missing title"),
        ]

        listed = (await client.get(f"{API}/books", headers=alice_headers)).json()
        assert listed["total_items"] == 1

    async def test_dedup_is_per_owner(self, client, alice_headers, bob_headers):
        await create_book(client, bob_headers, title="Dune", author="Frank Herbert")
        content = EXPORT_HEADER + "\nDune,Frank Herbert,,1965,5,,\n"

        response = await client.post(f"{API}/import/books", files=csv_upload(content), headers=alice_headers)

        assert response.json()["created"] == 1

    async def test_partial_success(self, client, alice_headers):
        content = EXPORT_HEADER + "\n" + "\n".join([
            "Good 1,Author,,2000,3,,",
            "Bad 1,Author,,2000,11,,",
            "Good 2,Author,,2000,4,,",
            "Bad 2,,,2000,4,,",
        ]) + "\n"

        data = (await client.post(f"{API}/import/books", files=csv_upload(content), headers=alice_headers)).json()

        assert data["created"] == 2
        assert data["rejected"] == 2
        assert [r["status"] for r in data["rows"]] == ["created", "invalid", "created", "invalid"]

    async def test_missing_header_column(self, client, alice_headers):
        response = await client.post(
            f"{API}/import/books", files=csv_upload("Title,Author\nDune,Herbert\n"), headers=alice_headers,
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_PAYLOAD"

    async def test_empty_file(self, client, alice_headers):
        response = await client.post(f"{API}/import/books", files=csv_upload(""), headers=alice_headers)

        assert response.status_code == 400

    async def test_unreadable_encoding(self, client, alice_headers):
        files = {"file": ("books.csv", EXPORT_HEADER.encode() + b"\n\xff\xfe,x,,1,1,,\n", "text/csv")}

        response = await client.post(f"{API}/import/books", files=files, headers=alice_headers)

        assert response.status_code == 400

    async def test_wrong_extension(self, client, alice_headers):
        response = await client.post(
            f"{API}/import/books",
            files=csv_upload(EXPORT_HEADER + "\n", filename="books.xlsx"),
            headers=alice_headers,
        )

        assert response.status_code == 415
        assert response.json()["code"] == "UNSUPPORTED_MEDIA_TYPE"

    async def test_wrong_content_type(self, client, alice_headers):
        response = await client.post(
            f"{API}/import/books",
            files=csv_upload(EXPORT_HEADER + "\n", content_type="image/png"),
            headers=alice_headers,
        )

        assert response.status_code == 415

    async def test_too_large(self, client, alice_headers, test_settings):
        row = "A Title,An Author,,2000,3,,\n"
        repeat = test_settings.max_upload_size_bytes // len(row) + 10
        content = EXPORT_HEADER + "\n" + row * repeat

        response = await client.post(f"{API}/import/books", files=csv_upload(content), headers=alice_headers)

        assert response.status_code == 413
        assert response.json()["code"] == "PAYLOAD_TOO_LARGE"
        assert (await client.get(f"{API}/books", headers=alice_headers)).json()["total_items"] == 0

    async def test_no_file(self, client, alice_headers):
        response = await client.post(f"{API}/import/books", headers=alice_headers)

        assert response.status_code == 400


class TestExportEndpoint:
    """Tests for GET /export/books."""

    async def test_export_empty_returns_template(self, client, alice_headers):
        response = await client.get(f"{API}/export/books", headers=alice_headers)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        lines = response.text.splitlines()
        comments = [line for line in lines if line.startswith("#")]
        data = [line for line in lines if line and not line.startswith("#")]
        assert comments
        assert data == [EXPORT_HEADER]

    async def test_export_filename(self, client, alice_headers):
        response = await client.get(f"{API}/export/books", headers=alice_headers)

        disposition = response.headers["content-disposition"]
        assert re.fullmatch(r'attachment; filename="library_export_\d{8}_\d{6}\.csv"', disposition)

    async def test_export_contents(self, client, alice_headers, bob_headers):
        await create_book(client, alice_headers, title="Zed", author="Z", genres=["Fiction", "Classic"], isbn="123")
        await create_book(client, alice_headers, title="Alpha", author="A", genres=[], edition="2nd")
        await create_book(client, bob_headers, title="Bob Only", author="B")

        response = await client.get(f"{API}/export/books", headers=alice_headers)

        rows = list(csv.reader(io.StringIO(response.text)))
        assert rows[0] == EXPORT_HEADER.split(",")
        assert rows[1] == ["Alpha", "A", "", "1965", "5", "2nd", ""]
        assert rows[2][0] == "Zed"
        assert sorted(rows[2][2].split(",")) == ["Classic", "Fiction"]
        assert rows[2][6] == "123"
        assert len(rows) == 3

    async def test_round_trip(self, client, alice_headers, sample_books_batch):
        """Re-importing an export creates nothing."""
        for book in sample_books_batch:
            await create_book(client, alice_headers, **book)
        await create_book(client, alice_headers, title="#1 Ladies' Detective Agency", author='Alexander "Sandy" McCall Smith')

        exported = (await client.get(f"{API}/export/books", headers=alice_headers)).text
        response = await client.post(f"{API}/import/books", files=csv_upload(exported), headers=alice_headers)

        data = response.json()
        assert data["total_rows"] == 4
        assert data["created"] == 0
        assert data["duplicates"] == 4
        assert all(r["reason"] == "already in collection" for r in data["rows"])

    async def test_template_reimports_cleanly(self, client, alice_headers):
        template = (await client.get(f"{API}/export/books", headers=alice_headers)).text

        response = await client.post(f"{API}/import/books", files=csv_upload(template), headers=alice_headers)

        assert response.status_code == 200
        assert response.json()["total_rows"] == 0
