"""
Memeflix Backend — API Integration Tests
=========================================

What:  End-to-end requests through the ASGI app: routing, parameter
       validation, status codes, headers and the error envelope.
How:   HTTPX AsyncClient over ASGITransport against a freshly seeded
       SQLite database (see conftest.SEED_MEMES).
"""

import pytest


class TestCatalogueEndpoints:

    @pytest.mark.asyncio
    async def test_list_shape_and_headers(self, test_client, seeded_memes):
        response = await test_client.get("/api/memes", params={"page": 1, "limit": 2})

        assert response.status_code == 200
        assert response.headers["X-Total-Count"] == "5"
        assert response.headers["X-Request-ID"]
        body = response.json()
        assert [meme["id"] for meme in body["memes"]] == [5, 4]
        assert body["pagination"] == {
            "current_page": 1, "total_pages": 3, "total_memes": 5, "limit": 2,
        }
        first = body["memes"][0]
        assert first["media_url"] == "/media/this_is_fine.jpg"
        assert first["score"] == 0
        assert set(first["tags"].split(",")) == {"fire", "classic"}

    @pytest.mark.asyncio
    async def test_default_limit(self, test_client, seeded_memes):
        response = await test_client.get("/api/memes")
        assert response.json()["pagination"]["limit"] == 12

    @pytest.mark.asyncio
    @pytest.mark.parametrize("params", [
        {"page": 0},
        {"limit": -1},
        {"limit": 0},
        {"page": "abc"},
        {"page": 1, "limit": "ten"},
        {"limit": 10**20},
        {"page": 10**20},
        {"limit": 1001},
    ])
    async def test_invalid_pagination_is_400(self, test_client, seeded_memes, params):
        response = await test_client.get("/api/memes", params=params)

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["message"] == "Invalid page or limit parameter."
        assert body["request_id"] == response.headers["X-Request-ID"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", [
        "/api/memes/100000000000000000000",
        "/api/memes/100000000000000000000/related-tags",
        "/api/memes/by-tag/cats?limit=100000000000000000000",
        "/api/memes/1/related-tags?limit=100000000000000000000",
        "/api/tags/popular?limit=100000000000000000000",
        "/api/memes/search?q=cat&limit=100000000000000000000",
    ])
    async def test_oversized_integers_are_400(self, test_client, seeded_memes, path):
        response = await test_client.get(path)

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_largest_limit_is_accepted(self, test_client, seeded_memes):
        response = await test_client.get("/api/memes", params={"limit": 1000})
        assert response.status_code == 200
        assert response.json()["pagination"]["total_pages"] == 1

    @pytest.mark.asyncio
    async def test_search_combines_filters(self, test_client, seeded_memes):
        response = await test_client.get(
            "/api/memes/search", params={"q": "cat", "tag": "CLASSIC", "sort": "score"}
        )
        assert response.status_code == 200
        assert [meme["id"] for meme in response.json()["memes"]] == [4]
        assert response.headers["X-Total-Count"] == "1"

    @pytest.mark.asyncio
    async def test_search_ignores_unknown_type_and_sort(self, test_client, seeded_memes):
        response = await test_client.get(
            "/api/memes/search", params={"type": "pdf", "sort": "sideways"}
        )
        assert [meme["id"] for meme in response.json()["memes"]] == [5, 4, 3, 2, 1]

    @pytest.mark.asyncio
    async def test_search_pagination_is_validated(self, test_client, seeded_memes):
        response = await test_client.get("/api/memes/search", params={"q": "cat", "page": 0})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_literal_paths_are_not_ids(self, test_client, seeded_memes):
        random_response = await test_client.get("/api/memes/random")
        row_response = await test_client.get("/api/memes/by-tag/cats", params={"limit": 10})

        assert random_response.status_code == 200
        assert random_response.json()["id"] in seeded_memes.values()
        assert {meme["id"] for meme in row_response.json()["memes"]} == {2, 4}

    @pytest.mark.asyncio
    async def test_get_meme(self, test_client, seeded_memes):
        response = await test_client.get("/api/memes/3")
        assert response.status_code == 200
        assert response.json()["title"] == "Surprised Pikachu"

    @pytest.mark.asyncio
    async def test_unknown_meme_uses_error_envelope(self, test_client, seeded_memes):
        response = await test_client.get("/api/memes/999")

        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "not_found"
        assert "999" in body["message"]
        assert body["request_id"]

    @pytest.mark.asyncio
    async def test_related_tags(self, test_client, seeded_memes):
        response = await test_client.get("/api/memes/2/related-tags")
        assert response.json() == {"tags": ["classic", "anime", "music"]}

    @pytest.mark.asyncio
    async def test_tag_listings(self, test_client, seeded_memes):
        popular = await test_client.get("/api/tags/popular", params={"limit": 1})
        everything = await test_client.get("/api/tags/all")

        assert popular.json() == {"tags": [{"name": "classic", "meme_count": 4}]}
        assert len(everything.json()["tags"]) == 7

    @pytest.mark.asyncio
    async def test_empty_catalogue_random_is_404(self, test_client):
        response = await test_client.get("/api/memes/random")
        assert response.status_code == 404


class TestVoteEndpoints:

    @pytest.mark.asyncio
    async def test_vote_lifecycle(self, test_client, seeded_memes, auth_headers):
        # this_is_fine.jpg starts at 2 up / 2 down
        first = await test_client.post("/api/memes/5/upvote", headers=auth_headers)
        assert first.status_code == 201
        assert first.json()["action"] == "recorded"
        assert (first.json()["upvotes"], first.json()["downvotes"]) == (3, 2)

        repeat = await test_client.post("/api/memes/5/upvote", headers=auth_headers)
        assert repeat.status_code == 200
        assert repeat.json()["action"] == "removed"
        assert repeat.json()["user_vote"] is None
        assert repeat.json()["upvotes"] == 2

        down = await test_client.post("/api/memes/5/downvote", headers=auth_headers)
        assert down.status_code == 201
        flip = await test_client.post("/api/memes/5/upvote", headers=auth_headers)
        assert flip.status_code == 200
        assert flip.json()["action"] == "changed"
        assert (flip.json()["upvotes"], flip.json()["downvotes"], flip.json()["score"]) == (3, 2, 1)

        detail = await test_client.get("/api/memes/5")
        assert detail.json()["score"] == 1

        votes = await test_client.get("/api/votes", headers=auth_headers)
        assert votes.json() == {"votes": [{"meme_id": 5, "vote_type": "up"}]}

    @pytest.mark.asyncio
    async def test_votes_from_two_users_add_up(self, test_client, seeded_memes, login_as):
        alice = await login_as("alice")
        bob = await login_as("bob")

        await test_client.post("/api/memes/4/upvote", headers=alice)
        response = await test_client.post("/api/memes/4/upvote", headers=bob)

        assert response.json()["upvotes"] == 2

    @pytest.mark.asyncio
    async def test_vote_requires_token(self, test_client, seeded_memes):
        response = await test_client.post("/api/memes/5/upvote")
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_vote_with_bad_token(self, test_client, seeded_memes):
        response = await test_client.post(
            "/api/memes/5/upvote", headers={"Authorization": "Bearer nope"}
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_vote_on_missing_meme(self, test_client, seeded_memes, auth_headers):
        response = await test_client.post("/api/memes/999/downvote", headers=auth_headers)
        assert response.status_code == 404

        votes = await test_client.get("/api/votes", headers=auth_headers)
        assert votes.json() == {"votes": []}


class TestFavoritesAndHistoryEndpoints:

    @pytest.mark.asyncio
    async def test_favorites_flow(self, test_client, seeded_memes, auth_headers):
        added = await test_client.post("/api/favorites", json={"memeId": 3}, headers=auth_headers)
        again = await test_client.post("/api/favorites", json={"meme_id": 3}, headers=auth_headers)
        assert added.status_code == 201
        assert again.status_code == 200

        listing = await test_client.get("/api/favorites", headers=auth_headers)
        assert [meme["id"] for meme in listing.json()["memes"]] == [3]
        ids = await test_client.get("/api/favorites/ids", headers=auth_headers)
        assert ids.json() == {"meme_ids": [3]}

        removed = await test_client.delete("/api/favorites/3", headers=auth_headers)
        assert removed.status_code == 200
        missing = await test_client.delete("/api/favorites/3", headers=auth_headers)
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_favorite_missing_meme(self, test_client, seeded_memes, auth_headers):
        response = await test_client.post("/api/favorites", json={"memeId": 999}, headers=auth_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_favorite_bad_body(self, test_client, seeded_memes, auth_headers):
        response = await test_client.post("/api/favorites", json={"memeId": "x"}, headers=auth_headers)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_oversized_ids_are_400(self, test_client, seeded_memes, auth_headers):
        huge = 10**20
        add = await test_client.post("/api/favorites", json={"memeId": huge}, headers=auth_headers)
        view = await test_client.post("/api/history", json={"memeId": huge}, headers=auth_headers)
        remove = await test_client.delete(f"/api/favorites/{huge}", headers=auth_headers)
        vote = await test_client.post(f"/api/memes/{huge}/upvote", headers=auth_headers)
        history = await test_client.get("/api/history", params={"limit": huge}, headers=auth_headers)

        for response in (add, view, remove, vote, history):
            assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_favorites_are_per_user(self, test_client, seeded_memes, login_as):
        alice = await login_as("alice")
        bob = await login_as("bob")
        await test_client.post("/api/favorites", json={"memeId": 1}, headers=alice)

        response = await test_client.get("/api/favorites", headers=bob)
        assert response.json() == {"memes": []}

    @pytest.mark.asyncio
    async def test_history_flow(self, test_client, seeded_memes, auth_headers):
        for meme_id in (1, 2, 1):
            response = await test_client.post(
                "/api/history", json={"memeId": meme_id}, headers=auth_headers
            )
            assert response.status_code == 201

        history = await test_client.get("/api/history", headers=auth_headers)
        memes = history.json()["memes"]
        assert [meme["id"] for meme in memes] == [1, 2]
        assert "last_viewed_at" in memes[0]

        ids = await test_client.get("/api/history/ids", headers=auth_headers)
        assert ids.json() == {"meme_ids": [1, 2]}

    @pytest.mark.asyncio
    async def test_history_requires_token(self, test_client, seeded_memes):
        response = await test_client.get("/api/history")
        assert response.status_code == 401


class TestHealthEndpoint:

    @pytest.mark.asyncio
    async def test_health(self, test_client, media_dir):
        response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["media"] == "available"
