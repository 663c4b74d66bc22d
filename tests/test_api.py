"""HTTP API tests."""

import pytest
from httpx import AsyncClient

USER = {"X-User-Id": "learner-1"}
OTHER = {"X-User-Id": "learner-2"}


async def _create_item(client: AsyncClient, item_id: str = "err-1", headers: dict[str, str] = USER) -> dict:
    response = await client.post(
        "/api/srs/items",
        json={
            "item_id": item_id,
            "language": "ro",
            "original": "eu merge",
            "correct_answer": "eu merg",
            "context": "Eu merg la școală.",
            "error_type": "grammar",
        },
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
@pytest.mark.parametrize("headers", [{}, {"X-User-Id": "  "}])
async def test_user_header_required(client: AsyncClient, headers: dict[str, str]) -> None:
    response = await client.get("/api/srs/due", headers=headers)
    assert response.status_code == 401


class TestReviewRoutes:
    @pytest.mark.asyncio
    async def test_create_and_fetch(self, client: AsyncClient) -> None:
        created = await _create_item(client)
        assert created["easiness_factor"] == 2.5
        assert created["repetition_count"] == 0
        assert created["user_id"] == "learner-1"

        response = await client.get("/api/srs/items/err-1", headers=USER)
        assert response.status_code == 200
        assert response.json()["correct_answer"] == "eu merg"

    @pytest.mark.asyncio
    async def test_duplicate_is_conflict(self, client: AsyncClient) -> None:
        await _create_item(client)
        response = await client.post(
            "/api/srs/items",
            json={"item_id": "err-1", "language": "ro", "original": "a", "correct_answer": "b"},
            headers=USER,
        )
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_invalid_language(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/srs/items",
            json={"language": "xx", "original": "a", "correct_answer": "b"},
            headers=USER,
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_review_reschedules(self, client: AsyncClient) -> None:
        await _create_item(client)
        due = await client.get("/api/srs/due", headers=USER)
        assert [item["item_id"] for item in due.json()] == ["err-1"]

        response = await client.post("/api/srs/review", json={"item_id": "err-1", "quality": 5}, headers=USER)
        assert response.status_code == 200
        body = response.json()
        assert body["repetition_count"] == 1
        assert body["interval_days"] == 1

        due = await client.get("/api/srs/due", headers=USER)
        assert due.json() == []

        history = await client.get("/api/srs/items/err-1/history", headers=USER)
        assert [log["quality"] for log in history.json()] == [5]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("quality", [6, -1, True, "5", 5.0, None])
    async def test_review_rejects_quality(self, client: AsyncClient, quality: object) -> None:
        await _create_item(client)
        response = await client.post(
            "/api/srs/review", json={"item_id": "err-1", "quality": quality}, headers=USER
        )
        assert response.status_code == 400

        item = await client.get("/api/srs/items/err-1", headers=USER)
        assert item.json()["repetition_count"] == 0

    @pytest.mark.asyncio
    async def test_review_missing_item(self, client: AsyncClient) -> None:
        response = await client.post("/api/srs/review", json={"item_id": "nope", "quality": 3}, headers=USER)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_other_users_item_is_hidden(self, client: AsyncClient) -> None:
        await _create_item(client)
        assert (await client.get("/api/srs/items/err-1", headers=OTHER)).status_code == 404
        response = await client.post("/api/srs/review", json={"item_id": "err-1", "quality": 5}, headers=OTHER)
        assert response.status_code == 404
        assert (await client.get("/api/srs/due", headers=OTHER)).json() == []

    @pytest.mark.asyncio
    async def test_stats(self, client: AsyncClient) -> None:
        await _create_item(client, "a")
        await _create_item(client, "b")
        await client.post("/api/srs/review", json={"item_id": "a", "quality": 4}, headers=USER)

        response = await client.get("/api/srs/stats", params={"language": "ro"}, headers=USER)
        assert response.status_code == 200
        stats = response.json()
        assert stats["total_count"] == 2
        assert stats["due_count"] == 1
        assert stats["new_items"] == 1
        assert stats["average_interval"] == 0.5

    @pytest.mark.asyncio
    async def test_reharvest_and_list(self, client: AsyncClient) -> None:
        await _create_item(client, "a")
        await _create_item(client, "b")
        response = await client.post("/api/srs/items/a/occurrences", headers=USER)
        assert response.status_code == 200
        assert response.json()["occurrences"] == 2

        listed = await client.get("/api/srs/items", params={"error_type": "grammar", "limit": 1}, headers=USER)
        assert [item["item_id"] for item in listed.json()] == ["a"]
        second_page = await client.get("/api/srs/items", params={"limit": 1, "offset": 1}, headers=USER)
        assert [item["item_id"] for item in second_page.json()] == ["b"]

        bad_type = await client.get("/api/srs/items", params={"error_type": "spelling"}, headers=USER)
        assert bad_type.status_code == 400

    @pytest.mark.asyncio
    async def test_reharvest_other_users_item(self, client: AsyncClient) -> None:
        await _create_item(client)
        response = await client.post("/api/srs/items/err-1/occurrences", headers=OTHER)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_error_stats(self, client: AsyncClient) -> None:
        await _create_item(client, "a")
        await client.post(
            "/api/srs/items",
            json={"language": "ko", "original": "학교가", "correct_answer": "학교에"},
            headers=USER,
        )
        response = await client.get("/api/srs/errors/stats", headers=USER)
        assert response.status_code == 200
        assert response.json() == {
            "total": 2,
            "by_type": {"grammar": 1, "vocabulary": 1},
            "by_language": {"ko": 1, "ro": 1},
        }


class TestEncounterRoutes:
    @pytest.mark.asyncio
    async def test_third_encounter_unlocks(self, client: AsyncClient) -> None:
        for _ in range(3):
            response = await client.post(
                "/api/encounters",
                json={"word": "Mulțumesc", "language": "ro", "context": "Mulțumesc frumos!"},
                headers=USER,
            )
            assert response.status_code == 200
        body = response.json()
        assert body["word"] == "mulțumesc"
        assert body["encounter_count"] == 3
        assert body["definition_unlocked"] is True

        response = await client.get("/api/encounters/ro/mulțumesc", headers=USER)
        assert response.json()["context"] == "Mulțumesc frumos!"

    @pytest.mark.asyncio
    async def test_explicit_unlock(self, client: AsyncClient) -> None:
        await client.post("/api/encounters", json={"word": "bunică", "language": "ro"}, headers=USER)
        response = await client.patch(
            "/api/encounters",
            json={"word": "bunică", "language": "ro", "action": "self-discovered"},
            headers=USER,
        )
        assert response.status_code == 200
        assert response.json()["self_discovered"] is True
        assert response.json()["definition_unlocked"] is True

    @pytest.mark.asyncio
    async def test_unlock_unseen_word(self, client: AsyncClient) -> None:
        response = await client.patch(
            "/api/encounters", json={"word": "bunică", "language": "ro", "action": "lookup"}, headers=USER
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_unknown_action(self, client: AsyncClient) -> None:
        response = await client.patch(
            "/api/encounters", json={"word": "bunică", "language": "ro", "action": "guess"}, headers=USER
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_unseen_word_lookup(self, client: AsyncClient) -> None:
        response = await client.get("/api/encounters/ro/nimic", headers=USER)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_empty_word_rejected(self, client: AsyncClient) -> None:
        response = await client.post("/api/encounters", json={"word": "  ", "language": "ro"}, headers=USER)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_list_and_stats(self, client: AsyncClient) -> None:
        await client.post("/api/encounters", json={"word": "mama", "language": "ro"}, headers=USER)
        await client.post("/api/encounters", json={"word": "엄마", "language": "ko"}, headers=USER)

        listed = await client.get("/api/encounters", params={"language": "ko"}, headers=USER)
        assert [r["word"] for r in listed.json()] == ["엄마"]

        stats = await client.get("/api/encounters/stats", headers=USER)
        assert stats.json()["total"] == 2
        assert stats.json()["pending_unlock"] == 2


class TestVocabularyRoutes:
    @pytest.mark.asyncio
    async def test_gap(self, client: AsyncClient) -> None:
        for _ in range(5):
            await client.post(
                "/api/vocabulary", json={"word": "carte", "language": "ro", "type": "recognition"}, headers=USER
            )
        await client.post("/api/vocabulary", json={"word": "casă", "language": "ro", "type": "recognition"}, headers=USER)
        await client.post("/api/vocabulary", json={"word": "casă", "language": "ro", "type": "production"}, headers=USER)

        response = await client.get("/api/vocabulary/gap", params={"language": "ro"}, headers=USER)
        assert response.status_code == 200
        gap = response.json()
        assert gap["gap_percentage"] == 50
        assert gap["both_count"] == 1
        assert [(w["word"], w["recognition_count"]) for w in gap["focus_words"]] == [("carte", 5)]

    @pytest.mark.asyncio
    async def test_empty_gap(self, client: AsyncClient) -> None:
        response = await client.get("/api/vocabulary/gap", headers=USER)
        assert response.json()["gap_percentage"] == 0
        assert response.json()["focus_words"] == []

    @pytest.mark.asyncio
    async def test_stats_and_list(self, client: AsyncClient) -> None:
        await client.post("/api/vocabulary", json={"word": "drum", "language": "ro", "type": "production"}, headers=USER)

        stats = await client.get("/api/vocabulary/stats", headers=USER)
        assert stats.json() == {"total_words": 1, "recognized": 0, "produced": 1, "gap_words": 0}

        listed = await client.get("/api/vocabulary", headers=USER)
        assert [s["word"] for s in listed.json()] == ["drum"]
        assert (await client.get("/api/vocabulary", headers=OTHER)).json() == []

    @pytest.mark.asyncio
    async def test_unknown_event_type(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/vocabulary", json={"word": "drum", "language": "ro", "type": "reading"}, headers=USER
        )
        assert response.status_code == 422
