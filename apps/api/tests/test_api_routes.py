import secrets
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy import func
from sqlalchemy.future import select

from config import settings
from database import get_db
from ingestion.mirror import MirrorFetcher
from ingestion.types import MirrorConfig
from llm.client import CompletionClient, CompletionConfig
from main import app
from models.post import Post
from services.session_token import SESSION_TOKEN_TYPE


ALICE_ID = "alice-user"
MALLORY_ID = "mallory-user"


def _auth_header(user_id, token_type=SESSION_TOKEN_TYPE):
    issued_at = datetime.now(timezone.utc)
    claims = {
        "sub": user_id,
        "type": token_type,
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + timedelta(hours=1)).timestamp()),
    }
    token = jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return {"Authorization": f"Bearer {token}"}


ALICE_AUTH_HEADER = _auth_header(ALICE_ID)
MALLORY_AUTH_HEADER = _auth_header(MALLORY_ID)


def _mirror_fetcher(items_by_username):
    def handler(request):
        username = request.url.params.get("u")
        if username not in items_by_username:
            return httpx.Response(404, text="unknown profile")
        return httpx.Response(200, json={"items": items_by_username[username]})

    return MirrorFetcher(
        MirrorConfig(endpoints=("https://mirror.test",)),
        transport=httpx.MockTransport(handler),
    )


def _gemini_client(text="Resumo gerado.", api_key="test-gemini-key"):
    def handler(request):
        return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": text}]}}]})

    return CompletionClient(
        CompletionConfig(api_key=api_key, api_url="https://gemini.test/v1beta/models"),
        transport=httpx.MockTransport(handler),
    )


def _raw_items(count):
    return [
        {"uri": f"https://instagram.com/p/{index}", "content": f"Photo {index}", "author": "alice", "timestamp": 1700000000 + index}
        for index in range(count)
    ]


@pytest_asyncio.fixture
async def api_client(session_maker):
    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    with patch("services.feed_sync.async_session_maker", session_maker):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            yield client, session_maker

    app.dependency_overrides.pop(get_db, None)


async def _add_feed(client, username="alice", headers=ALICE_AUTH_HEADER):
    return await client.post(
        "/feeds",
        json={"platform": "instagram", "profile_url": f"https://instagram.com/{username}", "username": username},
        headers=headers,
    )


@pytest.mark.asyncio
async def test_add_feed_inserts_at_most_ten_initial_posts(api_client):
    client, session_maker = api_client
    with patch("services.feed_sync.get_mirror_fetcher", return_value=_mirror_fetcher({"alice": _raw_items(12)})):
        response = await _add_feed(client)

    assert response.status_code == 200
    body = response.json()
    assert body["feed"]["platform"] == "instagram"
    assert body["feed"]["username"] == "alice"
    assert body["initial_sync"]["status"] == "updated"
    assert body["initial_sync"]["fetched_count"] == 12
    assert body["initial_sync"]["inserted_count"] == 10

    async with session_maker() as db:
        count = (await db.execute(select(func.count(Post.id)))).scalar()
    assert count == 10


@pytest.mark.asyncio
async def test_add_feed_succeeds_when_mirror_is_down(api_client):
    client, _ = api_client
    with patch("services.feed_sync.get_mirror_fetcher", return_value=_mirror_fetcher({})):
        response = await client.post(
            "/feeds",
            json={"platform": "twitter", "profile_url": "https://twitter.com/ghost/"},
            headers=ALICE_AUTH_HEADER,
        )

    assert response.status_code == 200
    body = response.json()
    assert body["feed"]["username"] == "ghost"
    assert body["initial_sync"]["status"] == "skipped"


@pytest.mark.asyncio
async def test_add_feed_rejects_unknown_platform_and_missing_token(api_client):
    client, _ = api_client
    bad_platform = await client.post(
        "/feeds",
        json={"platform": "myspace", "profile_url": "https://myspace.com/tom"},
        headers=ALICE_AUTH_HEADER,
    )
    no_token = await client.post("/feeds", json={"platform": "instagram", "profile_url": "https://instagram.com/a"})

    assert bad_platform.status_code == 422
    assert no_token.status_code == 401


@pytest.mark.asyncio
async def test_token_of_another_type_is_rejected(api_client):
    client, _ = api_client
    response = await client.get("/feeds/posts", headers=_auth_header(ALICE_ID, token_type="refresh"))

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid session token type."


@pytest.mark.asyncio
async def test_list_posts_returns_only_callers_posts(api_client):
    client, _ = api_client
    with patch("services.feed_sync.get_mirror_fetcher", return_value=_mirror_fetcher({"alice": _raw_items(3)})):
        await _add_feed(client)

    mine = await client.get("/feeds/posts", headers=ALICE_AUTH_HEADER)
    theirs = await client.get("/feeds/posts", headers=MALLORY_AUTH_HEADER)

    assert mine.status_code == 200
    assert [row["description"] for row in mine.json()] == ["Photo 2", "Photo 1", "Photo 0"]
    assert theirs.json() == []


@pytest.mark.asyncio
async def test_cron_trigger_requires_secret(api_client):
    client, _ = api_client
    response = await client.post("/cron/trigger", headers={"x-cron-secret": "wrong"})

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


@pytest.mark.asyncio
async def test_cron_trigger_compares_secret_in_constant_time(api_client):
    client, _ = api_client
    with (
        patch("routers.cron.settings.CRON_SECRET", "s3cret"),
        patch("routers.cron.secrets.compare_digest", wraps=secrets.compare_digest) as compare,
    ):
        prefix = await client.post("/cron/trigger", headers={"x-cron-secret": "s3c"})
        missing = await client.post("/cron/trigger")

    assert prefix.status_code == 401
    assert missing.status_code == 401
    assert compare.call_count == 2


@pytest.mark.asyncio
async def test_cron_trigger_without_feeds(api_client):
    client, _ = api_client
    with patch("routers.cron.settings.CRON_SECRET", "s3cret"):
        response = await client.post("/cron/trigger", headers={"x-cron-secret": "s3cret"})

    assert response.status_code == 200
    assert response.json()["message"] == "No feeds to update"
    assert response.json()["updated"] == 0


@pytest.mark.asyncio
async def test_cron_trigger_reports_partial_results(api_client):
    client, _ = api_client
    setup_fetcher = _mirror_fetcher({"alice": [], "ghost": []})
    with patch("services.feed_sync.get_mirror_fetcher", return_value=setup_fetcher):
        await _add_feed(client, "alice")
        await _add_feed(client, "ghost")

    sync_fetcher = _mirror_fetcher({"alice": _raw_items(25)})
    with (
        patch("routers.cron.settings.CRON_SECRET", "s3cret"),
        patch("services.feed_sync.get_mirror_fetcher", return_value=sync_fetcher),
    ):
        response = await client.post("/cron/trigger", headers={"x-cron-secret": "s3cret"})

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Cron job completed"
    assert body["updated"] == 1
    assert body["total"] == 2
    by_user = {row["username"]: row for row in body["results"]}
    assert by_user["alice"]["inserted_count"] == 20
    assert by_user["ghost"]["status"] == "skipped"


@pytest.mark.asyncio
async def test_cron_trigger_unexpected_failure_returns_500(api_client):
    client, _ = api_client
    with (
        patch("routers.cron.settings.CRON_SECRET", "s3cret"),
        patch("routers.cron.run_feed_sync_service", side_effect=RuntimeError("database unavailable")),
    ):
        response = await client.post("/cron/trigger", headers={"x-cron-secret": "s3cret"})

    assert response.status_code == 500
    assert response.json() == {"error": "Cron job failed", "message": "database unavailable"}


@pytest.mark.asyncio
async def test_ai_endpoints_scope_posts_to_owner(api_client):
    client, _ = api_client
    with patch("services.feed_sync.get_mirror_fetcher", return_value=_mirror_fetcher({"alice": _raw_items(1)})):
        await _add_feed(client)
    post_id = (await client.get("/feeds/posts", headers=ALICE_AUTH_HEADER)).json()[0]["id"]

    with patch("services.enrichment.get_completion_client", return_value=_gemini_client("Uma foto.")):
        own = await client.post("/ai/summarize-post", json={"post_id": post_id}, headers=ALICE_AUTH_HEADER)
        replies = await client.post("/ai/suggest-replies", json={"post_id": post_id}, headers=ALICE_AUTH_HEADER)
        foreign = await client.post("/ai/summarize-post", json={"post_id": post_id}, headers=MALLORY_AUTH_HEADER)
        missing = await client.post("/ai/suggest-replies", json={"post_id": "nope"}, headers=MALLORY_AUTH_HEADER)

    assert own.status_code == 200
    assert own.json() == {"summary": "Uma foto."}
    assert replies.json() == {"suggestions": "Uma foto."}
    assert foreign.status_code == 404
    assert foreign.json()["detail"] == "Post not found or unauthorized"
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_ai_summarize_feed_empty_state_and_missing_key(api_client):
    client, _ = api_client
    with patch("services.enrichment.get_completion_client", return_value=_gemini_client(api_key="")):
        empty = await client.post("/ai/summarize-feed", headers=ALICE_AUTH_HEADER)
        assert empty.status_code == 200
        assert empty.json() == {"summary": "No feeds available to summarize."}

        with patch("services.feed_sync.get_mirror_fetcher", return_value=_mirror_fetcher({"alice": _raw_items(2)})):
            await _add_feed(client)
        unconfigured = await client.post("/ai/summarize-feed", headers=ALICE_AUTH_HEADER)

    assert unconfigured.status_code == 503
    assert unconfigured.json()["detail"] == "GEMINI_API_KEY not configured"


@pytest.mark.asyncio
async def test_ai_completion_failure_maps_to_bad_gateway(api_client):
    client, _ = api_client
    with patch("services.feed_sync.get_mirror_fetcher", return_value=_mirror_fetcher({"alice": _raw_items(1)})):
        await _add_feed(client)

    async def no_sleep(_seconds):
        return None

    failing = CompletionClient(
        CompletionConfig(api_key="k", api_url="https://gemini.test/v1beta/models"),
        transport=httpx.MockTransport(lambda request: httpx.Response(500, text="down")),
        sleep=no_sleep,
    )
    with patch("services.enrichment.get_completion_client", return_value=failing):
        response = await client.post("/ai/summarize-feed", headers=ALICE_AUTH_HEADER)

    assert response.status_code == 502
    assert response.json()["detail"].startswith("Gemini API error:")
