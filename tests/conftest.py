"""
Pytest configuration and fixtures
"""
import json
import os
import sys
from pathlib import Path

import httpx
import pytest

# Add project root to path for imports
project_root = Path(__file__).resolve().parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

# Settings are read once and cached, so the environment must be in place before importing the app
os.environ.update({
    "SANITY_PROJECT_ID": "testproj",
    "SANITY_DATASET": "production",
    "CAPTCHA_SITE_KEY": "site-key-123",
    "CAPTCHA_SECRET": "captcha-secret",
    "MJ_APIKEY_PUBLIC": "mj-public",
    "MJ_APIKEY_PRIVATE": "mj-private",
    "CAT_API_KEY": "cat-key",
    "JWT_SECRET": "test-jwt-secret",
    "ADMIN_EMAIL": "admin@ebox86.com",
    "ADMIN_PASSWORD": "correct-horse",
    "LOG_FORMAT": "text",
})

from fastapi.testclient import TestClient  # noqa: E402

from cache import PageCache  # noqa: E402
from cms import SanityClient  # noqa: E402
from config import get_settings  # noqa: E402

get_settings.cache_clear()

import main  # noqa: E402


class FakeCms:
    """Answers GROQ queries from a table keyed by query text.

    Values are either the result itself or a callable taking the decoded
    `$params` dict. Unknown queries answer null.
    """

    def __init__(self):
        self.results = {}
        self.requests = []
        self.fail_with = None

    def on(self, query, result):
        self.results[query] = result
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with is not None:
            return httpx.Response(self.fail_with, json={"error": "boom"})
        query = request.url.params["query"]
        params = {
            key[1:]: json.loads(value)
            for key, value in request.url.params.items()
            if key.startswith("$")
        }
        result = self.results.get(query)
        if callable(result):
            result = result(params)
        return httpx.Response(200, json={"query": query, "result": result})

    def client(self) -> SanityClient:
        return SanityClient("testproj", transport=httpx.MockTransport(self.handler))


@pytest.fixture
def cms():
    return FakeCms()


@pytest.fixture
def page_cache():
    return PageCache(revalidate_seconds=600)


@pytest.fixture
def client(cms, page_cache):
    """TestClient with the content API and page cache swapped out"""
    main.app.dependency_overrides[main.get_cms] = cms.client
    main.app.dependency_overrides[main.get_page_cache] = lambda: page_cache
    with TestClient(main.app) as test_client:
        yield test_client
    main.app.dependency_overrides.clear()


def make_post(n, **extra):
    post = {
        "_id": f"post-{n}",
        "title": f"Post {n}",
        "slug": {"current": f"post-{n}"},
        "publishedAt": f"2024-01-{n:02d}T10:00:00Z",
        "body": [{
            "_type": "block", "_key": f"b{n}", "style": "normal", "markDefs": [],
            "children": [{"_type": "span", "_key": f"s{n}", "text": f"Body of post {n}", "marks": []}],
        }],
        "categories": [{"_id": "cat-1", "title": "Tech"}],
    }
    post.update(extra)
    return post


@pytest.fixture
def post_factory():
    return make_post
