import json

import httpx
import pytest

import main
from cms import POSTS_PAGE_QUERY, ContentError, SanityClient
from schemas import Post


def client_for(handler, **kwargs):
    return SanityClient("testproj", transport=httpx.MockTransport(handler), **kwargs)


def test_fetch_encodes_params_as_json():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"result": [{"_id": "a"}]})

    result = client_for(handler).fetch(POSTS_PAGE_QUERY, {"start": 0, "end": 10, "slug": "hello"})

    assert result == [{"_id": "a"}]
    url = seen[0].url
    assert url.host == "testproj.apicdn.sanity.io"
    assert url.path == "/v2021-08-31/data/query/production"
    assert url.params["query"] == POSTS_PAGE_QUERY
    assert url.params["$start"] == "0"
    assert url.params["$slug"] == json.dumps("hello")


def test_token_bypasses_cdn():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"result": None})

    client_for(handler, token="read-token").fetch("*[0]")
    assert seen[0].url.host == "testproj.api.sanity.io"
    assert seen[0].headers["authorization"] == "Bearer read-token"


def test_http_errors_become_content_errors():
    client = client_for(lambda request: httpx.Response(403, json={"error": "forbidden"}))
    with pytest.raises(ContentError) as exc:
        client.fetch("*")
    assert exc.value.status_code == 403


def test_transport_errors_become_content_errors():
    def handler(request):
        raise httpx.ConnectError("no route", request=request)

    with pytest.raises(ContentError) as exc:
        client_for(handler).fetch("*")
    assert exc.value.status_code is None


def test_get_documents_without_client():
    assert main.get_documents(None, "*", default=[]) == []


def test_parse_many_skips_invalid_documents():
    posts = main.parse_many(Post, [{"_id": "ok", "title": "Fine"}, {"_id": "bad", "publishedAt": "not a date"}])
    assert [p.id for p in posts] == ["ok"]
    assert main.parse_one(Post, None) is None
