import json

import httpx
import pytest

from kuzzle_sdk import Config, Kuzzle, KuzzleRequest
from kuzzle_sdk.errors import KuzzleConnectionError, KuzzleError, SdkError
from kuzzle_sdk.transports.http import HttpTransport, load_routes


def make_client(handler, **config) -> Kuzzle:
    transport = HttpTransport(
        "http://kuzzle.test:7512",
        client_transport=httpx.MockTransport(handler),
    )
    return Kuzzle(transport, Config(protocol="http", auto_reconnect=False, **config))


def test_packaged_routes_load():
    routes = load_routes()
    assert routes["server"]["now"] == {"verb": "GET", "url": "/_now"}
    assert routes["document"]["get"]["url"] == "/:index/:collection/:_id"


def test_routes_from_file(tmp_path):
    path = tmp_path / "routes.json"
    path.write_text(json.dumps({"foo": {"bar": {"verb": "GET", "url": "/_foo"}}}), encoding='utf-8')
    assert load_routes(path) == {"foo": {"bar": {"verb": "GET", "url": "/_foo"}}}


@pytest.mark.parametrize("routes", [
    {"foo": ["bar"]},
    {"foo": {"bar": {"url": "/_foo"}}},
])
def test_malformed_routes_are_rejected(routes):
    with pytest.raises(SdkError):
        load_routes(routes)


def test_missing_routes_file_is_rejected(tmp_path):
    with pytest.raises(SdkError):
        load_routes(tmp_path / "absent.json")


def test_resolve_fills_placeholders_and_query():
    transport = HttpTransport("http://kuzzle.test:7512")
    frame = {
        "requestId": "req",
        "controller": "document",
        "action": "get",
        "index": "my index",
        "collection": "col",
        "_id": "a/b",
        "refresh": "wait_for",
    }

    verb, path, query = transport.resolve(frame)

    assert verb == "GET"
    assert path == "/my%20index/col/a%2Fb"
    assert query == {"refresh": "wait_for"}


def test_resolve_uses_query_strings_for_other_placeholders():
    transport = HttpTransport("http://kuzzle.test:7512")
    verb, path, query = transport.resolve({"controller": "auth", "action": "login", "strategy": "local"})
    assert (verb, path, query) == ("POST", "/_login/local", {})


def test_resolve_keeps_unplaced_document_id_in_query():
    transport = HttpTransport("http://kuzzle.test:7512")
    frame = {"controller": "document", "action": "create", "index": "i", "collection": "c", "_id": "doc"}
    assert transport.resolve(frame)[2] == {"_id": "doc"}


def test_resolve_rejects_unknown_route_and_missing_values():
    transport = HttpTransport("http://kuzzle.test:7512")
    with pytest.raises(SdkError):
        transport.resolve({"controller": "nope", "action": "nope"})
    with pytest.raises(SdkError):
        transport.resolve({"controller": "index", "action": "create"})


@pytest.mark.asyncio
async def test_query_over_http():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={
            "requestId": "server-generated",
            "status": 200,
            "error": None,
            "result": {"_id": "doc", "_source": {"name": "ferris"}},
        })

    kuzzle = make_client(handler)
    kuzzle.jwt = "secret"
    async with kuzzle:
        request = KuzzleRequest(
            controller="document",
            action="createOrReplace",
            index="idx",
            collection="col",
            id="doc",
            body={"name": "ferris"},
            query_strings={"refresh": "wait_for", "silent": True},
        )
        response = await kuzzle.query(request)

    assert response.result["_id"] == "doc"
    assert response.request_id != "server-generated"
    sent = seen[0]
    assert sent.method == "PUT"
    assert sent.url.path == "/idx/col/doc"
    assert sent.url.params["refresh"] == "wait_for"
    assert sent.url.params["silent"] == "true"
    assert sent.headers["Authorization"] == "Bearer secret"
    assert json.loads(sent.content) == {"name": "ferris"}


@pytest.mark.asyncio
async def test_http_error_payload_raises_kuzzle_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={
            "status": 404,
            "error": {"status": 404, "message": "Index not found"},
            "result": None,
        })

    async with make_client(handler) as kuzzle:
        with pytest.raises(KuzzleError) as excinfo:
            await kuzzle.query(KuzzleRequest(controller="index", action="exists", index="nope"))

    assert excinfo.value.status == 404
    assert kuzzle.dispatcher.pending_count == 0


@pytest.mark.asyncio
async def test_non_json_error_page_raises_kuzzle_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="Bad Gateway")

    async with make_client(handler) as kuzzle:
        with pytest.raises(KuzzleError) as excinfo:
            await kuzzle.query(KuzzleRequest(controller="server", action="now"))

    assert excinfo.value.status == 502
    assert excinfo.value.message == "Bad Gateway"


@pytest.mark.asyncio
async def test_unreachable_server_raises_connection_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with make_client(handler) as kuzzle:
        with pytest.raises(KuzzleConnectionError):
            await kuzzle.query(KuzzleRequest(controller="server", action="now"))
        # Only that request failed
        assert kuzzle.state.value == "connected"


@pytest.mark.asyncio
async def test_unknown_route_raises_sdk_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    async with make_client(handler) as kuzzle:
        with pytest.raises(SdkError):
            await kuzzle.query(KuzzleRequest(controller="foo", action="bar"))
        assert kuzzle.dispatcher.pending_count == 0
