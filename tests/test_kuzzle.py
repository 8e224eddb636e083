import asyncio

import pytest

from conftest import FakeTransport, wait_for_frames
from kuzzle_sdk import Config, Kuzzle, KuzzleRequest, QueryOptions
from kuzzle_sdk.errors import RequestTimeoutError
from kuzzle_sdk.models import ConnectionState


@pytest.fixture
def kuzzle(transport) -> Kuzzle:
    return Kuzzle(transport, Config(auto_reconnect=False, request_timeout=1))


@pytest.mark.asyncio
async def test_query_attaches_jwt(kuzzle, transport):
    kuzzle.jwt = "token"
    async with kuzzle:
        task = asyncio.create_task(kuzzle.query(KuzzleRequest(controller="auth", action="checkToken")))
        frames = await wait_for_frames(transport, 1)
        transport.reply(frames[0]["requestId"], result={"valid": True})
        await task

    assert frames[0]["jwt"] == "token"


@pytest.mark.asyncio
async def test_request_jwt_takes_precedence(kuzzle, transport):
    kuzzle.jwt = "client-token"
    async with kuzzle:
        task = asyncio.create_task(kuzzle.query(KuzzleRequest(controller="server", action="now", jwt="own")))
        frames = await wait_for_frames(transport, 1)
        transport.reply(frames[0]["requestId"])
        await task

    assert frames[0]["jwt"] == "own"


@pytest.mark.asyncio
async def test_query_without_jwt(kuzzle, transport):
    kuzzle.jwt = ""
    assert kuzzle.jwt is None
    async with kuzzle:
        task = asyncio.create_task(kuzzle.query(KuzzleRequest(controller="server", action="now")))
        frames = await wait_for_frames(transport, 1)
        transport.reply(frames[0]["requestId"])
        await task

    assert "jwt" not in frames[0]


@pytest.mark.asyncio
async def test_query_options_volatile_and_timeout(kuzzle, transport):
    async with kuzzle:
        request = KuzzleRequest(controller="server", action="now", volatile={"user": "me"})
        options = QueryOptions(timeout=0.05, volatile={"sdk": "python", "user": "default"})
        with pytest.raises(RequestTimeoutError):
            await kuzzle.query(request, options)

    assert transport.frames()[0]["volatile"] == {"sdk": "python", "user": "me"}


@pytest.mark.asyncio
async def test_context_manager_manages_connection(kuzzle, transport):
    async with kuzzle:
        assert kuzzle.state is ConnectionState.CONNECTED
        assert transport.connected
    assert kuzzle.state is ConnectionState.DISCONNECTED
    assert not transport.connected


@pytest.mark.asyncio
async def test_listeners_are_forwarded(kuzzle):
    events = []
    kuzzle.on("connected", lambda: events.append("connected"))
    listener = lambda: events.append("disconnected")  # noqa: E731
    kuzzle.on("disconnected", listener)
    kuzzle.off("disconnected", listener)

    async with kuzzle:
        pass

    assert events == ["connected"]


def test_clients_are_independent():
    first = Kuzzle(FakeTransport())
    second = Kuzzle(FakeTransport())
    first.jwt = "a"
    assert second.jwt is None
    assert first.dispatcher is not second.dispatcher
