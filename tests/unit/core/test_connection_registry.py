"""Tests for the connection registry."""

import asyncio

import pytest
from redis.exceptions import AuthenticationError

from redis_tics.core.errors import NotConnectedError, ServerConnectionError
from redis_tics.core.registry import ConnectionRegistry, create_client
from redis_tics.core.servers import ServerProfile

from conftest import SERVER_ID, FakeRedis


class TestConnect:
    """Test session lifecycle."""

    @pytest.mark.asyncio
    async def test_connect_and_lookup(self, profile):
        """Test that a connected server can be looked up by id."""
        fake = FakeRedis()
        urls = []

        def factory(url):
            urls.append(url)
            return fake

        registry = ConnectionRegistry(client_factory=factory)
        await registry.connect(profile)

        assert await registry.is_connected(SERVER_ID)
        assert await registry.connected_ids() == [SERVER_ID]
        session = await registry.get_session(SERVER_ID)
        assert session.client is fake
        assert session.profile is profile
        assert urls == ["redis://localhost:6379"]

    @pytest.mark.asyncio
    async def test_unknown_server(self):
        """Test that lookups for unknown ids raise NotConnectedError."""
        registry = ConnectionRegistry(client_factory=lambda url: FakeRedis())

        with pytest.raises(NotConnectedError, match="nope"):
            await registry.get_session("nope")
        with pytest.raises(NotConnectedError):
            async with registry.session("nope"):
                pass

    @pytest.mark.asyncio
    async def test_failed_ping_raises_and_closes(self, profile):
        """Test that a handshake failure is reported and the client is closed."""
        fake = FakeRedis(ping_error=AuthenticationError("invalid password"))
        registry = ConnectionRegistry(client_factory=lambda url: fake)

        with pytest.raises(ServerConnectionError, match="invalid password"):
            await registry.connect(profile)

        assert fake.closed
        assert not await registry.is_connected(SERVER_ID)

    @pytest.mark.asyncio
    async def test_bad_url_raises_connection_error(self, profile):
        """Test that a client factory rejecting the URL is a connection error."""

        def factory(url):
            raise ValueError("Redis URL must specify one of the following schemes")

        registry = ConnectionRegistry(client_factory=factory)
        with pytest.raises(ServerConnectionError):
            await registry.connect(profile)

    @pytest.mark.asyncio
    async def test_reconnect_replaces_and_closes_previous(self, profile):
        """Test that connecting the same id twice closes the first session."""
        first, second = FakeRedis(), FakeRedis()
        clients = iter([first, second])
        registry = ConnectionRegistry(client_factory=lambda url: next(clients))

        await registry.connect(profile)
        old_session = await registry.get_session(SERVER_ID)
        await registry.connect(profile)

        assert first.closed
        assert old_session.monitor_stop.is_set()
        assert (await registry.get_session(SERVER_ID)).client is second

    @pytest.mark.asyncio
    async def test_disconnect_is_idempotent(self, profile):
        """Test that disconnecting twice (or an unknown id) is not an error."""
        fake = FakeRedis()
        registry = ConnectionRegistry(client_factory=lambda url: fake)
        await registry.connect(profile)

        await registry.disconnect(SERVER_ID)
        await registry.disconnect(SERVER_ID)
        await registry.disconnect("never-connected")

        assert fake.closed
        assert not await registry.is_connected(SERVER_ID)

    @pytest.mark.asyncio
    async def test_close_all_via_context_manager(self):
        """Test that leaving the registry context closes every session."""
        fakes = {}

        def factory(url):
            fakes[url] = FakeRedis()
            return fakes[url]

        async with ConnectionRegistry(client_factory=factory) as registry:
            await registry.connect(ServerProfile(id="a", name="a", host="h1"))
            await registry.connect(ServerProfile(id="b", name="b", host="h2"))
            assert sorted(await registry.connected_ids()) == ["a", "b"]

        assert all(f.closed for f in fakes.values())
        assert await registry.connected_ids() == []


class TestSessionAccess:
    """Test per-session serialization."""

    @pytest.mark.asyncio
    async def test_with_session_passes_session(self, profile):
        """Test that with_session hands the live session to the callable."""
        fake = FakeRedis({("PING",): "PONG"})
        registry = ConnectionRegistry(client_factory=lambda url: fake)
        await registry.connect(profile)

        async def ping(session):
            return await session.client.execute_command("PING")

        assert await registry.with_session(SERVER_ID, ping) == "PONG"

    @pytest.mark.asyncio
    async def test_one_command_in_flight_per_session(self, profile):
        """Test that concurrent users of one session are serialized."""
        registry = ConnectionRegistry(client_factory=lambda url: FakeRedis())
        await registry.connect(profile)

        in_flight = 0
        peak = 0

        async def work(session):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1

        await asyncio.gather(*(registry.with_session(SERVER_ID, work) for _ in range(5)))
        assert peak == 1

    @pytest.mark.asyncio
    async def test_disconnect_waits_for_in_flight_command(self, profile):
        """Test that disconnect does not close a session while a command holds it."""
        fake = FakeRedis()
        registry = ConnectionRegistry(client_factory=lambda url: fake)
        await registry.connect(profile)

        started = asyncio.Event()
        closed_during_command = []

        async def slow(session):
            started.set()
            await asyncio.sleep(0.02)
            closed_during_command.append(fake.closed)

        task = asyncio.create_task(registry.with_session(SERVER_ID, slow))
        await started.wait()
        await registry.disconnect(SERVER_ID)
        await task

        assert closed_during_command == [False]
        assert fake.closed


class TestCreateClient:
    """Test the default client factory."""

    def test_raw_replies(self):
        """Test that the client decodes text but leaves reply shapes untouched."""
        client = create_client("redis://localhost:6379/0")

        assert client.response_callbacks == {}
        kwargs = client.connection_pool.connection_kwargs
        assert kwargs["decode_responses"] is True
        assert kwargs["db"] == 0
