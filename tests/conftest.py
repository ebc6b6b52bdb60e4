"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import asyncio

import pytest

from syncs_client import MockChannel, SyncsClient, create_test_client


async def _settle(rounds: int = 10) -> None:
    """Let the reader task and scheduled callbacks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def settle():
    """Coroutine function yielding to the event loop a few times."""
    return _settle


@pytest.fixture
def client_and_channel() -> tuple[SyncsClient, MockChannel]:
    """Client wired to an in-memory channel, not connected."""
    return create_test_client()


@pytest.fixture
def handshake():
    """Coroutine function connecting a test client and completing the handshake."""

    async def run(client: SyncsClient, channel: MockChannel, socket_id: str = "sock_1") -> None:
        await client.connect()
        channel.feed_json({"command": True, "type": "getSocketId"})
        channel.feed_json({"command": True, "type": "setSocketId", "socketId": socket_id})
        await _settle()
        channel.clear()

    return run
