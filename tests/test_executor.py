"""Tests for the single command exchange."""

import asyncio

import pytest

from factories import FakeTransport
from vfs0097.core.errors import (
    OperationCancelledError,
    TransportError,
    TransportTimeoutError,
)
from vfs0097.core.executor import CommandExecutor


def test_execute_writes_then_reads(session):
    transport = FakeTransport([b"\x00\x00reply"])
    executor = CommandExecutor(transport, session, timeout=1000)

    async def run():
        await transport.open()
        return await executor.execute(b"\x01")

    response = asyncio.run(run())

    assert transport.writes == [b"\x01"]
    assert transport.read_sizes == [session.buffer_capacity]
    assert response == b"\x00\x00reply"
    assert session.response == b"\x00\x00reply"
    assert session.buffer_length == 7


def test_short_read_is_accepted(session):
    """The reply is shorter than the buffer; its length is recorded."""
    transport = FakeTransport([b"\x00\x00reply", b"\x01"])
    executor = CommandExecutor(transport, session, timeout=1000)

    async def run():
        await transport.open()
        await executor.execute(b"\x01")
        await executor.execute(b"\x19")

    asyncio.run(run())

    assert session.response == b"\x01"
    assert session.buffer_length == 1


def test_short_write_is_an_error(session):
    transport = FakeTransport([b"never read"])
    transport.short_write = True
    executor = CommandExecutor(transport, session, timeout=1000)

    async def run():
        await transport.open()
        await executor.execute(b"\x43\x02")

    with pytest.raises(TransportError, match="Short write"):
        asyncio.run(run())
    assert transport.read_sizes == []


def test_read_error_propagates(session):
    transport = FakeTransport([TransportTimeoutError("timed out")])
    executor = CommandExecutor(transport, session, timeout=1000)

    async def run():
        await transport.open()
        await executor.execute(b"\x01")

    with pytest.raises(TransportTimeoutError):
        asyncio.run(run())


def test_cancelled_before_read(session):
    transport = FakeTransport([b"reply"])
    cancel_event = asyncio.Event()
    transport.on_write = lambda data: cancel_event.set()
    executor = CommandExecutor(
        transport, session, timeout=1000, cancel_event=cancel_event
    )

    async def run():
        await transport.open()
        await executor.execute(b"\x01")

    with pytest.raises(OperationCancelledError):
        asyncio.run(run())
    assert transport.read_sizes == []
