"""Tests for the init and handshake state machines."""

import asyncio

import pytest

from factories import (
    SEED,
    FakeTransport,
    encrypt_private_key,
    make_block,
    make_container,
    make_ecdh_body,
    rom_info,
)
from vfs0097.core.errors import (
    DeviceNotInitializedError,
    FlashContainerError,
    OperationCancelledError,
    ProtocolError,
    TransportError,
)
from vfs0097.core.executor import CommandExecutor
from vfs0097.core.models import BlockId
from vfs0097.core.state_machine import (
    HandshakeState,
    HandshakeStateMachine,
    InitState,
    InitStateMachine,
    next_handshake_state,
    next_init_state,
)


def _flash(profile, device_key, ecdh_key, manufacturer_key) -> bytes:
    return make_container(
        make_block(BlockId.CERTIFICATE, b"cert"),
        make_block(BlockId.PRIVATE_KEY, encrypt_private_key(device_key, SEED, profile)),
        make_block(
            BlockId.ECDH, make_ecdh_body(ecdh_key.public_key(), manufacturer_key)
        ),
    )


def _run(transport, machine):
    async def run():
        await transport.open()
        await machine.run()

    asyncio.run(run())


def test_init_transitions_are_sequential():
    """Test the init transition function."""
    order = [InitState.SEND_INIT_1]
    while order[-1] is not InitState.DONE:
        order.append(next_init_state(order[-1]))

    assert order == list(InitState)
    with pytest.raises(ProtocolError):
        next_init_state(InitState.DONE)


def test_handshake_transitions_are_sequential():
    assert next_handshake_state(HandshakeState.CLIENT_HELLO) is (
        HandshakeState.GENERATE_CERTIFICATE
    )
    assert next_handshake_state(HandshakeState.CLIENT_FINISHED) is HandshakeState.DONE
    with pytest.raises(ProtocolError):
        next_handshake_state(HandshakeState.DONE)


def test_handshake_runs_to_completion(session):
    transport = FakeTransport()
    machine = HandshakeStateMachine(CommandExecutor(transport, session, 1000), session)

    _run(transport, machine)

    assert machine.state is HandshakeState.DONE
    assert transport.writes == []


def test_handshake_unknown_state(session):
    """Test that an unknown handshake state is a protocol error."""
    machine = HandshakeStateMachine(
        CommandExecutor(FakeTransport(), session, 1000), session
    )

    with pytest.raises(ProtocolError):
        asyncio.run(machine.step(42))


def test_init_sequence(session, profile, device_key, ecdh_key, manufacturer_key):
    """The six commands go out in order and the keys get loaded."""
    transport = FakeTransport(
        [
            rom_info(0x07),
            b"\x00\x00",
            b"\x00\x00partition",
            b"\x00\x00",
            b"\x00\x00flash info",
            _flash(profile, device_key, ecdh_key, manufacturer_key),
        ]
    )
    machine = InitStateMachine(
        CommandExecutor(transport, session, 1000), session, profile
    )

    _run(transport, machine)

    assert machine.state is InitState.DONE
    assert transport.writes == list(profile.init_commands)
    assert session.certificate == b"cert"
    assert session.has_private_key()
    assert session.ecdh_public_key is not None


def test_not_initialized_stops_at_check(session, profile):
    """Test that an unpaired sensor stops the machine at the check."""
    transport = FakeTransport([rom_info(0x02)])
    machine = InitStateMachine(
        CommandExecutor(transport, session, 1000), session, profile
    )

    with pytest.raises(DeviceNotInitializedError, match="not initialized"):
        _run(transport, machine)

    assert machine.state is InitState.CHECK_INITIALIZED
    assert transport.writes == [profile.init_msg1]


def test_unexpected_reply_length_continues(
    session, profile, device_key, ecdh_key, manufacturer_key, caplog
):
    """A reply of unexpected length is only logged."""
    transport = FakeTransport(
        [
            b"\x00\x00\x02",
            b"\x00\x00",
            b"\x00\x00",
            b"\x00\x00",
            b"\x00\x00",
            _flash(profile, device_key, ecdh_key, manufacturer_key),
        ]
    )
    machine = InitStateMachine(
        CommandExecutor(transport, session, 1000), session, profile
    )

    _run(transport, machine)

    assert machine.state is InitState.DONE
    assert "Unknown reply at init" in caplog.text


def test_transport_error_fails_machine(session, profile):
    transport = FakeTransport([rom_info(0x07), b"\x00\x00", TransportError("pipe")])
    machine = InitStateMachine(
        CommandExecutor(transport, session, 1000), session, profile
    )

    with pytest.raises(TransportError, match="pipe"):
        _run(transport, machine)

    assert machine.state is InitState.GET_PARTITION_HEADER
    assert len(transport.writes) == 3


def test_bad_container_fails_machine(session, profile):
    transport = FakeTransport(
        [rom_info(0x07), b"", b"", b"", b"", make_container(size=100)]
    )
    machine = InitStateMachine(
        CommandExecutor(transport, session, 1000), session, profile
    )

    with pytest.raises(FlashContainerError):
        _run(transport, machine)

    assert machine.state is InitState.INIT_KEYS


def test_key_failures_do_not_fail_machine(session, profile, device_key):
    """A private key from another host leaves the key unset."""
    flash = make_container(
        make_block(
            BlockId.PRIVATE_KEY,
            encrypt_private_key(device_key, b"other\x00host\x00", profile),
        )
    )
    transport = FakeTransport([rom_info(0x07), b"", b"", b"", b"", flash])
    machine = InitStateMachine(
        CommandExecutor(transport, session, 1000), session, profile
    )

    _run(transport, machine)

    assert machine.state is InitState.DONE
    assert not session.has_private_key()


def test_cancel_stops_at_next_state(session, profile):
    cancel_event = asyncio.Event()
    transport = FakeTransport([rom_info(0x07), b"", b""])
    machine = InitStateMachine(
        CommandExecutor(transport, session, 1000, cancel_event),
        session,
        profile,
        cancel_event,
    )

    def cancel_on_second_command(data: bytes) -> None:
        if data == profile.init_msg2:
            cancel_event.set()

    transport.on_write = cancel_on_second_command

    with pytest.raises(OperationCancelledError):
        _run(transport, machine)

    assert transport.writes == [profile.init_msg1, profile.init_msg2]
