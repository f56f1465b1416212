"""
Init and TLS handshake state machines.

Each machine is an explicit state enum, a pure transition function and one
handler per state. Handlers that talk to the device suspend the machine on
the command exchange; the init machine suspends on the handshake machine
the same way.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import IntEnum

from .blobs import PROVISIONED_MARKER, PROVISIONED_REPLY_LENGTH
from .blocks import init_keys
from .errors import DeviceNotInitializedError, OperationCancelledError, ProtocolError
from .executor import CommandExecutor
from .models import DeviceSession
from .profile import DeviceProfile

_LOGGER = logging.getLogger(__name__)


class InitState(IntEnum):
    """States of the device init sequence."""

    SEND_INIT_1 = 0
    CHECK_INITIALIZED = 1
    SEND_INIT_2 = 2
    GET_PARTITION_HEADER = 3
    SEND_INIT_4 = 4
    GET_FLASH_INFO = 5
    READ_FLASH_TLS_DATA = 6
    INIT_KEYS = 7
    HANDSHAKE = 8
    DONE = 9


class HandshakeState(IntEnum):
    """States of the TLS handshake."""

    CLIENT_HELLO = 0
    GENERATE_CERTIFICATE = 1
    CLIENT_FINISHED = 2
    DONE = 3


# Index into DeviceProfile.init_commands for each command state
INIT_COMMANDS: dict[InitState, int] = {
    InitState.SEND_INIT_1: 0,
    InitState.SEND_INIT_2: 1,
    InitState.GET_PARTITION_HEADER: 2,
    InitState.SEND_INIT_4: 3,
    InitState.GET_FLASH_INFO: 4,
    InitState.READ_FLASH_TLS_DATA: 5,
}


def next_init_state(state: InitState) -> InitState:
    """Return the state following `state` in the init sequence."""
    if state is InitState.DONE:
        raise ProtocolError("Init sequence already finished")
    return InitState(state + 1)


def next_handshake_state(state: HandshakeState) -> HandshakeState:
    """Return the state following `state` in the handshake."""
    if state is HandshakeState.DONE:
        raise ProtocolError("Handshake already finished")
    return HandshakeState(state + 1)


class _Machine:
    """Cancellation shared by both machines."""

    def __init__(self, cancel_event: asyncio.Event | None) -> None:
        self._cancel_event = cancel_event

    def _raise_if_cancelled(self) -> None:
        if self._cancel_event is not None and self._cancel_event.is_set():
            raise OperationCancelledError(f"{type(self).__name__} cancelled")


class HandshakeStateMachine(_Machine):
    """TLS session establishment with the sensor.

    Every state currently advances without traffic; message construction
    for each phase goes into its handler.
    """

    def __init__(
        self,
        executor: CommandExecutor,
        session: DeviceSession,
        cancel_event: asyncio.Event | None = None,
    ) -> None:
        super().__init__(cancel_event)
        self._executor = executor
        self._session = session
        self.state = HandshakeState.CLIENT_HELLO
        self._handlers: dict[int, Callable[[], Awaitable[None]]] = {
            HandshakeState.CLIENT_HELLO: self._client_hello,
            HandshakeState.GENERATE_CERTIFICATE: self._generate_certificate,
            HandshakeState.CLIENT_FINISHED: self._client_finished,
        }

    async def run(self) -> None:
        """Drive the handshake until DONE."""
        while self.state is not HandshakeState.DONE:
            self._raise_if_cancelled()
            self.state = await self.step(self.state)

    async def step(self, state: int) -> HandshakeState:
        """Run the handler for `state` and return the next state.

        Raises:
            ProtocolError: If `state` is not a handshake state.
        """
        handler = self._handlers.get(state)
        if handler is None:
            _LOGGER.error("Unknown handshake state %s", state)
            raise ProtocolError(f"Unknown handshake state {state}")

        _LOGGER.debug("Handshake state: %s", HandshakeState(state).name)
        await handler()
        return next_handshake_state(HandshakeState(state))

    async def _client_hello(self) -> None:
        pass

    async def _generate_certificate(self) -> None:
        pass

    async def _client_finished(self) -> None:
        pass


class InitStateMachine(_Machine):
    """Sequences the init commands, key loading and the handshake."""

    def __init__(
        self,
        executor: CommandExecutor,
        session: DeviceSession,
        profile: DeviceProfile,
        cancel_event: asyncio.Event | None = None,
    ) -> None:
        """Initialize the machine.

        Args:
            executor: Runs each command exchange.
            session: Receives responses, certificate and keys.
            profile: Supplies command payloads and key literals.
            cancel_event: Set by the device when cancel() is requested.
        """
        super().__init__(cancel_event)
        self._executor = executor
        self._session = session
        self._profile = profile
        self.state = InitState.SEND_INIT_1
        self._handlers: dict[int, Callable[[], Awaitable[None]]] = {
            InitState.CHECK_INITIALIZED: self._check_initialized,
            InitState.INIT_KEYS: self._init_keys,
            InitState.HANDSHAKE: self._handshake,
        }
        for state in INIT_COMMANDS:
            self._handlers[state] = self._send_command

    async def run(self) -> None:
        """Drive the init sequence until DONE.

        Raises:
            TransportError: If any command exchange fails.
            DeviceNotInitializedError: If the sensor was never provisioned.
            FlashContainerError: If the TLS flash data is malformed.
            OperationCancelledError: If cancel() was requested.
        """
        while self.state is not InitState.DONE:
            self._raise_if_cancelled()
            handler = self._handlers.get(self.state)
            if handler is None:
                _LOGGER.error("Unknown init state %s", self.state)
                raise ProtocolError(f"Unknown init state {self.state}")

            _LOGGER.debug("Init state: %s", self.state.name)
            await handler()
            self.state = next_init_state(self.state)

    async def _send_command(self) -> None:
        command = self._profile.init_commands[INIT_COMMANDS[self.state]]
        await self._executor.execute(command)

    async def _check_initialized(self) -> None:
        response = self._session.response
        if len(response) != PROVISIONED_REPLY_LENGTH:
            _LOGGER.warning("Unknown reply at init (%d bytes)", len(response))
            return

        marker = response[-1]
        if marker != PROVISIONED_MARKER:
            _LOGGER.error(
                "Sensor is not initialized, init byte is 0x%02x "
                "(should be 0x07 on initialized devices, 0x02 otherwise). "
                "The device needs to be set up by a Windows host "
                "(native or in a VirtualBox guest) first.",
                marker,
            )
            raise DeviceNotInitializedError("Device is not initialized")

    async def _init_keys(self) -> None:
        init_keys(self._session, self._session.response, self._profile)

    async def _handshake(self) -> None:
        handshake = HandshakeStateMachine(
            self._executor, self._session, self._cancel_event
        )
        await handshake.run()
