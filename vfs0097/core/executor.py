"""Single request/response exchange over the bulk endpoints."""

from __future__ import annotations

import asyncio
import logging
from enum import IntEnum

from .errors import OperationCancelledError, ProtocolError, TransportError
from .models import DeviceSession
from .transport import EP_IN, EP_OUT, TransportInterface

_LOGGER = logging.getLogger(__name__)


class CommandState(IntEnum):
    """States of one command exchange."""

    WRITE = 0
    READ = 1
    DONE = 2


class CommandExecutor:
    """Writes a request, then reads the reply into the session buffer."""

    def __init__(
        self,
        transport: TransportInterface,
        session: DeviceSession,
        timeout: int,
        cancel_event: asyncio.Event | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            transport: The USB transport.
            session: Owner of the response buffer.
            timeout: Per-transfer timeout in milliseconds.
            cancel_event: Set by the device when cancel() is requested.
        """
        self._transport = transport
        self._session = session
        self._timeout = timeout
        self._cancel_event = cancel_event

    async def execute(self, request: bytes) -> bytes:
        """Run one exchange and return the response.

        The response also stays in the session buffer, with its actual
        length recorded, until the next exchange overwrites it.

        Raises:
            TransportError: If the write is short or either transfer fails.
        """
        state = CommandState.WRITE
        while state is not CommandState.DONE:
            if self._cancel_event is not None and self._cancel_event.is_set():
                raise OperationCancelledError("Command cancelled")

            if state is CommandState.WRITE:
                await self._write(request)
                state = CommandState.READ
            elif state is CommandState.READ:
                await self._read()
                state = CommandState.DONE
            else:
                raise ProtocolError(f"Unknown command state {state}")

        return self._session.response

    async def _write(self, request: bytes) -> None:
        _LOGGER.debug("Sending command: %s", request.hex())
        written = await self._transport.submit_write(EP_OUT, request, self._timeout)
        if written != len(request):
            raise TransportError(
                f"Short write on endpoint {EP_OUT:#04x}: {written}/{len(request)} bytes"
            )

    async def _read(self) -> None:
        data = await self._transport.submit_read(
            EP_IN, self._session.buffer_capacity, self._timeout
        )
        # Reply lengths are not known per command, a short read is accepted
        self._session.store_response(data)
        _LOGGER.debug("Received %d bytes: %s", len(data), data[:64].hex())
