from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Protocol

from .comm import TransportError
from .protocol import (
    Ack,
    Bounds,
    Command,
    Error,
    ErrorKind,
    Insert,
    InsertAck,
    Quit,
    QuitAck,
    Read,
    ReadBounds,
    Response,
    Unrecognized,
    Value,
    Write,
    encode,
    parse,
)
from .registers import RegisterStore, WriteResult

_logger = logging.getLogger(__name__)


class Channel(Protocol):
    def read(self, count: Optional[int] = None, timeout: Optional[float] = None) -> bytes: ...

    def write(self, data: bytes) -> int: ...


class ServerState(Enum):
    AWAITING_REQUEST = "awaiting_request"
    DISPATCHING = "dispatching"
    TERMINATED = "terminated"


class Dispatcher:
    """
    Executes parsed commands against a register store and owns the server loop.

    The dispatcher is the only writer of its store. One request gets exactly one
    response; failed commands are reported, never retried. Only Quit ends the loop.
    Deployment assumes a single client per server; nothing here enforces it.
    """

    def __init__(self, store: RegisterStore) -> None:
        self.store = store
        self.state = ServerState.AWAITING_REQUEST

    @property
    def terminated(self) -> bool:
        return self.state is ServerState.TERMINATED

    def handle(self, command: Command) -> Response:
        """
        Map a command to a store operation and its response.
        Quit does not release the store here; see `finish`.
        Raises:
            RuntimeError: If the dispatcher has already terminated
        """
        if self.terminated:
            raise RuntimeError("dispatcher has terminated")

        if isinstance(command, Read):
            value = self.store.read(command.register)
            if value is None:
                return self._invalid_register(command.register)
            return Value(value)

        if isinstance(command, ReadBounds):
            bounds = self.store.read_bounds(command.register)
            if bounds is None:
                return self._invalid_register(command.register)
            return Bounds(bounds)

        if isinstance(command, Write):
            result = self.store.write(command.register, command.value)
            if result is WriteResult.NOT_FOUND:
                return self._invalid_register(command.register)
            if result is WriteResult.OUT_OF_BOUNDS:
                _logger.warning("Value %d rejected by bounds of %s", command.value, command.register)
                return Error(ErrorKind.INVALID_INPUT)
            _logger.info("%s set to %d", command.register, command.value)
            return Ack()

        if isinstance(command, Insert):
            reg_id = self.store.append(command.value, command.bounds)
            _logger.info("Inserted %s = %d, bounds %r", reg_id, command.value, command.bounds)
            return InsertAck()

        if isinstance(command, Quit):
            self.state = ServerState.TERMINATED
            return QuitAck()

        if isinstance(command, Unrecognized):
            _logger.warning("Not a valid AT-command: %r", command.raw)
            return Error(ErrorKind.INVALID_COMMAND)

        raise TypeError(f"unsupported command {command!r}")

    def _invalid_register(self, reg_id: str) -> Error:
        _logger.warning("Register %r not found", reg_id)
        return Error(ErrorKind.INVALID_REGISTER)

    def finish(self) -> None:
        """Release the store once the quit acknowledgement has gone out."""
        self.store.teardown()
        _logger.info("Register store released")

    def step(self, channel: Channel) -> None:
        """
        Serve one request: receive, parse, dispatch, respond.
        A transport failure on either side is logged and the iteration ends.
        """
        try:
            raw = channel.read()
        except TransportError:
            _logger.error("Failed to receive request", exc_info=True)
            return
        if not raw:
            return

        self.state = ServerState.DISPATCHING
        command = parse(raw)
        _logger.info("Client request: %r", command)
        response = self.handle(command)
        try:
            channel.write(encode(response))
        except (TransportError, ValueError):
            _logger.error("Failed to send response %r", response, exc_info=True)

        if isinstance(command, Quit):
            self.finish()
        else:
            self.state = ServerState.AWAITING_REQUEST

    def serve(self, channel: Channel) -> None:
        """Run the request loop until a quit request has been answered."""
        _logger.info("Serving %d register(s)", len(self.store))
        while not self.terminated:
            self.step(channel)
        _logger.info("Got termination request from client. Bye")
