from __future__ import annotations

import logging
from typing import Final, List, Optional

from .comm import Comm, TransportError
from .protocol import INSERT_ACK_TEXT, INSERT_PREFIX, INSERT_SEP, QUIT_PREFIX
from .registers import ID_PREFIX

_logger = logging.getLogger(__name__)

HELP_COMMAND: Final[str] = "help"
BANNER: Final[str] = "Enter AT-Command, 'insert+<value>+<bounds>', 'help' or 'quit': "
DEFAULT_RESPONSE_TIMEOUT: Final[float] = 2.0
INITIAL_REGISTERS: Final[int] = 2

_ORDINALS = {1: "1st", 2: "2nd", 3: "3rd"}


def _menu_entries(reg_id: str, label: str) -> List[str]:
    return [
        f"~ {reg_id}: Read the value of {label} -> Response: <int>",
        f"~ {reg_id}=?: Read the list of all allowed values for {label}",
        f"~ {reg_id}=<int>: Write the provided integer to {label} -> Response: OK|InvalidInput",
    ]


class Menu:
    """
    Local mirror of the server's register schema, printed by `help`.
    Three entries per register; new registers are added only after the
    server has acknowledged their insertion.
    """

    def __init__(self, registers: int = INITIAL_REGISTERS) -> None:
        self.entries: List[str] = ["~ Available AT Commands:"]
        self.register_count = 0
        for n in range(1, registers + 1):
            label = f"the {_ORDINALS.get(n, f'{n}th')} register"
            self.entries.extend(_menu_entries(f"{ID_PREFIX}{n}", label))
            self.register_count += 1

    def add_register(self, bounds: Optional[str] = None) -> str:
        """Record a newly inserted register and return its id."""
        self.register_count += 1
        reg_id = f"{ID_PREFIX}{self.register_count}"
        label = f"register {self.register_count}"
        if bounds:
            label += f" (bounds {bounds})"
        self.entries.extend(_menu_entries(reg_id, label))
        return reg_id

    def render(self) -> List[str]:
        return list(self.entries)


def _insert_bounds(request: str) -> Optional[str]:
    pieces = [p for p in request.split(INSERT_SEP) if p]
    return pieces[2] if len(pieces) >= 3 else None


class Client:
    """
    Interactive side of the protocol. Sends one request at a time and waits
    for its answer before accepting the next line.
    """

    def __init__(self, comm: Comm, menu: Optional[Menu] = None, response_timeout: float = DEFAULT_RESPONSE_TIMEOUT) -> None:
        self.comm = comm
        self.menu = menu if menu is not None else Menu()
        self.response_timeout = response_timeout
        self.finished = False

    def request(self, text: str) -> Optional[str]:
        """
        Send a request and wait for the server's answer.
        Returns:
            str or None: The answer, or None if nothing arrived in time
        """
        self.comm.send_message(text)
        return self.comm.receive_message(timeout=self.response_timeout)

    def execute(self, line: str) -> List[str]:
        """
        Handle one line typed by the user.
        Returns:
            List[str]: Lines to show to the user
        """
        # one whitespace-delimited token per request, anything after it is dropped
        tokens = line.split()
        if not tokens:
            return []
        request = tokens[0]
        if request == HELP_COMMAND:
            return self.menu.render()

        try:
            reply = self.request(request)
        except (TransportError, ValueError) as ex:
            _logger.error("Request %r failed: %s", request, ex)
            return [f"ERROR: {ex}"]

        if request.startswith(QUIT_PREFIX):
            self.finished = True
        if reply is None:
            return ["No response received within timeout"]

        out = [reply]
        if request.startswith(INSERT_PREFIX) and reply == INSERT_ACK_TEXT:
            reg_id = self.menu.add_register(_insert_bounds(request))
            _logger.debug("Menu now lists %s", reg_id)
            out.append("~ Register inserted, help menu updated")
        return out
