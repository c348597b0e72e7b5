from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Final, Iterable, Iterator, List, Optional, Tuple

from .bounds import is_allowed

_logger = logging.getLogger(__name__)

ID_PREFIX: Final[str] = "REG"
FIRST_VALUE: Final[int] = 0
FIRST_BOUNDS: Final[str] = "0-16535"
# Startup policy of the reference server: REG2 = 3 within {1, 2, 3}
DEFAULT_REGISTERS: Final[Tuple[Tuple[int, str], ...]] = ((3, "1|2|3"),)


@dataclass
class Register:
    """
    A named integer value with its bounds specification.
    Fields:
        id: "REG<n>", n being the creation order starting at 1
        value: current value
        bounds: "lo-hi" or "v1|v2|...|vn"
    """
    id: str
    value: int
    bounds: str


class WriteResult(Enum):
    OK = "ok"
    OUT_OF_BOUNDS = "out_of_bounds"
    NOT_FOUND = "not_found"


class RegisterStore:
    """
    Ordered, append-only collection of registers.

    REG1 (value 0, bounds 0-16535) always exists; `defaults` are appended after it
    in order. Ids grow by one per insertion and are never reused. Values are
    bounds-checked on write only, never on insertion.
    """

    _registers: List[Register]
    _closed: bool

    def __init__(self, defaults: Iterable[Tuple[int, str]] = ()) -> None:
        self._registers = [Register(id=f"{ID_PREFIX}1", value=FIRST_VALUE, bounds=FIRST_BOUNDS)]
        self._closed = False
        for value, bounds in defaults:
            self.append(value, bounds)

    def __len__(self) -> int:
        return len(self._registers)

    def __iter__(self) -> Iterator[Register]:
        return iter(list(self._registers))

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("register store has been torn down")

    def append(self, value: int, bounds: str) -> str:
        """
        Append a new register and return its id.
        Args:
            value (int): Initial value, not validated against `bounds`
            bounds (str): Bounds specification, stored verbatim
        Returns:
            str: The new id, e.g. "REG3"
        """
        self._check_open()
        reg_id = f"{ID_PREFIX}{len(self._registers) + 1}"
        self._registers.append(Register(id=reg_id, value=value, bounds=bounds))
        if not is_allowed(value, bounds):
            _logger.debug("%s created with value %d outside its bounds %r", reg_id, value, bounds)
        return reg_id

    def lookup(self, reg_id: str) -> Optional[Register]:
        self._check_open()
        for reg in self._registers:
            if reg.id == reg_id:
                return reg
        return None

    def read(self, reg_id: str) -> Optional[int]:
        reg = self.lookup(reg_id)
        return reg.value if reg is not None else None

    def read_bounds(self, reg_id: str) -> Optional[str]:
        reg = self.lookup(reg_id)
        return reg.bounds if reg is not None else None

    def write(self, reg_id: str, value: int) -> WriteResult:
        """
        Replace a register value if it satisfies the register's bounds.
        Returns:
            WriteResult: OK, OUT_OF_BOUNDS (value unchanged) or NOT_FOUND
        """
        reg = self.lookup(reg_id)
        if reg is None:
            return WriteResult.NOT_FOUND
        if not is_allowed(value, reg.bounds):
            return WriteResult.OUT_OF_BOUNDS
        reg.value = value
        return WriteResult.OK

    def teardown(self) -> None:
        """Release all registers. Later calls are no-ops."""
        if self._closed:
            return
        _logger.debug("Releasing %d register(s)", len(self._registers))
        self._registers.clear()
        self._closed = True
