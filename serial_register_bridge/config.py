from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .client import DEFAULT_RESPONSE_TIMEOUT
from .comm import DEFAULT_BAUDRATE, DEFAULT_MAX_MESSAGE, DEFAULT_QUIESCENCE
from .registers import DEFAULT_REGISTERS

_logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.toml"


@dataclass
class Config:
    """Settings read from config.toml; every field has a default."""
    port: Optional[str] = None
    baudrate: int = DEFAULT_BAUDRATE
    quiescence: float = DEFAULT_QUIESCENCE
    max_message: int = DEFAULT_MAX_MESSAGE
    registers: List[Tuple[int, str]] = field(default_factory=lambda: list(DEFAULT_REGISTERS))
    response_timeout: float = DEFAULT_RESPONSE_TIMEOUT
    log_level: str = "INFO"


def _load_toml(config_path: str) -> dict:
    """Load a TOML file, returning {} (with a warning) if it is missing or broken."""
    try:
        with open(config_path, "rb") as f:
            return tomllib.load(f)
    except FileNotFoundError:
        _logger.debug("Config file %s not found. Using default values.", config_path)
        return {}
    except (OSError, tomllib.TOMLDecodeError) as e:
        _logger.warning("Failed to parse config %s: %s. Using default values.", config_path, e)
        return {}


def _get_registers(server_cfg: dict) -> List[Tuple[int, str]]:
    entries = server_cfg.get("registers")
    if entries is None:
        return list(DEFAULT_REGISTERS)
    registers = []
    for entry in entries:
        try:
            registers.append((int(entry["value"]), str(entry["bounds"])))
        except (KeyError, TypeError, ValueError):
            _logger.warning("Ignoring malformed register entry %r", entry)
    return registers


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> Config:
    """Build a Config from the [serial], [server], [client] and [logging] tables."""
    config = _load_toml(config_path)
    serial_cfg = config.get("serial", {})
    server_cfg = config.get("server", {})
    client_cfg = config.get("client", {})
    logging_cfg = config.get("logging", {})

    port = serial_cfg.get("port")
    return Config(
        port=str(port) if port else None,
        baudrate=int(serial_cfg.get("baudrate", DEFAULT_BAUDRATE)),
        quiescence=float(serial_cfg.get("quiescence", DEFAULT_QUIESCENCE)),
        max_message=int(serial_cfg.get("max_message", DEFAULT_MAX_MESSAGE)),
        registers=_get_registers(server_cfg),
        response_timeout=float(client_cfg.get("response_timeout", DEFAULT_RESPONSE_TIMEOUT)),
        log_level=str(logging_cfg.get("level", "INFO")).upper(),
    )
