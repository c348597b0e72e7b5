from __future__ import annotations

import logging
import platform
from typing import List, Optional

import click
import serial
from serial.tools import list_ports

from .client import BANNER, Client
from .comm import Comm
from .config import DEFAULT_CONFIG_PATH, Config, load_config
from .dispatcher import Dispatcher
from .registers import RegisterStore

_logger = logging.getLogger(__name__)


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _open(cfg: Config, port: Optional[str], baudrate: Optional[int]) -> Comm:
    port = port or cfg.port
    if not port:
        raise click.ClickException("You must specify a serial port name (PORT argument or [serial] port in config)")
    try:
        return Comm(port, baudrate=baudrate or cfg.baudrate, quiescence=cfg.quiescence, max_message=cfg.max_message)
    except (serial.SerialException, ValueError) as e:
        raise click.ClickException(f"Unable to open serial port '{port}': {e}")


def _likely_ports() -> List[str]:
    """Available ports, likely USB-serial adapters first."""
    system = platform.system().lower()
    all_ports = sorted(p.device for p in list_ports.comports())

    if system == "linux":
        patterns = ["/dev/ttyUSB", "/dev/ttyACM"]
    elif system == "darwin":
        patterns = ["/dev/cu.usbserial", "/dev/cu.usbmodem"]
    elif system == "windows":
        patterns = ["COM"]
    else:
        patterns = []

    likely = [p for p in all_ports if any(p.startswith(pattern) for pattern in patterns)]
    return likely + [p for p in all_ports if p not in likely]


@click.group()
@click.option("-c", "--config", "config_path", default=DEFAULT_CONFIG_PATH, show_default=True, help="TOML configuration file")
@click.option("--log-level", default=None, help="Logging level (DEBUG, INFO, WARNING, ...)")
@click.pass_context
def main(ctx: click.Context, config_path: str, log_level: Optional[str]) -> None:
    """Read and write bounds-checked registers over a serial line with AT-commands.

    Examples:

      # Start the server on one end of the line
      serial-register-bridge server /dev/ttyUSB0

      # Talk to it from the other end
      serial-register-bridge client /dev/ttyUSB1
    """
    cfg = load_config(config_path)
    if log_level:
        cfg.log_level = log_level.upper()
    _setup_logging(cfg.log_level)
    ctx.obj = cfg


@main.command()
@click.argument("port", required=False)
@click.option("-b", "--baudrate", type=int, default=None, help="Baud rate (default: from config, 115200)")
@click.pass_obj
def server(cfg: Config, port: Optional[str], baudrate: Optional[int]) -> None:
    """Serve the register store until a client sends 'quit'."""
    store = RegisterStore(cfg.registers)
    dispatcher = Dispatcher(store)
    with _open(cfg, port, baudrate) as comm:
        _logger.info("Server port is: %s", comm.port)
        dispatcher.serve(comm)


@main.command()
@click.argument("port", required=False)
@click.option("-b", "--baudrate", type=int, default=None, help="Baud rate (default: from config, 115200)")
@click.pass_obj
def client(cfg: Config, port: Optional[str], baudrate: Optional[int]) -> None:
    """Interactive client: type AT-commands, 'insert+<value>+<bounds>', 'help' or 'quit'."""
    with _open(cfg, port, baudrate) as comm:
        click.echo(f"Client port is: {comm.port}")
        session = Client(comm, response_timeout=cfg.response_timeout)
        click.echo(BANNER)
        while not session.finished:
            try:
                line = click.prompt("~", prompt_suffix=" ", default="", show_default=False)
            except click.Abort:
                break
            for out in session.execute(line):
                click.echo(out)


@main.command()
def ports() -> None:
    """List available serial ports."""
    found = _likely_ports()
    if not found:
        click.echo("No serial ports found.")
        return
    for p in found:
        click.echo(p)


if __name__ == "__main__":
    main()
