from __future__ import annotations

import unittest
from typing import List, Optional

from serial_register_bridge.client import Client, Menu
from serial_register_bridge.comm import TransportError
from serial_register_bridge.dispatcher import Dispatcher
from serial_register_bridge.protocol import encode, parse
from serial_register_bridge.registers import DEFAULT_REGISTERS, RegisterStore


class ServerBackedComm:
    """Answers each sent message with a dispatcher, like a server at the far end of the line."""

    def __init__(self, dispatcher: Optional[Dispatcher] = None) -> None:
        self.dispatcher = dispatcher or Dispatcher(RegisterStore(DEFAULT_REGISTERS))
        self.sent: List[str] = []
        self.replies: List[Optional[str]] = []
        self.fail = False

    def send_message(self, text: str) -> int:
        if self.fail:
            raise TransportError("port gone")
        self.sent.append(text)
        response = self.dispatcher.handle(parse(text))
        self.replies.append(encode(response).decode("ascii").strip())
        return len(text)

    def receive_message(self, timeout: Optional[float] = None) -> Optional[str]:
        return self.replies.pop(0) if self.replies else None


class SilentComm(ServerBackedComm):
    def send_message(self, text: str) -> int:
        self.sent.append(text)
        return len(text)


class RejectingComm(ServerBackedComm):
    def send_message(self, text: str) -> int:
        self.sent.append(text)
        self.replies.append("INVALID AT-COMMAND")
        return len(text)


class TestMenu(unittest.TestCase):
    def test_initial_entries(self):
        menu = Menu()
        lines = menu.render()
        self.assertEqual(lines[0], "~ Available AT Commands:")
        self.assertEqual(len(lines), 7)
        self.assertEqual(menu.register_count, 2)
        self.assertIn("~ REG1: Read the value of the 1st register -> Response: <int>", lines)
        self.assertIn("~ REG2=?: Read the list of all allowed values for the 2nd register", lines)

    def test_add_register(self):
        menu = Menu()
        self.assertEqual(menu.add_register("0-10"), "REG3")
        lines = menu.render()
        self.assertEqual(len(lines), 10)
        self.assertTrue(lines[-3].startswith("~ REG3: Read the value of register 3 (bounds 0-10)"))
        self.assertTrue(lines[-1].endswith("-> Response: OK|InvalidInput"))


class TestClient(unittest.TestCase):
    def test_help_is_local(self):
        comm = ServerBackedComm()
        client = Client(comm)
        self.assertEqual(client.execute("help"), Menu().render())
        self.assertEqual(comm.sent, [])

    def test_at_command(self):
        client = Client(ServerBackedComm())
        self.assertEqual(client.execute("AT+REG2=?"), ["1|2|3"])
        self.assertEqual(client.execute("AT+REG1=16535"), ["InvalidInput"])
        self.assertEqual(client.execute("  "), [])

    def test_only_first_token_is_sent(self):
        comm = ServerBackedComm()
        client = Client(comm)
        self.assertEqual(client.execute("  AT+REG2=?  trailing words"), ["1|2|3"])
        self.assertEqual(comm.sent, ["AT+REG2=?"])
        self.assertEqual(client.execute("help me"), Menu().render())
        self.assertEqual(comm.sent, ["AT+REG2=?"])

    def test_insert_updates_menu_after_ack(self):
        client = Client(ServerBackedComm())
        out = client.execute("insert+5+0-10")
        self.assertEqual(out, ["INSERTION COMPLETE", "~ Register inserted, help menu updated"])
        self.assertEqual(client.menu.register_count, 3)
        self.assertEqual(client.execute("AT+REG3"), ["5"])
        self.assertTrue(any(line.startswith("~ REG3:") for line in client.execute("help")))

    def test_insert_without_ack_leaves_menu(self):
        client = Client(RejectingComm())
        self.assertEqual(client.execute("insert+5+0-10"), ["INVALID AT-COMMAND"])
        self.assertEqual(client.menu.register_count, 2)

        client = Client(SilentComm(), response_timeout=0.01)
        self.assertEqual(client.execute("insert+5+0-10"), ["No response received within timeout"])
        self.assertEqual(client.menu.register_count, 2)

    def test_quit_finishes(self):
        comm = ServerBackedComm()
        client = Client(comm)
        self.assertEqual(client.execute("quit"), ["TERMINATING"])
        self.assertTrue(client.finished)
        self.assertTrue(comm.dispatcher.terminated)

    def test_transport_error_reported(self):
        comm = ServerBackedComm()
        comm.fail = True
        client = Client(comm)
        with self.assertLogs("serial_register_bridge.client", level="ERROR"):
            out = client.execute("AT+REG1")
        self.assertEqual(out, ["ERROR: port gone"])
        self.assertFalse(client.finished)


if __name__ == "__main__":
    unittest.main()
