from __future__ import annotations

import unittest

from serial_register_bridge.registers import DEFAULT_REGISTERS, RegisterStore, WriteResult


class TestRegisterStore(unittest.TestCase):
    def setUp(self):
        self.store = RegisterStore(DEFAULT_REGISTERS)

    def test_default_schema(self):
        self.assertEqual([r.id for r in self.store], ["REG1", "REG2"])
        self.assertEqual(self.store.read("REG1"), 0)
        self.assertEqual(self.store.read_bounds("REG1"), "0-16535")
        self.assertEqual(self.store.read("REG2"), 3)
        self.assertEqual(self.store.read_bounds("REG2"), "1|2|3")

    def test_first_register_always_present(self):
        store = RegisterStore()
        self.assertEqual(len(store), 1)
        self.assertEqual(store.read("REG1"), 0)

    def test_append_assigns_sequential_ids(self):
        ids = [self.store.append(i, "0-100") for i in range(5)]
        self.assertEqual(ids, ["REG3", "REG4", "REG5", "REG6", "REG7"])
        self.assertEqual(len(self.store), 7)

    def test_append_does_not_validate(self):
        reg_id = self.store.append(500, "0-10")
        self.assertEqual(self.store.read(reg_id), 500)
        reg_id = self.store.append(0, "not bounds")
        self.assertEqual(self.store.read_bounds(reg_id), "not bounds")

    def test_lookup_missing(self):
        self.assertIsNone(self.store.lookup("REG9"))
        self.assertIsNone(self.store.read("REG9"))
        self.assertIsNone(self.store.read_bounds("reg1"))

    def test_write(self):
        self.assertEqual(self.store.write("REG2", 2), WriteResult.OK)
        self.assertEqual(self.store.read("REG2"), 2)

    def test_rejected_write_leaves_value(self):
        self.assertEqual(self.store.write("REG1", 16535), WriteResult.OUT_OF_BOUNDS)
        self.assertEqual(self.store.read("REG1"), 0)
        self.assertEqual(self.store.write("REG2", 4), WriteResult.OUT_OF_BOUNDS)
        self.assertEqual(self.store.read("REG2"), 3)

    def test_write_missing(self):
        self.assertEqual(self.store.write("REG3", 1), WriteResult.NOT_FOUND)

    def test_malformed_bounds_reject_writes(self):
        reg_id = self.store.append(7, "garbage")
        self.assertEqual(self.store.write(reg_id, 7), WriteResult.OUT_OF_BOUNDS)
        self.assertEqual(self.store.read(reg_id), 7)

    def test_teardown(self):
        self.store.teardown()
        self.assertTrue(self.store.closed)
        self.assertEqual(len(self.store), 0)
        self.store.teardown()  # no-op
        with self.assertRaises(RuntimeError):
            self.store.read("REG1")
        with self.assertRaises(RuntimeError):
            self.store.append(1, "0-2")


if __name__ == "__main__":
    unittest.main()
