import unittest

from utils import lifecycle
from utils.errors import InvalidTransitionError


class LifecycleTestCase(unittest.TestCase):
    def test_next_status(self):
        self.assertEqual(lifecycle.next_status("pending"), "preparing")
        self.assertEqual(lifecycle.next_status("preparing"), "shipped")
        with self.assertRaises(InvalidTransitionError):
            lifecycle.next_status("shipped")
        with self.assertRaises(InvalidTransitionError):
            lifecycle.next_status("cancelled")

    def test_check_transition(self):
        self.assertEqual(lifecycle.check_transition("pending", None), "preparing")
        self.assertEqual(lifecycle.check_transition("pending", "preparing"), "preparing")
        with self.assertRaises(InvalidTransitionError) as ctx:
            lifecycle.check_transition("pending", "shipped")
        self.assertIn("Pending", ctx.exception.message)
        with self.assertRaises(InvalidTransitionError):
            lifecycle.check_transition("preparing", "pending")
        with self.assertRaises(InvalidTransitionError):
            lifecycle.check_transition("shipped", None)

    def test_guards(self):
        self.assertTrue(lifecycle.can_edit("pending"))
        self.assertFalse(lifecycle.can_edit("preparing"))
        self.assertFalse(lifecycle.can_edit("shipped"))
        self.assertTrue(lifecycle.can_delete("shipped"))
        self.assertFalse(lifecycle.can_delete("pending"))
        self.assertFalse(lifecycle.can_delete("preparing"))
