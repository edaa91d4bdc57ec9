from __future__ import annotations

from django.core.exceptions import ValidationError
from django.test import SimpleTestCase

from core.exceptions import InvalidTransition
from core.transitions import TransitionTable


class TransitionTableTests(SimpleTestCase):
    def setUp(self):
        self.table = TransitionTable(
            {"draft": ["sent", "void"], "sent": ["done"], "done": [], "void": []},
            label="widget status",
        )

    def test_allowed_and_terminal(self):
        self.assertEqual(self.table.allowed_transitions("draft"), frozenset({"sent", "void"}))
        self.assertTrue(self.table.can_transition("sent", "done"))
        self.assertFalse(self.table.can_transition("done", "sent"))
        self.assertTrue(self.table.is_terminal("done"))
        self.assertFalse(self.table.is_terminal("draft"))

    def test_check_raises_invalid_transition(self):
        with self.assertRaises(InvalidTransition) as cm:
            self.table.check("done", "draft")
        err = cm.exception
        self.assertIsInstance(err, ValidationError)
        self.assertEqual(err.source, "done")
        self.assertEqual(err.target, "draft")
        self.assertIn("widget status", err.messages[0])

    def test_unknown_state_is_rejected(self):
        with self.assertRaises(ValueError):
            self.table.allowed_transitions("archived")

    def test_targets_must_be_declared_states(self):
        with self.assertRaises(ValueError):
            TransitionTable({"a": ["b"]})
