"""
Unit tests for the undo/redo system (utils.undo_redo).

Tests command execution, history limits and contour edit commands
against a ContourStore. Runnable with pytest or unittest.
"""

import unittest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from tools.contour_store import ContourStore, Structure
from utils.undo_redo import Command, ContourEditCommand, UndoRedoManager

SQUARE = [(0.0, 0.0), (10.0, 0.0), (10.0, 10.0), (0.0, 10.0)]


class CounterCommand(Command):
    """Adds one to a shared counter."""

    def __init__(self, counter):
        self.counter = counter

    def execute(self):
        self.counter[0] += 1

    def undo(self):
        self.counter[0] -= 1


class TestUndoRedoManager(unittest.TestCase):
    """Tests for UndoRedoManager."""

    def setUp(self):
        self.counter = [0]
        self.manager = UndoRedoManager(max_history=3)

    def test_execute_undo_redo(self):
        self.manager.execute_command(CounterCommand(self.counter))
        self.assertEqual(self.counter[0], 1)
        self.assertTrue(self.manager.can_undo())
        self.assertFalse(self.manager.can_redo())

        self.assertTrue(self.manager.undo())
        self.assertEqual(self.counter[0], 0)
        self.assertTrue(self.manager.can_redo())

        self.assertTrue(self.manager.redo())
        self.assertEqual(self.counter[0], 1)

    def test_empty_stacks(self):
        self.assertFalse(self.manager.undo())
        self.assertFalse(self.manager.redo())

    def test_new_command_clears_redo(self):
        self.manager.execute_command(CounterCommand(self.counter))
        self.manager.undo()
        self.manager.execute_command(CounterCommand(self.counter))
        self.assertFalse(self.manager.can_redo())

    def test_history_limit(self):
        for _ in range(5):
            self.manager.execute_command(CounterCommand(self.counter))
        self.assertEqual(len(self.manager.undo_stack), 3)
        while self.manager.undo():
            pass
        self.assertEqual(self.counter[0], 2)

    def test_clear(self):
        self.manager.execute_command(CounterCommand(self.counter))
        self.manager.undo()
        self.manager.clear()
        self.assertFalse(self.manager.can_undo())
        self.assertFalse(self.manager.can_redo())


class TestContourEditCommand(unittest.TestCase):
    """Tests for ContourEditCommand."""

    def setUp(self):
        self.store = ContourStore()
        self.store.add_structure(Structure(1, "GTV", (255, 0, 0)))

    def test_undo_restores_empty_slice(self):
        after = self.store.upsert_contour(1, 5.0, [SQUARE])
        command = ContourEditCommand(self.store, 1, 5.0, None, after)
        manager = UndoRedoManager()
        manager.push_executed(command)

        manager.undo()
        self.assertIsNone(self.store.get_contour(1, 5.0))
        manager.redo()
        self.assertAlmostEqual(self.store.get_contour(1, 5.0).area(), 100.0)


if __name__ == "__main__":
    unittest.main()
