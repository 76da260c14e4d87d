"""
Undo/Redo System

This module implements an undo/redo system using the command pattern for
contour edits.

Inputs:
    - Commands to execute
    - Undo/redo requests

Outputs:
    - Command execution
    - State restoration

Requirements:
    - Standard library only
"""

from typing import List
from abc import ABC, abstractmethod


class Command(ABC):
    """
    Abstract base class for commands.
    """

    @abstractmethod
    def execute(self) -> None:
        """Execute the command."""
        pass

    @abstractmethod
    def undo(self) -> None:
        """Undo the command."""
        pass


class UndoRedoManager:
    """
    Manages undo/redo operations.

    Features:
    - Execute commands
    - Undo/redo operations
    - Command history management
    """

    def __init__(self, max_history: int = 100):
        """
        Initialize the undo/redo manager.

        Args:
            max_history: Maximum number of commands to keep in history
        """
        self.undo_stack: List[Command] = []
        self.redo_stack: List[Command] = []
        self.max_history = max_history

    def execute_command(self, command: Command) -> None:
        """
        Execute a command and add it to undo stack.

        Args:
            command: Command to execute
        """
        command.execute()
        self.push_executed(command)

    def push_executed(self, command: Command) -> None:
        """Record a command whose effect has already been applied."""
        self.undo_stack.append(command)

        # Clear redo stack when new command is executed
        self.redo_stack.clear()

        # Limit history size
        if len(self.undo_stack) > self.max_history:
            self.undo_stack.pop(0)

    def undo(self) -> bool:
        """
        Undo the last command.

        Returns:
            True if undo was successful, False if no commands to undo
        """
        if not self.undo_stack:
            return False

        command = self.undo_stack.pop()
        command.undo()
        self.redo_stack.append(command)
        return True

    def redo(self) -> bool:
        """
        Redo the last undone command.

        Returns:
            True if redo was successful, False if no commands to redo
        """
        if not self.redo_stack:
            return False

        command = self.redo_stack.pop()
        command.execute()
        self.undo_stack.append(command)
        return True

    def can_undo(self) -> bool:
        return len(self.undo_stack) > 0

    def can_redo(self) -> bool:
        return len(self.redo_stack) > 0

    def clear(self) -> None:
        """Clear all command history."""
        self.undo_stack.clear()
        self.redo_stack.clear()


class ContourEditCommand(Command):
    """
    Command swapping one slice's contour between its state before and after
    a brush stroke. Uses composite key: (structure_id, slice_position).
    """

    def __init__(self, contour_store, structure_id: int, slice_position: float,
                 before, after):
        """
        Initialize contour edit command.

        Args:
            contour_store: ContourStore instance
            structure_id: Edited structure
            slice_position: Edited slice position
            before: Contour copy before the edit, or None if the slice was empty
            after: Contour copy after the edit, or None if the slice was cleared
        """
        self.contour_store = contour_store
        self.key = (structure_id, slice_position)
        self.before = before.copy() if before is not None else None
        self.after = after.copy() if after is not None else None

    def execute(self) -> None:
        self.contour_store.restore_contour(self.key[0], self.key[1], self.after)

    def undo(self) -> None:
        self.contour_store.restore_contour(self.key[0], self.key[1], self.before)

