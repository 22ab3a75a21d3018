__author__ = "desultory"
__version__ = "1.0.1"

from typing import Callable

from zenlib.logging import loggify
from zenlib.util import colorize as c_


@loggify
class Transaction:
    """
    Log of completed mutations, each with a compensating action.

    Actions are undone in reverse order of recording.
    Actions recorded with final=True are undone after all others, in reverse order.
    """

    def __init__(self, *args, **kwargs):
        self.actions = []
        self.final_actions = []

    def record(self, description: str, undo: Callable, *args, final=False) -> None:
        """Records a completed mutation, undo(*args) reverses it."""
        self.logger.debug("Recording mutation: %s" % description)
        if final:
            self.final_actions.append((description, undo, args))
        else:
            self.actions.append((description, undo, args))

    def rollback(self) -> list[str]:
        """Runs all compensating actions, continuing past failures.
        Returns the descriptions of mutations which could not be undone.
        The log is empty afterwards."""
        failed = []
        for description, undo, args in [*reversed(self.actions), *reversed(self.final_actions)]:
            self.logger.warning("Undoing: %s" % c_(description, "yellow"))
            try:
                undo(*args)
            except Exception as e:
                self.logger.error("Failed to undo '%s': %s" % (description, c_(e, "red", bold=True)))
                failed.append(description)
        self.actions.clear()
        self.final_actions.clear()
        return failed

    def __len__(self) -> int:
        return len(self.actions) + len(self.final_actions)

    def __bool__(self) -> bool:
        return len(self) > 0
