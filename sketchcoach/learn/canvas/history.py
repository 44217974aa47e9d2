import logging
from typing import List
from .commands import Command, DocumentState, apply_command, revert_command

logger = logging.getLogger("command_stack")


class CommandStack:
    """
    Linear undo history.

    `cursor` points at the last applied command (-1 when nothing is applied).
    Pushing after an undo drops everything past the cursor for good.
    """

    def __init__(self):
        self._commands: List[Command] = []
        self.cursor = -1

    def __len__(self) -> int:
        return len(self._commands)

    @property
    def commands(self) -> List[Command]:
        return list(self._commands)

    def can_undo(self) -> bool:
        return self.cursor >= 0

    def can_redo(self) -> bool:
        return self.cursor < len(self._commands) - 1

    def push(self, command: Command) -> None:
        dropped = len(self._commands) - (self.cursor + 1)
        if dropped:
            logger.debug("Discarding %d redoable command(s)", dropped)
        del self._commands[self.cursor + 1:]
        self._commands.append(command)
        self.cursor = len(self._commands) - 1

    def undo(self, state: DocumentState) -> DocumentState:
        if not self.can_undo():
            return state
        command = self._commands[self.cursor]
        self.cursor -= 1
        return revert_command(state, command)

    def redo(self, state: DocumentState) -> DocumentState:
        if not self.can_redo():
            return state
        self.cursor += 1
        return apply_command(state, self._commands[self.cursor])

    def clear(self) -> None:
        self._commands = []
        self.cursor = -1
