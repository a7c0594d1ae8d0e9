"""Task market — task storage and the task lifecycle state machine."""

from taskbazaar.market.task_registry import TaskRegistry
from taskbazaar.market.task_state_machine import TaskStateMachine

__all__ = ["TaskRegistry", "TaskStateMachine"]
