"""Task state machine — enforces valid lifecycle transitions.

Task lifecycle:
    OPEN → CLAIMED → SUBMITTED → APPROVED
                               → REJECTED

State semantics:
- OPEN: funded and visible; any worker may claim it.
- CLAIMED: one worker holds it; only that worker may submit.
- SUBMITTED: work delivered; only the poster may approve or reject.
- APPROVED: terminal, escrow paid out to the claimant.
- REJECTED: terminal, escrow refunded to the poster. No re-claim.

Fail-closed: invalid transitions return errors. There are no implicit
transitions and no path back to OPEN.
"""

from __future__ import annotations

from taskbazaar.models.task import Task, TaskStatus


# Valid transitions: {from_state: {allowed_to_states}}
_TRANSITIONS: dict[TaskStatus, set[TaskStatus]] = {
    TaskStatus.OPEN: {TaskStatus.CLAIMED},
    TaskStatus.CLAIMED: {TaskStatus.SUBMITTED},
    TaskStatus.SUBMITTED: {TaskStatus.APPROVED, TaskStatus.REJECTED},
    # Terminal states have no outgoing transitions
    TaskStatus.APPROVED: set(),
    TaskStatus.REJECTED: set(),
}


class TaskStateMachine:
    """Validates and applies task state transitions.

    Pure computation: authorization and coin movement are handled by
    the service layer.
    """

    @staticmethod
    def validate_transition(task: Task, target: TaskStatus) -> list[str]:
        """Check if a transition is valid. Returns errors (empty = OK)."""
        current = task.status
        allowed = _TRANSITIONS.get(current, set())

        if target not in allowed:
            allowed_str = ", ".join(s.value for s in sorted(allowed, key=lambda x: x.value))
            return [
                f"Invalid task transition: {current.value} → {target.value}. "
                f"Allowed from {current.value}: [{allowed_str}]"
            ]
        return []

    @staticmethod
    def apply_transition(task: Task, target: TaskStatus) -> list[str]:
        """Validate and apply a state transition.

        Returns errors if transition is invalid. On success,
        mutates task.status and returns empty list.
        """
        errors = TaskStateMachine.validate_transition(task, target)
        if errors:
            return errors
        task.status = target
        return []

    @staticmethod
    def is_terminal(status: TaskStatus) -> bool:
        return not _TRANSITIONS.get(status)

    @staticmethod
    def valid_transitions(status: TaskStatus) -> set[TaskStatus]:
        """Return the set of valid target states from the given state."""
        return set(_TRANSITIONS.get(status, set()))
