from enum import Enum


class ExecutionStatus(str, Enum):
    """
    Status of a remote workflow run, using the remote API's wire values.

    States:
        RUNNING: Accepted and still executing remotely.
        COMPLETED: Finished with an output.
        FAILED: Finished with an error payload.
        CANCELLED: Stopped on the remote side.
    """

    RUNNING = "Running"
    COMPLETED = "Completed"
    FAILED = "Failed"
    CANCELLED = "Cancelled"

    @property
    def is_terminal(self) -> bool:
        """True for states from which no further transition occurs."""
        return self is not ExecutionStatus.RUNNING

    def can_transition_to(self, target: "ExecutionStatus") -> bool:
        valid_transitions = {
            ExecutionStatus.RUNNING: {
                ExecutionStatus.RUNNING,
                ExecutionStatus.COMPLETED,
                ExecutionStatus.FAILED,
                ExecutionStatus.CANCELLED,
            },
            ExecutionStatus.COMPLETED: set(),
            ExecutionStatus.FAILED: set(),
            ExecutionStatus.CANCELLED: set(),
        }
        return target in valid_transitions[self]
