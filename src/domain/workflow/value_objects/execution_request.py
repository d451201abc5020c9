from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass(frozen=True)
class ExecutionRequest:
    """
    One remote invocation of a named workflow.

    Validation happens in the workflow client so that a bad request still
    leaves a recorded (failed) history attempt behind. The credential is
    excluded from repr to keep it out of logs.
    """

    workflow_id: str
    parameters: Mapping[str, Any] | None
    credential: str | None = field(default=None, repr=False)
    bot_id: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "workflow_id": self.workflow_id,
            "parameters": dict(self.parameters or {}),
        }
        if self.bot_id:
            payload["bot_id"] = self.bot_id
        return payload
