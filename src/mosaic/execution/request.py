"""
Request and result models for operation dispatch.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from ..errors import MosaicError


class OperationRequest(BaseModel):
    """Wire model for one operation invocation."""

    operation: str
    arguments: dict[str, Any] = Field(default_factory=dict)
    # Requested output field names of the operation's return type
    fields: list[str] = Field(default_factory=list)


class RequestState(Enum):
    """Per-request lifecycle states."""

    RECEIVED = "received"
    AUTHORIZING = "authorizing"
    DENIED = "denied"
    AUTHORIZED = "authorized"
    RESOLVING = "resolving"
    FAILED = "failed"
    COMPLETED = "completed"


TERMINAL_STATES = frozenset({RequestState.DENIED, RequestState.FAILED, RequestState.COMPLETED})


@dataclass
class ExecutionResult:
    """Outcome of dispatching one request, including its state transitions."""

    operation: str
    state: RequestState = RequestState.RECEIVED
    data: Any = None
    errors: list[MosaicError] = field(default_factory=list)
    transitions: list[RequestState] = field(default_factory=lambda: [RequestState.RECEIVED])

    def advance(self, state: RequestState) -> None:
        self.state = state
        self.transitions.append(state)

    @property
    def terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def ok(self) -> bool:
        return self.state is RequestState.COMPLETED and not self.errors

    def to_response(self) -> dict[str, Any]:
        """Wire shape: ``{data}``, ``{data, errors}`` or ``{errors}``."""
        errors = [error.to_dict() for error in self.errors]
        if self.state is RequestState.COMPLETED:
            body: dict[str, Any] = {"data": self.data}
            if errors:
                body["errors"] = errors
            return body
        return {"errors": errors}
