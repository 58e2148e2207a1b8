"""Request execution: dispatcher, mutation executor and resolver context."""

from .context import ResolverContext, StoreHandle
from .dispatcher import Dispatcher
from .mutations import MutationExecutor
from .request import ExecutionResult, OperationRequest, RequestState

__all__ = [
    "Dispatcher",
    "ExecutionResult",
    "MutationExecutor",
    "OperationRequest",
    "RequestState",
    "ResolverContext",
    "StoreHandle",
]
