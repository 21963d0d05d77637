"""ORM models exposed by the offline sync client."""
from .queued_operation import OperationState, QueuedOperation

__all__ = ["OperationState", "QueuedOperation"]
