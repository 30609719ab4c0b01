from .ids import new_request_id
from .memory import DuplicateRequestIdError, RequestStore
from .models import Outcome, RequestRecord, RequestStatus
from .waiter import wait_for_completion

__all__ = [
    "DuplicateRequestIdError",
    "Outcome",
    "RequestRecord",
    "RequestStatus",
    "RequestStore",
    "new_request_id",
    "wait_for_completion",
]
