"""Bounded-operation executor"""

import asyncio
from typing import Awaitable, TypeVar

from volmount.utils.exceptions import OperationTimeoutException

T = TypeVar('T')

OPERATION_TIMEOUT_MS = 5000


async def with_timeout(operation: Awaitable[T], timeout_ms: int = OPERATION_TIMEOUT_MS,
                       label: str = 'Operation') -> T:
    """
    Await an operation with a deadline.

    The awaiting task is cancelled when the deadline passes. External
    processes spawned by the operation are not signalled here; see
    ProcessInvoker(kill_on_cancel=...).

    Args:
        operation: Coroutine or awaitable to run
        timeout_ms: Deadline in milliseconds
        label: Operation name used in the timeout message

    Returns:
        Result of the operation

    Raises:
        OperationTimeoutException: If the deadline passes first
    """
    try:
        return await asyncio.wait_for(operation, timeout=timeout_ms / 1000.0)
    except asyncio.TimeoutError:
        raise OperationTimeoutException(label, timeout_ms) from None
