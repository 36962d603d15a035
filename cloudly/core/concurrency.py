# ============================================================================
# FILE: cloudly/core/concurrency.py
# ============================================================================
import asyncio
from typing import Any, Awaitable, List
from cloudly.core.exceptions import OperationFailedError
import logging

logger = logging.getLogger(__name__)

async def fan_out(*aws: Awaitable[Any], timeout: float) -> List[Any]:
    """
    Run independent awaitables concurrently and return their results in order.

    The whole group shares one deadline. If any branch raises or the deadline
    passes, every branch still running is cancelled and the error propagates,
    so callers never observe partial results.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return await asyncio.wait_for(asyncio.gather(*tasks), timeout=timeout)
    except asyncio.TimeoutError:
        logger.error(f"Fan-out of {len(tasks)} queries exceeded {timeout}s deadline")
        raise OperationFailedError("Operation timed out")
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()
        # Let cancelled branches unwind (and release their sessions) before returning
        await asyncio.gather(*tasks, return_exceptions=True)
