import asyncio
from typing import Optional

from family_graph.core.errors import TraversalTimeoutError
from family_graph.core.logging import get_logger

logger = get_logger(__name__)

async def with_deadline(coro, timeout: Optional[float], operation: str):
    """Await ``coro``, turning an expired deadline into ``TraversalTimeoutError``."""
    if timeout is None:
        return await coro
    try:
        return await asyncio.wait_for(coro, timeout)
    except asyncio.TimeoutError as e:
        logger.warning("traversal_timeout", operation=operation, timeout=timeout)
        raise TraversalTimeoutError(f"{operation} did not finish within {timeout}s") from e
