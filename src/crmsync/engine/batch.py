"""
Rate-limited bulk application of a diff to the destination.
"""

import asyncio
import logging
from typing import Any, List, Sequence, Union

from ..connectors.base import DestinationConnector, MAX_BATCH_SIZE
from ..exceptions import BatchApplyError
from ..models.sync import SyncOperation, SyncPayload

logger = logging.getLogger(__name__)

# Chunk requests allowed in flight at once
MAX_IN_FLIGHT = 5


def chunked(items: Sequence[Any], size: int) -> List[List[Any]]:
    """Split ``items`` into consecutive lists of at most ``size`` elements."""
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


class BatchApplier:
    """
    Applies creates, updates and deletes in chunks, a wave of chunks at a time.

    Each wave launches up to ``max_in_flight`` chunk requests and waits for all
    of them before the next wave starts. A failing chunk stops the remaining
    waves. Chunks applied by earlier waves stay applied: there is no rollback,
    so a failed call can leave the table partially updated.
    """

    def __init__(self, destination: DestinationConnector, chunk_size: int = MAX_BATCH_SIZE,
                 max_in_flight: int = MAX_IN_FLIGHT):
        if chunk_size < 1 or chunk_size > MAX_BATCH_SIZE:
            raise ValueError(f"chunk_size must be between 1 and {MAX_BATCH_SIZE}")
        if max_in_flight < 1:
            raise ValueError("max_in_flight must be at least 1")
        self.destination = destination
        self.chunk_size = chunk_size
        self.max_in_flight = max_in_flight

    async def apply(self, operation: Union[SyncOperation, str], table: str,
                    items: Sequence[Union[SyncPayload, str]]) -> List[Any]:
        """
        Apply one operation kind to ``table``.

        Args:
            operation: create, update or delete
            table: Destination table
            items: SyncPayloads for create/update, record ids for delete

        Returns:
            Per-record results of all chunks, in input order

        Raises:
            BatchApplyError: If any chunk fails. ``applied`` holds the results
                of every chunk that succeeded, including the other chunks of
                the failing wave. Later waves are not started.
        """
        operation = SyncOperation(operation)
        chunks = chunked(list(items), self.chunk_size)
        results: List[Any] = []

        for start in range(0, len(chunks), self.max_in_flight):
            wave = chunks[start:start + self.max_in_flight]
            logger.debug(f"{operation.value} {table}: wave of {len(wave)} chunk(s) starting at chunk {start}")
            wave_results = await asyncio.gather(
                *(self._apply_chunk(operation, table, chunk) for chunk in wave),
                return_exceptions=True
            )

            failures = []
            for offset, chunk_result in enumerate(wave_results):
                if isinstance(chunk_result, BaseException):
                    logger.error(f"Bulk {operation.value} on {table}: chunk {start + offset} failed: {chunk_result}")
                    failures.append(chunk_result)
                else:
                    results.extend(chunk_result)

            if failures:
                logger.error(
                    f"Bulk {operation.value} on {table} stopped; {len(results)} records remain applied"
                )
                raise BatchApplyError(
                    operation.value, table, applied=results,
                    message=f"Bulk {operation.value} on table '{table}' failed after "
                            f"{len(results)} records were applied ({len(failures)} chunk(s) rejected): "
                            f"{failures[0]}"
                ) from failures[0]

        return results

    async def _apply_chunk(self, operation: SyncOperation, table: str, chunk: List[Any]) -> List[Any]:
        if operation == SyncOperation.DELETE:
            return await self.destination.bulk_delete(table, chunk)
        records = [payload.to_request() for payload in chunk]
        if operation == SyncOperation.CREATE:
            return await self.destination.bulk_create(table, records, typecast=True)
        return await self.destination.bulk_update(table, records, typecast=True)
