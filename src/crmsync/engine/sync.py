"""
Main sync engine that mirrors configured Salesforce objects into Airtable.
"""

import asyncio
import logging
import uuid
from datetime import datetime
from typing import Optional

from ..connectors.base import SourceConnector, DestinationConnector
from ..models.config import SyncConfig, ObjectMapping
from ..models.sync import SyncExecution, SyncOperation, StageResult
from .batch import BatchApplier
from .diff import compute_diff
from .fetch import fetch_all
from .index import build_destination_index
from .query import build_query

logger = logging.getLogger(__name__)


class SyncEngine:
    """
    Runs the configured objects one after another.

    Each object is queried, indexed against its destination table, diffed and
    applied (creates, then updates, then deletes). The values an object
    returns restrict the query of the next object through that object's
    ``filter_field``. The first failure stops the run.
    """

    def __init__(self, source: SourceConnector, destination: DestinationConnector, config: SyncConfig,
                 applier: Optional[BatchApplier] = None):
        self.source = source
        self.destination = destination
        self.config = config
        self.applier = applier or BatchApplier(destination)

    async def run(self, dry_run: bool = False) -> SyncExecution:
        """
        Execute a full sync run.

        Source and destination both authenticate before the first object is
        synced, so rejected credentials abort the run before any query or write.

        Args:
            dry_run: Compute and log the diffs without writing to the destination

        Returns:
            SyncExecution with one StageResult per completed object. On failure
            its status is FAILED and ``error_message`` holds the error verbatim.
        """
        execution = SyncExecution(id=str(uuid.uuid4()), base_id=self.config.base_id, dry_run=dry_run)
        logger.info(
            f"Starting sync execution {execution.id} for base {self.config.base_id}: "
            f"{[m.object_name for m in self.config.objects]}{' (dry run)' if dry_run else ''}"
        )

        try:
            await self.source.authenticate()
            await self.destination.authenticate()

            previous: Optional[StageResult] = None
            for mapping in self.config.objects:
                previous = await self.sync_object(mapping, previous, dry_run=dry_run)
                execution.stage_results.append(previous)

            execution.mark_completed()
            logger.info(f"Sync execution {execution.id} completed in {execution.execution_time_seconds:.1f}s")

        except Exception as e:
            logger.error(f"Sync execution {execution.id} failed: {e}")
            execution.mark_failed(str(e))

        return execution

    async def sync_object(self, mapping: ObjectMapping, previous: Optional[StageResult] = None,
                          dry_run: bool = False) -> StageResult:
        """
        Sync one object.

        Args:
            mapping: The object's configuration
            previous: Result of the preceding object, whose return values
                filter this object's query when ``mapping.filter_field`` is set
            dry_run: Skip the destination writes

        Returns:
            StageResult with counts and return values. Its ``query`` is None
            when an empty carried set skipped the query.
        """
        started_at = datetime.utcnow()
        object_ids = self._carried_ids(mapping, previous)

        if object_ids is not None and not object_ids:
            # "in ()" is rejected by Salesforce and would match nothing anyway
            query = None
            logger.warning(
                f"No {mapping.filter_field} values carried into {mapping.object_name}; skipping the query"
            )
            index = await build_destination_index(
                self.destination, mapping.table, mapping.primary_destination_field
            )
            records = []
        else:
            query = build_query(
                mapping.fields,
                mapping.object_name,
                where_clause=mapping.where_clause,
                object_ids=object_ids,
                filter_field=mapping.filter_field,
            )
            logger.info(f"Sending query: {query}")
            records, index = await asyncio.gather(
                fetch_all(self.source, query),
                build_destination_index(self.destination, mapping.table, mapping.primary_destination_field),
            )
        logger.info(f"Received {len(records)} {mapping.object_name} records")

        diff = compute_diff(records, mapping, index, index.unkeyed)
        logger.info(
            f"{mapping.object_name} -> {mapping.table}: {len(diff.creates)} to create, "
            f"{len(diff.updates)} to update, {len(diff.deletes)} to delete"
        )

        if not dry_run:
            logger.info(f"Creating {len(diff.creates)} records in {mapping.table}")
            await self.applier.apply(SyncOperation.CREATE, mapping.table, diff.creates)
            logger.info(f"Updating {len(diff.updates)} records in {mapping.table}")
            await self.applier.apply(SyncOperation.UPDATE, mapping.table, diff.updates)
            logger.info(f"Deleting {len(diff.deletes)} records from {mapping.table}")
            await self.applier.apply(SyncOperation.DELETE, mapping.table, diff.deletes)

        completed_at = datetime.utcnow()
        return StageResult(
            object_name=mapping.object_name,
            table=mapping.table,
            query=query,
            fetched=len(records),
            created=len(diff.creates),
            updated=len(diff.updates),
            deleted=len(diff.deletes),
            return_values=diff.return_values if mapping.return_field is not None else None,
            dry_run=dry_run,
            started_at=started_at,
            completed_at=completed_at,
            execution_time_seconds=(completed_at - started_at).total_seconds(),
        )

    @staticmethod
    def _carried_ids(mapping: ObjectMapping, previous: Optional[StageResult]):
        """Values from ``previous`` that restrict ``mapping``'s query, or None."""
        if previous is None or previous.return_values is None:
            return None
        if mapping.filter_field is None:
            logger.debug(
                f"{mapping.object_name} has no filter_field; ignoring {len(previous.return_values)} "
                f"values returned by {previous.object_name}"
            )
            return None
        return list(previous.return_values)
