"""
Shared fixtures: in-memory source and destination connectors.
"""
import asyncio
import itertools
import re
from typing import Any, Dict, List, Optional, Tuple

import pytest

from crmsync.connectors.base import (
    SourceConnector, DestinationConnector, QueryPage, DestinationRecord
)
from crmsync.exceptions import AuthenticationError, SalesforceAPIError
from crmsync.models.config import ObjectMapping, SyncConfig


class FakeSource(SourceConnector):
    """Answers SOQL from in-memory object lists, ``page_size`` records per page."""

    def __init__(self, objects: Optional[Dict[str, List[Dict[str, Any]]]] = None, page_size: int = 2,
                 fail_auth: bool = False, fail_query_for: Optional[str] = None):
        super().__init__()
        self.objects = objects or {}
        self.page_size = page_size
        self.fail_auth = fail_auth
        self.fail_query_for = fail_query_for
        self.queries: List[str] = []
        self.cursors: List[str] = []
        self.authenticated = False
        self._pending: Dict[str, List[Dict[str, Any]]] = {}
        self._counter = itertools.count(1)

    async def authenticate(self) -> Dict[str, Any]:
        if self.fail_auth:
            raise AuthenticationError("INVALID_LOGIN: Invalid username, password, security token")
        self.authenticated = True
        return {"user_name": "sync@example.com"}

    async def execute_query(self, query: str) -> QueryPage:
        self.queries.append(query)
        object_name = re.search(r"FROM (\w+)", query).group(1)
        if object_name == self.fail_query_for:
            raise SalesforceAPIError(f"INVALID_FIELD: bad query for {object_name}")
        records = [dict(r) for r in self.objects.get(object_name, [])]

        restriction = re.search(r"(\w+) in \(([^)]*)\)", query)
        if restriction:
            field = restriction.group(1)
            allowed = {v.strip("'") for v in restriction.group(2).split(",") if v}
            records = [r for r in records if r.get(field) in allowed]

        return self._page(records)

    async def fetch_next_page(self, cursor: str) -> QueryPage:
        self.cursors.append(cursor)
        return self._page(self._pending.pop(cursor))

    async def describe(self, object_name: str) -> List[str]:
        records = self.objects.get(object_name) or [{}]
        return list(records[0].keys())

    def _page(self, records: List[Dict[str, Any]]) -> QueryPage:
        head, rest = records[:self.page_size], records[self.page_size:]
        if not rest:
            return QueryPage(records=head, done=True, total_size=len(records))
        cursor = f"/services/data/v58.0/query/01g-{next(self._counter)}"
        self._pending[cursor] = rest
        return QueryPage(records=head, done=False, next_records_url=cursor)


class FakeDestination(DestinationConnector):
    """Tables kept in memory as ``{table: {record_id: fields}}``."""

    def __init__(self, tables: Optional[Dict[str, Dict[str, Dict[str, Any]]]] = None,
                 fail_on: Optional[Tuple[str, int]] = None, delay: float = 0, fail_auth: bool = False):
        super().__init__()
        self.fail_auth = fail_auth
        self.authenticated = False
        self.tables = tables or {}
        self.fail_on = fail_on
        self.delay = delay
        self.calls: List[Tuple[str, str, int]] = []
        self.typecasts: List[bool] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._ids = itertools.count(1)

    async def authenticate(self) -> Dict[str, Any]:
        if self.fail_auth:
            raise AuthenticationError("Airtable rejected the API key: AUTHENTICATION_REQUIRED")
        self.authenticated = True
        return {"id": "usrTEST"}

    async def list_all(self, table: str) -> List[DestinationRecord]:
        return [DestinationRecord(id=rid, fields=dict(fields))
                for rid, fields in self.tables.get(table, {}).items()]

    async def _call(self, operation: str, table: str, size: int) -> None:
        self.calls.append((operation, table, size))
        call_number = sum(1 for c in self.calls if c[0] == operation)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if self.fail_on == (operation, call_number):
                raise RuntimeError(f"INVALID_VALUE_FOR_CELL in {operation} chunk {call_number}")
        finally:
            self.in_flight -= 1

    async def _bulk_create(self, table, records, typecast):
        await self._call("create", table, len(records))
        self.typecasts.append(typecast)
        created = []
        for record in records:
            rid = f"rec{next(self._ids):04d}"
            self.tables.setdefault(table, {})[rid] = dict(record["fields"])
            created.append({"id": rid, "fields": dict(record["fields"])})
        return created

    async def _bulk_update(self, table, records, typecast):
        await self._call("update", table, len(records))
        self.typecasts.append(typecast)
        for record in records:
            self.tables[table][record["id"]].update(record["fields"])
        return [{"id": r["id"], "fields": dict(r["fields"])} for r in records]

    async def _bulk_delete(self, table, record_ids):
        await self._call("delete", table, len(record_ids))
        for rid in record_ids:
            del self.tables[table][rid]
        return [{"id": rid, "deleted": True} for rid in record_ids]


@pytest.fixture
def account_mapping() -> ObjectMapping:
    return ObjectMapping(
        object_name="Account",
        table="Accounts",
        primary_destination_field="SFDC ID",
        primary_source_field="Id",
        return_field="Id",
        fields={"Id": "SFDC ID", "Name": "Name"},
    )


@pytest.fixture
def chained_config() -> SyncConfig:
    """Opportunity -> Account -> Contact, each restricted by the previous object."""
    return SyncConfig(
        base_id="appTEST",
        objects=[
            ObjectMapping(
                object_name="Opportunity",
                table="Opportunities",
                primary_destination_field="SFDC ID",
                where_clause="StageName IN ('Interested')",
                return_field="AccountId",
                fields={"Id": "SFDC ID", "AccountId": "Account", "Name": "Opportunity name"},
            ),
            ObjectMapping(
                object_name="Account",
                table="Accounts",
                primary_destination_field="SFDC ID",
                return_field="Id",
                filter_field="Id",
                fields={"Id": "SFDC ID", "Name": "Name"},
            ),
            ObjectMapping(
                object_name="Contact",
                table="Contacts",
                primary_destination_field="SFDC ID",
                filter_field="AccountId",
                fields={"Id": "SFDC ID", "AccountId": "Account", "Email": "Email"},
            ),
        ],
    )


@pytest.fixture
def crm_objects() -> Dict[str, List[Dict[str, Any]]]:
    return {
        "Opportunity": [
            {"Id": "o1", "AccountId": "a1", "Name": "Big deal"},
            {"Id": "o2", "AccountId": "a2", "Name": "Small deal"},
            {"Id": "o3", "AccountId": "a1", "Name": "Renewal"},
        ],
        "Account": [
            {"Id": "a1", "Name": "Acme"},
            {"Id": "a2", "Name": "Globex"},
            {"Id": "a3", "Name": "Initech"},
        ],
        "Contact": [
            {"Id": "c1", "AccountId": "a1", "Email": "wile@acme.test"},
            {"Id": "c2", "AccountId": "a3", "Email": "peter@initech.test"},
            {"Id": "c3", "AccountId": "a2", "Email": "hank@globex.test"},
        ],
    }
