"""Tests for paginated query execution."""
import pytest

from crmsync.connectors.base import QueryPage
from crmsync.engine.fetch import fetch_all
from crmsync.engine.sync import SyncEngine
from crmsync.exceptions import PaginationError, SalesforceAPIError
from crmsync.models.config import SyncConfig
from crmsync.models.sync import SyncStatus

from conftest import FakeDestination, FakeSource


class _BrokenPagingSource(FakeSource):
    async def fetch_next_page(self, cursor: str) -> QueryPage:
        raise ConnectionError("connection reset by peer")


class _NoCursorSource(FakeSource):
    async def execute_query(self, query: str) -> QueryPage:
        return QueryPage(records=[{"Id": "a1"}], done=False, next_records_url=None)


class TestFetchAll:

    async def test_follows_cursors_and_keeps_page_order(self) -> None:
        records = [{"Id": f"a{i}", "Name": f"Account {i}"} for i in range(7)]
        source = FakeSource({"Account": records}, page_size=3)

        fetched = await fetch_all(source, "SELECT Id,Name FROM Account")

        assert [r["Id"] for r in fetched] == [f"a{i}" for i in range(7)]
        assert len(source.queries) == 1
        assert len(source.cursors) == 2

    async def test_single_page_issues_no_follow_up(self) -> None:
        source = FakeSource({"Account": [{"Id": "a1"}]}, page_size=5)

        fetched = await fetch_all(source, "SELECT Id FROM Account")

        assert fetched == [{"Id": "a1"}]
        assert source.cursors == []

    async def test_zero_results_is_an_empty_list(self) -> None:
        source = FakeSource({})

        assert await fetch_all(source, "SELECT Id FROM Account") == []

    async def test_initial_query_error_propagates(self) -> None:
        source = FakeSource({}, fail_query_for="Account")

        with pytest.raises(SalesforceAPIError):
            await fetch_all(source, "SELECT Bogus__c FROM Account")

    async def test_follow_up_failure_aborts_the_whole_fetch(self) -> None:
        source = _BrokenPagingSource({"Account": [{"Id": f"a{i}"} for i in range(5)]}, page_size=2)

        with pytest.raises(PaginationError) as exc_info:
            await fetch_all(source, "SELECT Id FROM Account")

        assert isinstance(exc_info.value.__cause__, ConnectionError)

    async def test_not_done_without_cursor_fails_instead_of_truncating(self) -> None:
        source = _NoCursorSource({})

        with pytest.raises(PaginationError, match="no cursor"):
            await fetch_all(source, "SELECT Id FROM Account")

    async def test_truncated_fetch_fails_the_stage_before_any_delete(self, account_mapping) -> None:
        destination = FakeDestination({"Accounts": {"rec1": {"SFDC ID": "a1"}, "rec2": {"SFDC ID": "a2"}}})
        engine = SyncEngine(_NoCursorSource({}), destination, SyncConfig(base_id="appTEST", objects=[account_mapping]))

        execution = await engine.run()

        assert execution.status == SyncStatus.FAILED
        assert destination.calls == []
        assert len(destination.tables["Accounts"]) == 2
