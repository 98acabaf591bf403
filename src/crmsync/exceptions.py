"""
Custom exceptions for crmsync.
"""

from typing import Any, List, Optional


class CrmSyncError(Exception):
    """Base exception for all application-specific errors."""
    pass


class ConfigurationError(CrmSyncError):
    """Error related to the sync mapping or the process environment."""
    pass


class TransformationError(CrmSyncError):
    """A source record could not be mapped onto destination fields."""
    pass


class ConnectorError(CrmSyncError):
    """Error related to a connector."""
    pass


class AuthenticationError(ConnectorError):
    """Login to the source or destination service was rejected."""
    pass


class PaginationError(ConnectorError):
    """A follow-up page of a query could not be fetched."""
    pass


# Specific API error classes for connectors
class SalesforceAPIError(ConnectorError):
    """Exception raised for Salesforce API errors."""
    pass


class AirtableAPIError(ConnectorError):
    """Exception raised for Airtable API errors."""
    pass


class BatchApplyError(CrmSyncError):
    """
    A chunk of a bulk create/update/delete was rejected.

    Chunks from earlier waves have already been applied and are not rolled
    back; their results are kept in ``applied``.
    """

    def __init__(self, operation: str, table: str, applied: Optional[List[Any]] = None,
                 message: Optional[str] = None):
        self.operation = operation
        self.table = table
        self.applied = applied or []
        super().__init__(
            message or f"Bulk {operation} on table '{table}' failed after "
                       f"{len(self.applied)} records were applied"
        )
