"""
Connector framework for crmsync.

Source connectors pull records from a CRM; destination connectors write them
into a tabular store.
"""

from typing import Type

from .base import SourceConnector, DestinationConnector, QueryPage, DestinationRecord, MAX_BATCH_SIZE
from .salesforce import SalesforceConnector
from .airtable import AirtableConnector

__all__ = [
    "SourceConnector",
    "DestinationConnector",
    "QueryPage",
    "DestinationRecord",
    "MAX_BATCH_SIZE",
    "SalesforceConnector",
    "AirtableConnector",
]

# Connector registries for dynamic loading
SOURCE_REGISTRY = {
    "salesforce": SalesforceConnector,
}

DESTINATION_REGISTRY = {
    "airtable": AirtableConnector,
}


def get_source_connector(service_type: str) -> Type[SourceConnector]:
    """Get a source connector class by service type."""
    if service_type not in SOURCE_REGISTRY:
        raise ValueError(f"Unknown source service type: {service_type}")
    return SOURCE_REGISTRY[service_type]


def get_destination_connector(service_type: str) -> Type[DestinationConnector]:
    """Get a destination connector class by service type."""
    if service_type not in DESTINATION_REGISTRY:
        raise ValueError(f"Unknown destination service type: {service_type}")
    return DESTINATION_REGISTRY[service_type]
