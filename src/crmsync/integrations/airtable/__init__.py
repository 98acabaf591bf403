from .client import AirtableClient, MAX_RECORDS_PER_REQUEST, create_client_from_env

__all__ = ["AirtableClient", "MAX_RECORDS_PER_REQUEST", "create_client_from_env"]
