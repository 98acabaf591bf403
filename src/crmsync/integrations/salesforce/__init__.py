from .client import SalesforceClient, create_client_from_env

__all__ = ["SalesforceClient", "create_client_from_env"]
