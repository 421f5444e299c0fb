"""Database gateway adapter layer - stored procedures and table access."""

from recontrol.adapters.rpc.base import AbstractDatabaseGateway, eq, in_
from recontrol.adapters.rpc.factory import create_database_gateway
from recontrol.adapters.rpc.postgrest_client import PostgrestClient

__all__ = [
    "AbstractDatabaseGateway",
    "PostgrestClient",
    "create_database_gateway",
    "eq",
    "in_",
]
