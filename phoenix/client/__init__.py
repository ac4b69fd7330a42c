"""Request/response client for the service under test."""

from phoenix.client.client import ServiceClient, ServiceResponse

__all__ = ["ServiceClient", "ServiceResponse"]
