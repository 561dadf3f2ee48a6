"""Opal REST client used as the remote repository service."""

from __future__ import annotations

from .client import OpalClient, opal_login
from .endpoints import ENDPOINTS, EndpointSpec, get_endpoint_spec
from .session import OpalSession

__all__ = [
    "ENDPOINTS",
    "EndpointSpec",
    "OpalClient",
    "OpalSession",
    "get_endpoint_spec",
    "opal_login",
]
