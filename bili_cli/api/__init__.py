"""
Bilibili API Layer.

This package handles all communication with the Bilibili web API, including
WBI request signing and the anonymous identity bootstrap.
"""

from .auth import AnonymousIdentity, CredentialResolver
from .client import BiliAPIClient
from .transport import AiohttpTransport, HttpTransport, TransportResponse
from .wbi import WbiSigner

__all__ = [
    "AiohttpTransport",
    "AnonymousIdentity",
    "BiliAPIClient",
    "CredentialResolver",
    "HttpTransport",
    "TransportResponse",
    "WbiSigner",
]
