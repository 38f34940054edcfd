"""Contratos (Protocol) del Core.

El facade depende de estas abstracciones; `adapters.graph_client` las
implementa contra Microsoft Graph.
"""

from core.interfaces.directory import BatchRequest, DirectoryClient, TokenProvider

__all__ = ["BatchRequest", "DirectoryClient", "TokenProvider"]
