"""Microsoft Graph (directory plane) client and managers."""
from .credentials import ClientCredentialProvider
from .client import GraphClient, DEFAULT_GRAPH_URL
from .directory import DirectoryManager
from .intune import IntuneManager

__all__ = ["ClientCredentialProvider", "GraphClient", "DEFAULT_GRAPH_URL", "DirectoryManager", "IntuneManager"]
