"""ConfigMgr Web Service: REST facade over the ConfigMgr and Microsoft Graph planes."""

__version__ = "1.0.0"
