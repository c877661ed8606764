"""Error taxonomy shared by the plane clients, services and HTTP edge."""


class ConfigMgrServiceError(Exception):
    """Base exception for all service operations."""
    pass


class NotFoundError(ConfigMgrServiceError):
    """Requested device, user, collection, group or record does not exist."""
    pass


class AlreadyExistsError(ConfigMgrServiceError):
    """Create rejected - a record with the same identifier already exists."""
    pass


class OperationFailedError(ConfigMgrServiceError):
    """Plane accepted the call but reported a non-success result."""
    pass


class UnauthorizedError(ConfigMgrServiceError):
    """Caller or service credentials were rejected."""
    pass


class InvalidArgumentError(ConfigMgrServiceError, ValueError):
    """Caller input failed validation."""
    pass


class PlaneAPIError(ConfigMgrServiceError):
    """HTTP error from one of the management planes.
    
    Attributes:
        status_code: HTTP status code (0 when no response was received)
        message: Error message from response
        endpoint: API endpoint that failed
    """
    
    def __init__(self, status_code: int, message: str, endpoint: str):
        self.status_code = status_code
        self.message = message
        self.endpoint = endpoint
        super().__init__(f"[{status_code}] {endpoint}: {message}")


class ConfigMgrAPIError(PlaneAPIError):
    """HTTP error from the ConfigMgr AdminService."""
    pass


class GraphAPIError(PlaneAPIError):
    """HTTP error from Microsoft Graph or its token authority."""
    pass
