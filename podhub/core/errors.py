"""
Service-layer errors.

Services raise these instead of HTTPException so the same rules can be reused
by the REST routers and the Socket.IO handlers. The REST app turns them into
``{"detail": ...}`` responses, the socket layer into ``error`` events.
"""
from fastapi import status


class ServiceError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidOperationError(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST


class PermissionDeniedError(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
