class OrgTasksException(Exception):
    """Base exception for the org tasks service"""

    pass


class UnauthorizedException(OrgTasksException):
    """Raised when no valid principal is present (missing/invalid JWT, inactive user)"""

    pass


class NotFoundException(OrgTasksException):
    """Raised when resource not found"""

    pass


class ForbiddenException(OrgTasksException):
    """Raised when an authenticated principal is denied access"""

    pass


class ValidationException(OrgTasksException):
    """Raised for business logic validation errors"""

    pass


class HierarchyLookupError(OrgTasksException):
    """Raised when the organization store fails during an authorization check"""

    pass
