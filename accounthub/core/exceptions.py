class AccountHubException(Exception):
    """Base exception for accounthub"""

    pass


class UnauthorizedException(AccountHubException):
    """Raised when there is no valid session (missing, expired or revoked token)"""

    pass


class NotFoundException(AccountHubException):
    """Raised when a referenced resource does not resolve to a live row"""

    pass


class ForbiddenException(AccountHubException):
    """Raised when a valid actor lacks ownership or the required capability"""

    pass


class ConflictException(AccountHubException):
    """Raised for duplicates and cyclic group reparents"""

    pass


class ValidationException(AccountHubException):
    """Raised for business logic validation errors"""

    pass
