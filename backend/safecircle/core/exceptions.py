"""Error taxonomy shared by the services and the HTTP layer.

Each class fixes its HTTP status; ``main.py`` renders any of them into the
JSON error envelope.
"""

from typing import Optional, Dict, Any


class BaseAPIException(Exception):
    """Base exception for all API errors"""

    status_code: int = 500
    default_message: str = "Internal error"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)


# 401 - the caller is not (or no longer) authenticated
class AuthenticationError(BaseAPIException):
    status_code = 401
    default_message = "Authentication failed"


class InvalidCredentialsError(AuthenticationError):
    default_message = "Invalid credentials"


class InvalidTokenError(AuthenticationError):
    """Signature, expiry or token-type check failed"""
    default_message = "Invalid or expired token"


class RevokedTokenError(AuthenticationError):
    """Well-formed refresh token that is no longer in the account's session set"""
    default_message = "Refresh token revoked"


class UnknownAccountError(AuthenticationError):
    """Valid token for an account that was deleted or disabled"""
    default_message = "Account not found"


class AuthorizationError(BaseAPIException):
    status_code = 403
    default_message = "Insufficient permissions"


class ResourceNotFoundError(BaseAPIException):
    status_code = 404

    def __init__(self, resource: str):
        super().__init__(f"{resource} not found")


class TargetNotFoundError(ResourceNotFoundError):
    """Vote target does not exist"""

    def __init__(self, target_kind: str):
        super().__init__(target_kind.capitalize())


class InvalidArgumentError(BaseAPIException):
    """Malformed argument that passed schema validation"""
    status_code = 400
    default_message = "Invalid argument"


# 409 - conflicts with current state
class ResourceAlreadyExistsError(BaseAPIException):
    status_code = 409

    def __init__(self, resource: str):
        super().__init__(f"{resource} already exists")


class ConcurrentModificationError(BaseAPIException):
    status_code = 409
    default_message = "Resource was modified by another request"


class RateLimitExceededError(BaseAPIException):
    status_code = 429
    default_message = "Rate limit exceeded. Please try again later."
