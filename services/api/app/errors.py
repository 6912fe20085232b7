"""
Domain error taxonomy.

Services raise these; main.py maps every subclass to its HTTP status and a
JSON body of the form {"error": <message>, "code": <reason code>}.
"""


class SocialNetworkError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"
    message = "Internal server error"

    def __init__(self, message: str | None = None, code: str | None = None):
        if message is not None:
            self.message = message
        if code is not None:
            self.code = code
        super().__init__(self.message)


# ── Categories ─────────────────────────────────────────────────────────────

class ValidationError(SocialNetworkError):
    status_code = 400
    code = "VALIDATION_ERROR"
    message = "Invalid input"


class AuthenticationError(SocialNetworkError):
    status_code = 401
    code = "AUTHENTICATION_REQUIRED"
    message = "Authentication required"


class AuthorizationError(SocialNetworkError):
    status_code = 403
    code = "FORBIDDEN"
    message = "Not permitted"


class NotFoundError(SocialNetworkError):
    status_code = 404
    code = "NOT_FOUND"
    message = "Not found"


class ConflictError(SocialNetworkError):
    status_code = 409
    code = "CONFLICT"
    message = "Conflicting state"


# ── Authentication ─────────────────────────────────────────────────────────

class MissingToken(AuthenticationError):
    code = "MISSING_TOKEN"
    message = "Authentication required"


class InvalidToken(AuthenticationError):
    code = "INVALID_TOKEN"
    message = "Invalid or expired token"


class InvalidCredentials(AuthenticationError):
    code = "INVALID_CREDENTIALS"
    message = "Invalid email or password"


# ── Lookups ────────────────────────────────────────────────────────────────

class UserNotFound(NotFoundError):
    code = "USER_NOT_FOUND"
    message = "User not found"


class PostNotFound(NotFoundError):
    code = "POST_NOT_FOUND"
    message = "Post not found"


class ConnectionNotFound(NotFoundError):
    code = "CONNECTION_NOT_FOUND"
    message = "Connection not found"


# ── Connections ────────────────────────────────────────────────────────────

class SelfConnectionNotAllowed(ValidationError):
    code = "SELF_CONNECTION_NOT_ALLOWED"
    message = "Cannot send connection request to yourself"


class ConnectionPending(ConflictError):
    code = "CONNECTION_PENDING"
    message = "Connection request already pending"


class AlreadyConnected(ConflictError):
    code = "ALREADY_CONNECTED"
    message = "Already connected"


class ConnectionNotPending(ConflictError):
    code = "CONNECTION_NOT_PENDING"
    message = "Connection request is not pending"


class NotAuthorized(AuthorizationError):
    code = "NOT_AUTHORIZED"
    message = "You are not authorized to respond to this connection request"


# ── Content ────────────────────────────────────────────────────────────────

class EmptyContent(ValidationError):
    code = "EMPTY_CONTENT"
    message = "Content must not be empty"


class ContentTooLong(ValidationError):
    code = "CONTENT_TOO_LONG"
    message = "Content is too long"


class InvalidImageUrl(ValidationError):
    code = "INVALID_IMAGE_URL"
    message = "Image must be a valid URL"


class LikeConflict(ConflictError):
    code = "LIKE_CONFLICT"
    message = "Like state changed concurrently, retry the request"


# ── Accounts ───────────────────────────────────────────────────────────────

class EmailAlreadyRegistered(ConflictError):
    code = "EMAIL_EXISTS"
    message = "An account with this email already exists"
