"""
Exceptions for MediaVault.

Every error carries an ``ErrorKind`` so the boundary can map it to a response
code without looking at message text. ``public_message`` is what a client may
see; ``str(exc)`` may carry more detail for logs but never secrets.
"""

from enum import Enum


class ErrorKind(Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    DECRYPTION = "decryption"
    DECRYPTION_REQUIRED = "decryption_required"
    INTEGRITY = "integrity"
    STORAGE = "storage"


class MediaVaultError(Exception):
    # general container for errors
    kind = ErrorKind.STORAGE
    public_message = "Internal error"

    def __init__(self, message=None, public_message=None):
        super().__init__(message or self.public_message)
        if public_message is not None:
            self.public_message = public_message


class ValidationError(MediaVaultError):
    # malformed input, recoverable by the caller
    kind = ErrorKind.VALIDATION
    public_message = "Invalid request"

    def __init__(self, message=None, public_message=None):
        # validation messages are user-actionable, so expose them
        super().__init__(message, public_message or message)


class PassphraseTooShortError(ValidationError):
    pass


class UploadTooLargeError(ValidationError):
    pass


class NotFoundError(MediaVaultError):
    kind = ErrorKind.NOT_FOUND
    public_message = "Not found"


class UserNotFoundError(NotFoundError):
    # raised when the user DNE in the DB
    public_message = "User not found"


class MediaNotFoundError(NotFoundError):
    public_message = "Media file not found"


class VaultNotConfiguredError(NotFoundError):
    public_message = "No vault configured for this user"


class ConflictError(MediaVaultError):
    kind = ErrorKind.CONFLICT
    public_message = "Conflict"


class VaultExistsError(ConflictError):
    # setup is only valid while no vault exists
    public_message = "Vault already configured"


class UserExistsError(ConflictError):
    public_message = "User already exists"


class AuthenticationError(MediaVaultError):
    kind = ErrorKind.AUTHENTICATION
    public_message = "Access denied"


class InvalidCredentialsError(AuthenticationError):
    pass


class TokenNotFoundError(AuthenticationError):
    public_message = "Invalid or expired vault token"


class TokenExpiredError(AuthenticationError):
    public_message = "Invalid or expired vault token"


class AuthorizationError(MediaVaultError):
    kind = ErrorKind.AUTHORIZATION
    public_message = "Forbidden"


class TokenOwnershipError(AuthorizationError):
    # token presented by someone other than the user it was issued to
    public_message = "Vault token does not belong to the requesting user"


class AccessDeniedError(AuthorizationError):
    # raised when a user doesn't own the object
    public_message = "Access denied"


class DecryptionError(MediaVaultError):
    # wrong key and corrupted data are deliberately indistinguishable
    kind = ErrorKind.DECRYPTION
    public_message = "Decryption failed"


class ContentRequiresDecryptionError(MediaVaultError):
    kind = ErrorKind.DECRYPTION_REQUIRED
    public_message = "Content is encrypted and requires decryption"


class IntegrityError(MediaVaultError):
    # raised on a hash mismatch or missing blob; never auto-corrected
    kind = ErrorKind.INTEGRITY
    public_message = "Stored content failed integrity verification"


class StorageError(MediaVaultError):
    # raised if storage fails in some way
    kind = ErrorKind.STORAGE
