"""
Service error taxonomy.

Every failure that crosses the HTTP boundary is one of the classes below.
``detail`` is the text the client sees; ``reason`` is diagnostic text that is
only logged. Authentication failures never pass a custom detail so the client
cannot tell which check rejected the credential.
"""

from typing import Optional


class ServiceError(Exception):
    kind = "InternalError"
    status_code = 500
    default_detail = "Internal server error"

    def __init__(self, detail: Optional[str] = None, *, reason: Optional[str] = None) -> None:
        self.detail = detail or self.default_detail
        self.reason = reason or self.detail
        super().__init__(self.reason)


class InvalidInput(ServiceError):
    kind = "InvalidInput"
    status_code = 400
    default_detail = "Malformed request"


class Unauthorized(ServiceError):
    kind = "Unauthorized"
    status_code = 401
    default_detail = "Unauthorized"

    def __init__(self, detail: Optional[str] = None, *, reason: Optional[str] = None) -> None:
        # client text is fixed per class
        super().__init__(None, reason=reason or detail)


class Forbidden(ServiceError):
    kind = "Forbidden"
    status_code = 403
    default_detail = "Forbidden"


class NotFound(ServiceError):
    kind = "NotFound"
    status_code = 404
    default_detail = "Not found"


class StoreUnavailable(ServiceError):
    kind = "StoreUnavailable"
    status_code = 503
    default_detail = "Storage backend unavailable, retry later"


class InternalError(ServiceError):
    pass


# Nonce store


class NonceError(ServiceError):
    kind = "InvalidNonce"
    status_code = 401
    default_detail = "Invalid nonce"


class ExpiredNonce(NonceError):
    pass


class UnknownOrConsumedNonce(NonceError):
    pass


# Signature verification


class VerificationError(Unauthorized):
    default_detail = "Invalid signature"


class DomainMismatch(VerificationError):
    pass


class MessageExpired(VerificationError):
    pass


class InvalidNonce(VerificationError):
    pass


class SignatureMismatch(VerificationError):
    pass


# Sessions


class SessionError(Unauthorized):
    default_detail = "Invalid session"


class InvalidSession(SessionError):
    pass


class SessionExpired(SessionError):
    pass
