"""
Custom exception hierarchy for structured, bilingual error handling.

WHY: Every blocked request must produce the same envelope:
1. A stable machine-readable ``code`` clients can branch on
2. An English ``message`` and an Arabic ``messageAr`` (product requirement)
3. The correct HTTP status code
4. No stack traces or sensitive context in the response body

IMPORTANT: Security stages raise these exceptions to terminate the chain.
The handlers in ``lexshield.core.exception_handlers`` render them.
"""

from typing import Any, Dict, Optional


class AppException(Exception):
    """
    Base exception class for all application exceptions.

    Subclasses set ``status_code``, ``code`` and the two default messages.
    Extra keyword arguments become ``context``; selected keys are exposed to
    the client as ``details`` (see ``public_fields``).
    """

    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    default_message: str = "An unexpected error occurred"
    default_message_ar: str = "حدث خطأ غير متوقع"

    # Context keys that are safe to return to the client
    public_fields: frozenset = frozenset()

    # Response side effects requested by the exception
    clear_session_cookie: bool = False

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        message_ar: Optional[str] = None,
        **context: Any,
    ):
        """
        Initialize exception with messages and context.

        Args:
            message: English error message (class default if omitted)
            status_code: HTTP status code (overrides class default)
            message_ar: Arabic error message (class default if omitted)
            **context: Additional context for logging; only ``public_fields``
                are serialized
        """
        self.message = message or self.default_message
        self.message_ar = message_ar or self.default_message_ar
        if status_code is not None:
            self.status_code = status_code
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize exception to the standard error envelope.

        Returns:
            ``{"error": True, "code", "message", "messageAr", "details"?}``
        """
        # WHY: Filter out sensitive fields to prevent data leaks
        sensitive_fields = {"password", "token", "secret", "key", "api_key"}
        details = {
            k: v
            for k, v in self.context.items()
            if k in self.public_fields and k.lower() not in sensitive_fields
        }

        body: Dict[str, Any] = {
            "error": True,
            "code": self.code,
            "message": self.message,
            "messageAr": self.message_ar,
        }
        if details:
            body["details"] = details
        return body

    def headers(self) -> Dict[str, str]:
        """Extra response headers for this error."""
        return {}


# ============================================================================
# Authentication Exceptions (401)
# ============================================================================


class AuthenticationError(AppException):
    """
    Raised when authentication fails.

    HTTP Status: 401 Unauthorized
    """

    status_code = 401
    code = "AUTHENTICATION_FAILED"
    default_message = "Authentication failed"
    default_message_ar = "فشلت المصادقة"


class AuthRequired(AuthenticationError):
    """Raised when a protected route is called without credentials."""

    code = "AUTH_REQUIRED"
    default_message = "Authentication required"
    default_message_ar = "يجب تسجيل الدخول"


class TokenExpiredError(AuthenticationError):
    """
    Raised when JWT token has expired.

    WHY: A distinct code lets the frontend try a refresh instead of
    forcing a full login.
    """

    code = "TOKEN_EXPIRED"
    default_message = "Token has expired"
    default_message_ar = "انتهت صلاحية رمز الدخول"


class TokenInvalidError(AuthenticationError):
    """Raised when JWT token is malformed, not yet valid, revoked, or forged."""

    code = "TOKEN_INVALID"
    default_message = "Token is invalid"
    default_message_ar = "رمز الدخول غير صالح"


class SessionIdleTimeout(AuthenticationError):
    """Raised when the session saw no activity for longer than the idle window."""

    code = "SESSION_IDLE_TIMEOUT"
    default_message = "Session expired due to inactivity"
    default_message_ar = "انتهت الجلسة بسبب عدم النشاط"
    clear_session_cookie = True


class SessionAbsoluteTimeout(AuthenticationError):
    """Raised when the session outlived the absolute lifetime since login."""

    code = "SESSION_ABSOLUTE_TIMEOUT"
    default_message = "Session expired, please log in again"
    default_message_ar = "انتهت الجلسة، يرجى تسجيل الدخول مرة أخرى"
    clear_session_cookie = True


class ReauthenticationRequired(AuthenticationError):
    """
    Raised by the step-up gate when the last login is older than allowed.

    HTTP Status: 401 Unauthorized
    """

    code = "REAUTHENTICATION_REQUIRED"
    default_message = "Please re-enter your password to continue"
    default_message_ar = "يرجى إعادة إدخال كلمة المرور للمتابعة"
    public_fields = frozenset({"maxAgeMinutes", "reason", "purpose"})


class WebhookSignatureError(AuthenticationError):
    """Raised when a webhook payload fails signature verification."""

    code = "INVALID_WEBHOOK_SIGNATURE"
    default_message = "Invalid webhook signature"
    default_message_ar = "توقيع الويب هوك غير صالح"
    public_fields = frozenset({"provider"})


# ============================================================================
# Authorization Exceptions (403)
# ============================================================================


class AuthorizationError(AppException):
    """
    Raised when the user lacks permission for an action.

    HTTP Status: 403 Forbidden
    """

    status_code = 403
    code = "FORBIDDEN"
    default_message = "You do not have permission to perform this action"
    default_message_ar = "ليس لديك صلاحية لتنفيذ هذا الإجراء"


class EmailVerificationRequired(AuthorizationError):
    """Raised when an unverified user calls a verification-gated route."""

    code = "EMAIL_VERIFICATION_REQUIRED"
    default_message = "Please verify your email address to access this feature"
    default_message_ar = "يرجى تأكيد بريدك الإلكتروني للوصول إلى هذه الميزة"


class IPNotWhitelisted(AuthorizationError):
    """Raised when the firm's IP allow-list rejects the client address."""

    code = "IP_NOT_WHITELISTED"
    default_message = "Access denied from this IP address"
    default_message_ar = "الوصول مرفوض من عنوان IP هذا"


class FirmAccessRequired(AuthorizationError):
    """Raised when a firm-scoped route is called by a user with no firm."""

    code = "FIRM_ACCESS_REQUIRED"
    default_message = "You must belong to a firm to access this resource"
    default_message_ar = "يجب أن تكون عضواً في مكتب للوصول إلى هذا المورد"


class OwnerOnlyError(AuthorizationError):
    """Raised when a non-owner calls an owner-only route."""

    code = "OWNER_ONLY"
    default_message = "Only the firm owner can perform this action"
    default_message_ar = "هذا الإجراء متاح لمالك المكتب فقط"


class AdminOnlyError(AuthorizationError):
    """Raised when a non-admin calls an admin-only route."""

    code = "ADMIN_ONLY"
    default_message = "Only firm administrators can perform this action"
    default_message_ar = "هذا الإجراء متاح لمسؤولي المكتب فقط"


class PermissionDenied(AuthorizationError):
    """Raised when the user's module permission level is too low."""

    code = "PERMISSION_DENIED"
    default_message = "You do not have permission to perform this action"
    default_message_ar = "ليس لديك صلاحية لتنفيذ هذا الإجراء"
    public_fields = frozenset({"module", "requiredLevel"})


# ============================================================================
# Input Exceptions (400)
# ============================================================================


class ValidationError(AppException):
    """
    Raised when input validation fails.

    HTTP Status: 400 Bad Request
    """

    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Validation failed"
    default_message_ar = "فشل التحقق من البيانات"


class InvalidEncryptedData(ValidationError):
    """Raised when an encrypted field cannot be decrypted."""

    code = "INVALID_ENCRYPTED_DATA"
    default_message = "Encrypted data is invalid or corrupted"
    default_message_ar = "البيانات المشفرة غير صالحة أو تالفة"
    public_fields = frozenset({"field"})


class SanitizationBlocked(ValidationError):
    """Raised in strict mode when the request carries operator injection keys."""

    code = "SANITIZATION_BLOCKED"
    default_message = "Request contains prohibited characters"
    default_message_ar = "يحتوي الطلب على رموز غير مسموح بها"


# ============================================================================
# Resource & Endpoint Exceptions
# ============================================================================


class ResourceNotFoundError(AppException):
    """
    Raised when a requested resource doesn't exist or isn't visible to the firm.

    HTTP Status: 404 Not Found
    """

    status_code = 404
    code = "RESOURCE_NOT_FOUND"
    default_message = "Resource not found"
    default_message_ar = "المورد غير موجود"


class UserNotFoundError(ResourceNotFoundError):
    """Raised by the identity store when a user id is unknown."""

    code = "USER_NOT_FOUND"
    default_message = "User not found"
    default_message_ar = "المستخدم غير موجود"


class EndpointGone(AppException):
    """
    Raised for endpoints removed after their sunset date.

    HTTP Status: 410 Gone
    """

    status_code = 410
    code = "ENDPOINT_GONE"
    default_message = "This endpoint is no longer available"
    default_message_ar = "نقطة النهاية هذه لم تعد متاحة"
    public_fields = frozenset({"replacement", "sunset"})


class EndpointMoved(AppException):
    """
    Raised for endpoints permanently moved to a new path.

    HTTP Status: 301 Moved Permanently
    """

    status_code = 301
    code = "ENDPOINT_MOVED"
    default_message = "This endpoint has moved"
    default_message_ar = "تم نقل نقطة النهاية هذه"
    public_fields = frozenset({"location"})

    def headers(self) -> Dict[str, str]:
        location = self.context.get("location")
        return {"Location": location} if location else {}


# ============================================================================
# Infrastructure Exceptions
# ============================================================================


class EncryptionError(AppException):
    """
    Raised when encryption or decryption fails at the service level.

    HTTP Status: 500 Internal Server Error
    """

    status_code = 500
    code = "ENCRYPTION_ERROR"
    default_message = "Encryption operation failed"
    default_message_ar = "فشلت عملية التشفير"
