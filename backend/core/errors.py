"""
Validation errors raised by the pure domain modules.

Each error carries a technical ``message`` for logs and a ``user_message``
safe to show in the UI. Routers turn them into 400 responses.
"""

from typing import Any, Dict, Optional


class ValidationError(ValueError):
    code = "VALIDATION_ERROR"

    def __init__(
        self,
        code: Optional[str],
        message: str,
        user_message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        if code:
            self.code = code
        self.message = message
        self.user_message = user_message
        self.details = details or {}


class _CodedValidationError(ValidationError):
    def __init__(self, message: str, user_message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(None, message, user_message, details)


class VolumeValidationError(_CodedValidationError):
    code = "VOLUME_VALIDATION_ERROR"


class QuantityValidationError(_CodedValidationError):
    code = "QUANTITY_VALIDATION_ERROR"


class PackagingValidationError(_CodedValidationError):
    code = "PACKAGING_VALIDATION_ERROR"


class MeasurementValidationError(_CodedValidationError):
    code = "MEASUREMENT_VALIDATION_ERROR"


class VesselStateValidationError(_CodedValidationError):
    code = "VESSEL_STATE_VALIDATION_ERROR"


class PermissionValidationError(_CodedValidationError):
    code = "PERMISSION_VALIDATION_ERROR"


def is_validation_error(exc: BaseException) -> bool:
    return isinstance(exc, ValidationError)


def extract_user_message(exc: BaseException) -> str:
    if isinstance(exc, ValidationError):
        return exc.user_message
    text = str(exc)
    return text or "An unexpected error occurred"
