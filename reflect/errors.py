"""
Reflect error types
Standardized error hierarchy for the store, repositories and use cases
"""
from typing import Any, Dict, Optional


# ============================================================
# BASE ERROR
# ============================================================

class ReflectError(Exception):
    """Base error with a user-facing message and an error code"""

    error_code = "REFLECT_ERROR"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code or self.error_code
        self.details = details
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }


# ============================================================
# STORE / REPOSITORY ERRORS
# ============================================================

class StoreError(ReflectError):
    """The underlying datastore failed to complete an operation"""

    error_code = "STORE_ERROR"


class ConstraintError(StoreError):
    """A uniqueness or relationship constraint would be violated"""

    error_code = "CONSTRAINT_VIOLATION"


class NotFoundError(ReflectError):
    """A mutation targeted a record that does not exist"""

    error_code = "NOT_FOUND"


class MappingError(ReflectError):
    """A stored record could not be converted into a valid entity"""

    error_code = "MAPPING_ERROR"


# Common raisers
def not_found(resource: str = "Resource", id: Any = None):
    message = f"{resource} not found" if id is None else f"{resource} '{id}' not found"
    raise NotFoundError(message, details={"resource": resource, "id": str(id) if id is not None else None})


def conflict(message: str = "Resource conflict", details: Optional[Dict[str, Any]] = None):
    raise ConstraintError(message, details=details)


def missing_reference(resource: str, id: Any):
    raise ConstraintError(
        f"{resource} '{id}' does not exist",
        error_code="MISSING_REFERENCE",
        details={"resource": resource, "id": str(id)},
    )


# ============================================================
# ONBOARDING VALIDATION ERRORS
# ============================================================

class OnboardingError(ReflectError):
    """Onboarding input was rejected before anything was written"""

    error_code = "VALIDATION_ERROR"
    default_message = "Onboarding failed"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message or self.default_message, details=details)


class NameRequiredError(OnboardingError):
    default_message = "Please enter your name"


class NameTooShortError(OnboardingError):
    default_message = "Name must be at least 2 characters"


class NameTooLongError(OnboardingError):
    default_message = "Name must be less than 50 characters"


class InvalidEmailError(OnboardingError):
    default_message = "Please enter a valid email address"


class UserAlreadyExistsError(OnboardingError):
    default_message = "User already exists. Onboarding has already been completed."
