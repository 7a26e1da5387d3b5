"""
Custom exceptions for dimensional reconciliation library.
"""


class DimensionalReconciliationError(Exception):
    """Base exception for dimensional reconciliation library."""

    def __init__(self, message: str, error_code: str = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code


class ConfigurationError(DimensionalReconciliationError, ValueError):
    """Exception raised when configuration or record schema is invalid."""

    def __init__(self, message: str, config_field: str = None):
        super().__init__(message, "CONFIGURATION_ERROR")
        self.config_field = config_field


class SCDValidationError(DimensionalReconciliationError):
    """Exception raised when SCD data validation fails."""

    def __init__(self, message: str, validation_errors: list = None):
        super().__init__(message, "SCD_VALIDATION_ERROR")
        self.validation_errors = validation_errors or []


class DuplicateKeyError(DimensionalReconciliationError):
    """Exception raised when the staging snapshot repeats a natural key."""

    def __init__(self, message: str, keys: list = None):
        super().__init__(message, "DUPLICATE_KEY_ERROR")
        self.keys = keys or []


class MultipleActiveVersionsError(DimensionalReconciliationError):
    """Exception raised when the dimension holds several active versions of a key."""

    def __init__(self, message: str, keys: list = None):
        super().__init__(message, "MULTIPLE_ACTIVE_VERSIONS_ERROR")
        self.keys = keys or []


class SCDProcessingError(DimensionalReconciliationError):
    """Exception raised when SCD processing fails."""

    def __init__(self, message: str, processing_step: str = None):
        super().__init__(message, "SCD_PROCESSING_ERROR")
        self.processing_step = processing_step


class ApplyFailure(DimensionalReconciliationError):
    """
    Exception raised when a change set could not be applied atomically.

    Retryable, but only after classification is re-derived from fresh
    snapshots; the same change set must not be resubmitted.
    """

    def __init__(self, message: str, retryable: bool = True, change_set_id: str = None):
        super().__init__(message, "APPLY_FAILURE")
        self.retryable = retryable
        self.change_set_id = change_set_id


class ChangeSetAlreadyAppliedError(DimensionalReconciliationError):
    """Exception raised when a change set is submitted a second time."""

    def __init__(self, message: str, change_set_id: str = None):
        super().__init__(message, "CHANGE_SET_ALREADY_APPLIED")
        self.change_set_id = change_set_id
