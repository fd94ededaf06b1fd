"""
Custom Exception Classes for the Academic Records API
"""
import asyncio
import functools
from random import uniform
from typing import Dict, Any, List

from fastapi import HTTPException


class AcademicRecordsError(Exception):
    """Base exception for the Academic Records API"""

    def __init__(
        self,
        message: str,
        error_code: str = None,
        details: Dict[str, Any] = None,
        cause: Exception = None
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.cause = cause
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/response"""
        result = {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }
        if self.cause:
            result["cause"] = str(self.cause)
        return result


class ValidationError(AcademicRecordsError):
    """Raised when data validation fails"""

    def __init__(self, message: str, field: str = None, value: Any = None, **kwargs):
        details = kwargs.pop('details', None) or {}
        if field:
            details['field'] = field
        if value is not None:
            details['invalid_value'] = str(value)
        kwargs.setdefault('error_code', "VALIDATION_ERROR")
        super().__init__(message, details=details, **kwargs)


class QualificationValidationError(ValidationError):
    """Raised when a nested qualification record fails its standard-specific checks"""

    def __init__(self, message: str, index: int = None, missing_fields: List[str] = None, **kwargs):
        details = kwargs.pop('details', None) or {}
        if index is not None:
            details['qualification_index'] = index
        if missing_fields:
            details['missing_fields'] = missing_fields
        super().__init__(message, details=details, **kwargs)


class MissingUgFieldsError(QualificationValidationError):

    def __init__(self, index: int = None, missing_fields: List[str] = None, **kwargs):
        super().__init__(
            "Please fill all required fields for UG examination results",
            index=index,
            missing_fields=missing_fields,
            error_code="MISSING_UG_FIELDS",
            **kwargs
        )


class MissingPgFieldsError(QualificationValidationError):

    def __init__(self, index: int = None, missing_fields: List[str] = None, **kwargs):
        super().__init__(
            "Please fill all required fields for PG examination results",
            index=index,
            missing_fields=missing_fields,
            error_code="MISSING_PG_FIELDS",
            **kwargs
        )


class InvalidPgBranchError(QualificationValidationError):

    def __init__(self, index: int = None, branch: Any = None, **kwargs):
        super().__init__(
            "Please provide a valid branch (CSE, ECE, EIE, EEE, or ME) for PG qualification",
            index=index,
            error_code="INVALID_PG_BRANCH",
            **kwargs
        )
        if branch is not None:
            self.details['invalid_value'] = str(branch)


class InvalidDocumentTypeError(ValidationError):
    """Raised when an upload names a record section that cannot hold documents"""

    def __init__(self, document_type: Any = None, **kwargs):
        super().__init__(
            "Invalid document type",
            field="documentType",
            value=document_type,
            error_code="INVALID_DOCUMENT_TYPE",
            **kwargs
        )


class UploadRejectedError(ValidationError):
    """Raised when an uploaded file breaks its category's type or size policy"""

    def __init__(self, message: str, category: str = None, **kwargs):
        details = kwargs.pop('details', None) or {}
        if category:
            details['category'] = category
        super().__init__(message, details=details, error_code="UPLOAD_REJECTED", **kwargs)


class DuplicateRecordError(ValidationError):
    """Raised when a user already owns an academic record"""

    def __init__(self, message: str = "Academic details already exist for this user", **kwargs):
        super().__init__(message, error_code="DUPLICATE_RECORD", **kwargs)


class NotFoundError(AcademicRecordsError):
    """Raised when a requested record does not exist"""

    def __init__(self, message: str = "Academic details not found", resource: str = None, **kwargs):
        details = kwargs.pop('details', None) or {}
        if resource:
            details['resource'] = resource
        super().__init__(message, error_code="NOT_FOUND", details=details, **kwargs)


class DatabaseError(AcademicRecordsError):
    """Raised when database operations fail"""

    def __init__(self, message: str, operation: str = None, collection: str = None, **kwargs):
        details = kwargs.pop('details', None) or {}
        if operation:
            details['operation'] = operation
        if collection:
            details['collection'] = collection
        super().__init__(message, error_code="DATABASE_ERROR", details=details, **kwargs)


class RemoteStoreError(AcademicRecordsError):
    """Raised when the remote object store rejects or fails an upload"""

    def __init__(self, message: str = "Failed to upload file", service_name: str = None, **kwargs):
        details = kwargs.pop('details', None) or {}
        if service_name:
            details['service_name'] = service_name
        super().__init__(message, error_code="REMOTE_STORE_ERROR", details=details, **kwargs)


class ConfigurationError(AcademicRecordsError):
    """Raised when configuration is invalid or missing"""

    def __init__(self, message: str, config_key: str = None, **kwargs):
        details = kwargs.pop('details', None) or {}
        if config_key:
            details['config_key'] = config_key
        super().__init__(message, error_code="CONFIGURATION_ERROR", details=details, **kwargs)


class AuthenticationError(AcademicRecordsError):
    """Raised when no authenticated user identity reaches a handler"""

    def __init__(self, message: str = "Authentication required", **kwargs):
        super().__init__(message, error_code="AUTHENTICATION_ERROR", **kwargs)


# HTTP Exception Mapping
STATUS_CODE_MAPPING = {
    ValidationError: 400,
    ConfigurationError: 500,
    AuthenticationError: 401,
    NotFoundError: 404,
    DatabaseError: 500,
    RemoteStoreError: 500,
}


def status_code_for(exc: AcademicRecordsError) -> int:
    """Resolve the HTTP status of an exception, walking its class hierarchy"""
    for klass in type(exc).__mro__:
        if klass in STATUS_CODE_MAPPING:
            return STATUS_CODE_MAPPING[klass]
    return 500


def map_to_http_exception(exc: AcademicRecordsError) -> HTTPException:
    """Map custom exceptions to HTTP exceptions"""
    detail = {
        "error": exc.to_dict(),
        "message": exc.message
    }

    return HTTPException(status_code=status_code_for(exc), detail=detail)


# Exception context manager for better error handling
class ExceptionContext:
    """Context manager that logs an operation and wraps foreign exceptions"""

    def __init__(self, operation: str, logger=None, **context):
        self.operation = operation
        self.logger = logger
        self.context = context

    def __enter__(self):
        if self.logger:
            self.logger.debug(f"Starting operation: {self.operation}", extra=self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            if self.logger:
                self.logger.debug(f"Operation completed: {self.operation}", extra=self.context)
            return False

        if self.logger:
            self.logger.error(
                f"Operation failed: {self.operation} - {exc_val}",
                extra={**self.context, "exception_type": exc_type.__name__}
            )

        # Re-raise custom exceptions as-is
        if isinstance(exc_val, AcademicRecordsError):
            return False

        # pymongo is imported lazily so this module stays importable on its own
        from pymongo.errors import DuplicateKeyError, PyMongoError

        if isinstance(exc_val, DuplicateKeyError):
            raise DuplicateRecordError(cause=exc_val) from exc_val
        if isinstance(exc_val, PyMongoError):
            raise DatabaseError(
                f"Database error in {self.operation}: {str(exc_val)}",
                operation=self.operation,
                details=dict(self.context),
                cause=exc_val
            ) from exc_val
        return False


# Retry decorator with exponential backoff
def retry_with_logging(
    max_attempts: int = 3,
    backoff_factor: float = 1.0,
    exceptions: tuple = (Exception,),
    logger=None
):
    """Decorator to retry operations with exponential backoff and logging"""

    def decorator(func):
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    if logger:
                        logger.warning(
                            f"Attempt {attempt + 1}/{max_attempts} failed for {func.__name__}: {str(e)}"
                        )

                    if attempt < max_attempts - 1:  # Don't sleep on the last attempt
                        sleep_time = backoff_factor * (2 ** attempt) + uniform(0, 1)
                        await asyncio.sleep(sleep_time)
                    else:
                        if logger:
                            logger.error(f"All {max_attempts} attempts failed for {func.__name__}")
                        raise

        return async_wrapper

    return decorator
