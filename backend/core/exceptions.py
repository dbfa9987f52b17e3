"""
Custom exceptions for consistent error handling
"""
from fastapi import HTTPException, status


class StoreCoreException(HTTPException):
    """Base exception for StoreCore"""
    def __init__(self, status_code: int, detail: str, error_code: str = None):
        super().__init__(status_code=status_code, detail=detail)
        self.error_code = error_code


class NotFoundException(StoreCoreException):
    """404 - Resource not found"""
    def __init__(self, resource: str = "Resource"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} not found",
            error_code="NOT_FOUND"
        )


class ValidationException(StoreCoreException):
    """400 - Validation error"""
    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error_code="VALIDATION_ERROR"
        )


class MissingPricingBasisException(ValidationException):
    """No service staff record to price the import against"""
    def __init__(self, detail: str = None):
        super().__init__(
            detail=detail or "Current user is not a service staff. Please add yourself as service staff first."
        )
        self.error_code = "MISSING_PRICING_BASIS"


class ImportHasErrorsException(ValidationException):
    """Commit attempted while the preview still contains error rows"""
    def __init__(self, error_count: int):
        super().__init__(
            detail=f"Import blocked: {error_count} reservation(s) have errors"
        )
        self.error_code = "IMPORT_HAS_ERRORS"
