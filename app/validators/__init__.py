"""
app/validators package marker.
"""

from app.validators.import_job_validator import ImportJobValidator, ImportValidationError, ValidationErrorDetail

__all__ = [
    "ImportJobValidator",
    "ImportValidationError",
    "ValidationErrorDetail",
]
