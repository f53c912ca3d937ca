from typing import List, Optional

from schemas.marksheets import ExtractionFailureInfo


class MarksheetAnalyticsError(Exception):
    """Base for every domain error raised by the services"""
    status_code = 500
    code = "INTERNAL_ERROR"


class ExtractionFailure(MarksheetAnalyticsError):
    """One image could not be extracted. Never fatal to its batch."""
    status_code = 502
    code = "EXTRACTION_FAILED"

    def __init__(self, cause, filename: Optional[str] = None):
        self.cause = cause
        self.filename = filename
        super().__init__(str(cause))


class BatchFailure(MarksheetAnalyticsError):
    """Every image of a submission failed"""
    status_code = 502
    code = "BATCH_FAILED"
    user_message = "Failed to analyze documents. Please check image quality and try again."

    def __init__(self, attempted: int, failures: List[ExtractionFailureInfo]):
        self.attempted = attempted
        self.failures = failures
        super().__init__(self.user_message)


class InvalidInput(MarksheetAnalyticsError):
    """Contract violation inside the service layer (e.g. averaging zero results)"""


class BatchNotFound(MarksheetAnalyticsError):
    status_code = 404
    code = "BATCH_NOT_FOUND"

    def __init__(self, batch_id: str):
        self.batch_id = batch_id
        super().__init__(f"Batch not found: {batch_id}")


class SelectionOutOfRange(MarksheetAnalyticsError):
    status_code = 404
    code = "SELECTION_OUT_OF_RANGE"

    def __init__(self, index: int, size: int):
        self.index = index
        self.size = size
        super().__init__(f"No student at index {index} (batch has {size} results)")
