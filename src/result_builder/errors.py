"""
ERRORS - Failure taxonomy for result computation and report rendering

ERROR TYPES:
✅ ValidationError: Malformed grade scale, bad score entry, missing selection
✅ NoMatchingGradeError: Percentage falls in a gap of an accepted scale
✅ UpstreamFetchError: Any failed call to the result-data API
✅ RenderError: Template, image or PDF failure (no partial documents)

Every failure returns control to the caller as an exception; none is fatal
to the process.
"""

from typing import Any, List, Optional, Tuple


class ResultBuilderError(Exception):
    """Base class for all result_builder errors"""


class ValidationError(ResultBuilderError, ValueError):
    """Input rejected before any computation or persistence"""

    def __init__(
        self,
        message: str,
        errors: Optional[List[str]] = None,
        pair: Optional[Tuple[Any, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.errors = errors or [message]
        self.pair = pair


class GradeScaleNotFoundError(ResultBuilderError, LookupError):
    """No grade scale with the requested id"""

    def __init__(self, scale_id: str):
        super().__init__(f"Grade scale not found: {scale_id}")
        self.scale_id = scale_id


class GradeScaleInUseError(ValidationError):
    """Grade scale is referenced by published results and cannot be deleted"""

    def __init__(self, scale_id: str):
        super().__init__(
            f"Cannot delete grade scale {scale_id} that is being used in results"
        )
        self.scale_id = scale_id


class NoMatchingGradeError(ResultBuilderError, LookupError):
    """Percentage is not covered by any range of the scale (data defect)"""

    def __init__(self, percentage: float, scale_name: str = ""):
        super().__init__(
            f"No grade range in scale '{scale_name}' covers {percentage:.2f}%"
        )
        self.percentage = percentage
        self.scale_name = scale_name


class UpstreamFetchError(ResultBuilderError):
    """Result-data API call failed; callers may offer a manual retry"""

    def __init__(
        self, message: str, endpoint: str = "", status_code: Optional[int] = None
    ):
        super().__init__(message)
        self.endpoint = endpoint
        self.status_code = status_code


class RenderError(ResultBuilderError):
    """Report could not be rendered; no partial document was delivered"""


__all__ = [
    "ResultBuilderError",
    "ValidationError",
    "GradeScaleNotFoundError",
    "GradeScaleInUseError",
    "NoMatchingGradeError",
    "UpstreamFetchError",
    "RenderError",
]
