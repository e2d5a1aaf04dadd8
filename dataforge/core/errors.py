"""
Error taxonomy for DataForge.
"""

import traceback as tb
from typing import Dict, Any, Optional
from pydantic import BaseModel, Field


class CodeExecutionDetails(BaseModel):
    """Details about a failed generator program run."""
    error_type: str
    error_message: str
    traceback: Optional[str] = None
    context: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_exception(cls, e: BaseException, context: Dict[str, Any]) -> "CodeExecutionDetails":
        """Create error details from an exception."""
        return cls(
            error_type=type(e).__name__,
            error_message=str(e),
            traceback="".join(tb.format_exception(type(e), e, e.__traceback__)),
            context=context
        )


class DataForgeError(Exception):
    """Base class for all DataForge errors."""


class ParseError(DataForgeError):
    """The sample text is not well-formed JSON."""


class InferenceError(DataForgeError):
    """Schema inference did not produce a valid field list."""


class ValidationError(DataForgeError):
    """A field lacks options its strategy requires."""

    def __init__(self, message: str, problems: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.problems = problems or {}


class SynthesisError(DataForgeError):
    """The code synthesis collaborator failed or returned nothing."""


class ExecutionError(DataForgeError):
    """A synthesized generator program raised or returned a non-list."""

    def __init__(self, message: str, details: Optional[CodeExecutionDetails] = None):
        super().__init__(f"Failed to execute generation logic: {message}")
        self.details = details
