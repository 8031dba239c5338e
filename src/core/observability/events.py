# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.
"""
Typed event definitions for lifecycle tracing.
"""

from __future__ import annotations

import json
import logging
import traceback
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

ERROR_DATA_KEY = "ErrorData"


class Severity(str, Enum):
    """Trace severity, ordered Verbose < Information < Warning < Error < Critical."""

    VERBOSE = "Verbose"
    INFORMATION = "Information"
    WARNING = "Warning"
    ERROR = "Error"
    CRITICAL = "Critical"

    @property
    def rank(self) -> int:
        """Ordinal position, also the Application Insights severityLevel."""
        return _SEVERITY_ORDER.index(self)

    @property
    def logging_level(self) -> int:
        """Matching stdlib logging level."""
        return _LOGGING_LEVELS[self]

    @classmethod
    def from_logging_level(cls, levelno: int) -> "Severity":
        """Map a stdlib logging level to the closest severity.

        :param levelno: Logging level number
        :type levelno: int
        :returns: Severity
        :rtype: Severity
        """
        if levelno >= logging.CRITICAL:
            return cls.CRITICAL
        if levelno >= logging.ERROR:
            return cls.ERROR
        if levelno >= logging.WARNING:
            return cls.WARNING
        if levelno >= logging.INFO:
            return cls.INFORMATION
        return cls.VERBOSE


_SEVERITY_ORDER = list(Severity)
_LOGGING_LEVELS = {
    Severity.VERBOSE: logging.DEBUG,
    Severity.INFORMATION: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
    Severity.CRITICAL: logging.CRITICAL,
}


class TraceEvent(BaseModel):
    """One emitted trace: label, severity and string attributes."""

    model_config = ConfigDict(frozen=True)

    label: str
    severity: Severity
    attributes: dict[str, str] = Field(default_factory=dict)


class ErrorRecord(BaseModel):
    """Failure details captured from an exception."""

    model_config = ConfigDict(frozen=True)

    message: str
    file_name: Optional[str] = None
    line_number: Optional[int] = None

    @classmethod
    def from_exception(cls, error: BaseException) -> "ErrorRecord":
        """Build a record from an exception and its innermost frame.

        Source location is left empty when the exception was never raised.

        :param error: Caught exception
        :type error: BaseException
        :returns: ErrorRecord
        :rtype: ErrorRecord
        """
        file_name = None
        line_number = None
        frames = traceback.extract_tb(error.__traceback__) if error.__traceback__ else []
        if frames:
            file_name = frames[-1].filename
            line_number = frames[-1].lineno
        return cls(message=str(error), file_name=file_name, line_number=line_number)

    def to_json(self) -> str:
        """Serialize to the ErrorData attribute format.

        :returns: JSON string
        :rtype: str
        """
        return json.dumps(
            {
                "ExceptionMessage": self.message,
                "FileName": self.file_name,
                "LineNumber": str(self.line_number) if self.line_number is not None else None,
            }
        )


def truncate(text: Optional[str], max_length: int = 200) -> Optional[str]:
    """Truncate text to max length with ellipsis.

    :param text: Text to truncate
    :type text: Optional[str]
    :param max_length: Maximum length
    :type max_length: int
    :returns: Truncated text or None
    :rtype: Optional[str]
    """
    if text is None:
        return None
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."
