"""Exception taxonomy and recoverable issue records."""

from __future__ import annotations

from typing import Optional

from .models import IssueSeverity, IssueType, ParseIssue, Span


class CabParseError(Exception):
    """Base class for all cabparse errors."""


class DecodeError(CabParseError):
    """The input buffer cannot be interpreted as text."""


class ParsingError(CabParseError):
    """A local parse failure confined to one element or line.

    Raised inside a dialect parser and converted into a ``parsing``
    entry of :attr:`ParseResult.errors`; never escapes :func:`parse`.
    """

    def __init__(self, message: str, line_number: Optional[int] = None, context: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.line_number = line_number
        self.context = context

    def to_issue(self) -> ParseIssue:
        return ParseIssue(
            type=IssueType.PARSING,
            message=self.message,
            severity=IssueSeverity.ERROR,
            line_number=self.line_number,
            context=self.context,
        )


class StructuralWarning(CabParseError):
    """A non-fatal structural problem, e.g. an ambiguous or discarded line."""

    def __init__(
        self,
        message: str,
        line_number: Optional[int] = None,
        span: Optional[Span] = None,
        suggested_fix: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.line_number = line_number
        self.span = span or Span()
        self.suggested_fix = suggested_fix

    def to_issue(self, severity: IssueSeverity = IssueSeverity.WARNING) -> ParseIssue:
        return ParseIssue(
            type=IssueType.STRUCTURE,
            message=self.message,
            severity=severity,
            line_number=self.line_number,
            span=self.span,
            suggested_fix=self.suggested_fix,
        )
