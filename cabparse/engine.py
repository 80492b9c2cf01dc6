"""Result assembler coordinating detection, parsing and diagnostics."""

from __future__ import annotations

import logging
import time
from typing import List, Optional

from .config import ParserConfig
from .dependencies import analyze_dependencies
from .detector import detect_format
from .errors import DecodeError
from .logic_detector import BrokenLogicDetector, apply_findings
from .models import (
    BrokenLogicFinding,
    Dependency,
    Dialect,
    DialectOutput,
    IssueSeverity,
    IssueType,
    ParseIssue,
    ParseResult,
    ParseStatistics,
    VersionMetadata,
)
from .parser import get_parser
from .scoring import complexity_score
from .version import extract_version

logger = logging.getLogger(__name__)


def decode(data: bytes) -> str:
    """Decode a UTF-8 buffer (BOM tolerated).

    Raises:
        DecodeError: invalid UTF-8 or embedded NUL bytes.
    """
    if isinstance(data, str):
        text = data
    else:
        try:
            text = bytes(data).decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise DecodeError(f"Buffer is not valid UTF-8 text: {exc}") from exc
    if "\x00" in text:
        raise DecodeError("Buffer contains NUL bytes; binary content cannot be parsed")
    return text


class ParseEngine:
    """Runs one buffer through the whole pipeline.

    Holds only read-only configuration, so one engine can serve any
    number of independent calls.
    """

    def __init__(self, config: Optional[ParserConfig] = None):
        self.config = config or ParserConfig()
        self.detector = BrokenLogicDetector(self.config)

    def parse(self, data: bytes, filename: str = "") -> ParseResult:
        """Parse *data* into a :class:`ParseResult`.

        Only :class:`DecodeError` escapes; every other failure becomes an
        entry in ``errors`` alongside whatever was parsed before it.
        """
        started = time.perf_counter()
        file_size = len(data)
        text = decode(data)
        dialect = detect_format(filename, text)
        logger.debug("Parsing '%s' as %s (%d bytes)", filename, dialect.value, file_size)

        if file_size > self.config.max_file_size:
            issue = ParseIssue(
                type=IssueType.VALIDATION,
                message=f"File size {file_size} exceeds limit of {self.config.max_file_size} bytes",
            )
            return self._assemble(dialect, filename, DialectOutput(), VersionMetadata(), [], [],
                                  [issue], [], started, file_size)

        errors: List[ParseIssue] = []
        warnings: List[ParseIssue] = []
        output = DialectOutput()
        version = VersionMetadata()
        dependencies: List[Dependency] = []
        findings: List[BrokenLogicFinding] = []

        try:
            output = get_parser(dialect).parse_text(text)
            errors.extend(output.errors)
            warnings.extend(output.warnings)

            if self.config.enable_version_detection:
                version = extract_version(text)
            if self.config.enable_broken_logic_detection:
                findings = self.detector.detect(output.parts, output.parameters, output.constraints)
                warnings.extend(self.detector.soft_signals(dialect, output.parts, output.parameters))
            if self.config.enable_dependency_analysis:
                dependencies = analyze_dependencies(output.parameters, output.links)
        except Exception as exc:
            logger.warning("Parsing '%s' failed: %s", filename, exc, exc_info=True)
            errors.append(ParseIssue(type=IssueType.PARSING, message=f"Parsing failed: {exc}"))

        if self.config.strict_mode:
            errors.extend(w for w in warnings if w.severity is not IssueSeverity.INFO)
            warnings = [w for w in warnings if w.severity is IssueSeverity.INFO]

        return self._assemble(dialect, filename, output, version, dependencies, findings,
                              errors, warnings, started, file_size)

    def _assemble(
        self,
        dialect: Dialect,
        filename: str,
        output: DialectOutput,
        version: VersionMetadata,
        dependencies: List[Dependency],
        findings: List[BrokenLogicFinding],
        errors: List[ParseIssue],
        warnings: List[ParseIssue],
        started: float,
        file_size: int,
    ) -> ParseResult:
        parts = apply_findings(output.parts, findings)
        statistics = ParseStatistics(
            total_parts=len(parts),
            total_parameters=len(output.parameters),
            total_constraints=len(output.constraints),
            broken_logic_count=len(findings),
            error_count=len(errors),
            warning_count=len(warnings),
            processing_time=round((time.perf_counter() - started) * 1000, 3),
            file_size=file_size,
            complexity_score=complexity_score(parts, output.parameters, output.constraints),
        )
        return ParseResult(
            dialect=dialect,
            filename=filename,
            parts=tuple(parts),
            parameters=output.parameters,
            constraints=output.constraints,
            dependencies=tuple(dependencies),
            version_metadata=version,
            broken_logic=tuple(findings),
            structure=output.structure,
            statistics=statistics,
            errors=tuple(errors),
            warnings=tuple(warnings),
        )


def parse(data: bytes, filename: str = "", config: Optional[ParserConfig] = None) -> ParseResult:
    """Parse one buffer with a fresh :class:`ParseEngine`."""
    return ParseEngine(config).parse(data, filename)
