"""Broken-logic detection over parsed parts, parameters and constraints."""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, List, Optional, Sequence

from .config import ParserConfig
from .errors import StructuralWarning
from .models import (
    BrokenLogicFinding,
    Constraint,
    Dialect,
    FindingSeverity,
    IssueSeverity,
    Parameter,
    ParseIssue,
    Part,
    PartStatus,
)

MISSING_PARAMETER = "missing_parameter"
INVALID_CONSTRAINT = "invalid_constraint"

_BROKEN_SEVERITIES = {FindingSeverity.CRITICAL, FindingSeverity.HIGH}


class BrokenLogicDetector:
    """Apply the fixed rule set and report findings.

    Rules are independent: a parameter or constraint may appear in more
    than one finding and nothing is merged. Findings never remove or
    change entities; use :func:`apply_findings` to derive part status.
    """

    def __init__(self, config: Optional[ParserConfig] = None):
        self.config = config or ParserConfig()

    def detect(
        self,
        parts: Sequence[Part],
        parameters: Sequence[Parameter],
        constraints: Sequence[Constraint],
    ) -> List[BrokenLogicFinding]:
        """Run every rule.

        Args:
            parts: Parsed parts (used to name the owning part)
            parameters: Every parameter, attached or orphaned
            constraints: Every constraint, attached or top-level

        Returns:
            Findings in rule order, then source order
        """
        part_names = {part.id: part.name for part in parts}
        return (
            self._detect_missing_parameters(parameters, part_names)
            + self._detect_invalid_constraints(constraints)
        )

    def _detect_missing_parameters(
        self,
        parameters: Sequence[Parameter],
        part_names: Dict[str, str],
    ) -> List[BrokenLogicFinding]:
        findings = []
        severity = self.config.severity_for(MISSING_PARAMETER)
        for param in parameters:
            if not param.required or param.has_value or param.default_value is not None:
                continue
            owner = part_names.get(param.part_id or "")
            where = f" in part '{owner}'" if owner else ""
            findings.append(BrokenLogicFinding(
                part_id=param.part_id or "unknown",
                issue_type=MISSING_PARAMETER,
                severity=severity,
                description=f"Required parameter '{param.name}' is missing{where}",
                suggested_fix=f"Add a value for parameter '{param.name}'",
                line_number=param.span.line or None,
                span=param.span,
            ))
        return findings

    def _detect_invalid_constraints(self, constraints: Sequence[Constraint]) -> List[BrokenLogicFinding]:
        findings = []
        severity = self.config.severity_for(INVALID_CONSTRAINT)
        for constraint in constraints:
            if not constraint.is_blank:
                continue
            affected = constraint.affected_parameters
            findings.append(BrokenLogicFinding(
                part_id=affected[0] if affected else "unknown",
                issue_type=INVALID_CONSTRAINT,
                severity=severity,
                description=f"Constraint '{constraint.name}' has no value",
                suggested_fix="Add a valid value for the constraint",
                line_number=constraint.span.line or None,
                span=constraint.span,
            ))
        return findings

    def soft_signals(
        self,
        dialect: Dialect,
        parts: Sequence[Part],
        parameters: Sequence[Parameter],
    ) -> List[ParseIssue]:
        """Advisory structure warnings that are not broken logic.

        Parts without parameters are flagged in every dialect. Markup
        documents whose parameters declare nothing as required are
        flagged once, since only markup can declare ``required``.
        """
        signals: List[ParseIssue] = []
        for part in parts:
            if not part.parameters:
                signals.append(StructuralWarning(
                    f"Part '{part.name}' has no parameters",
                    line_number=part.span.line or None,
                    span=part.span,
                    suggested_fix="Add parameters or remove the empty part",
                ).to_issue(IssueSeverity.WARNING))

        if dialect is Dialect.MARKUP and parameters and not any(p.required for p in parameters):
            signals.append(StructuralWarning(
                f"None of the {len(parameters)} parameters is marked required",
                suggested_fix="Mark mandatory parameters with required=\"true\"",
            ).to_issue(IssueSeverity.INFO))
        return signals


def apply_findings(parts: Sequence[Part], findings: Sequence[BrokenLogicFinding]) -> List[Part]:
    """Return copies of *parts* with status derived from *findings*.

    A critical/high finding marks the part ``broken``; anything milder
    marks it ``warning`` unless it is already broken.
    """
    status: Dict[str, PartStatus] = {}
    for finding in findings:
        current = status.get(finding.part_id, PartStatus.VALID)
        if finding.severity in _BROKEN_SEVERITIES:
            status[finding.part_id] = PartStatus.BROKEN
        elif current is not PartStatus.BROKEN:
            status[finding.part_id] = PartStatus.WARNING

    return [
        replace(part, status=status[part.id]) if part.id in status else part
        for part in parts
    ]
