"""Tests for broken-logic detection and complexity scoring."""

import pytest

from cabparse.config import ParserConfig
from cabparse.logic_detector import (
    INVALID_CONSTRAINT,
    MISSING_PARAMETER,
    BrokenLogicDetector,
    apply_findings,
)
from cabparse.models import (
    BrokenLogicFinding,
    Constraint,
    Dialect,
    FindingSeverity,
    IssueSeverity,
    Parameter,
    Part,
    PartStatus,
    Span,
    ValueType,
)
from cabparse.scoring import complexity_score


@pytest.fixture
def detector():
    return BrokenLogicDetector(ParserConfig())


class TestMissingParameters:
    """Required parameters without value or default."""

    def test_missing_required(self, detector):
        """A required parameter with no value is a high finding."""
        part = Part(id="side", name="Side", type="panel")
        param = Parameter(id="p1", name="edge_band", required=True, part_id="side", span=Span(10, 20, 4))
        findings = detector.detect([part], [param], [])
        assert len(findings) == 1
        finding = findings[0]
        assert finding.issue_type == MISSING_PARAMETER
        assert finding.severity is FindingSeverity.HIGH
        assert finding.part_id == "side"
        assert finding.line_number == 4
        assert "edge_band" in finding.description
        assert "Side" in finding.description

    @pytest.mark.parametrize("param", [
        Parameter(id="a", name="a", value="18", required=True),
        Parameter(id="b", name="b", value="", required=True, default_value=18),
        Parameter(id="c", name="c", value=0, value_type=ValueType.NUMBER, required=True),
        Parameter(id="d", name="d", value=False, value_type=ValueType.BOOLEAN, required=True),
        Parameter(id="e", name="e", value=""),
    ])
    def test_satisfied(self, detector, param):
        """A value, a default or a falsy literal satisfies the rule."""
        assert detector.detect([], [param], []) == []

    @pytest.mark.parametrize("value, value_type", [
        ("   ", ValueType.STRING),
        ([], ValueType.ARRAY),
        ({}, ValueType.OBJECT),
    ])
    def test_empty_values(self, detector, value, value_type):
        """Whitespace and empty containers count as missing."""
        param = Parameter(id="x", name="x", value=value, value_type=value_type, required=True)
        findings = detector.detect([], [param], [])
        assert len(findings) == 1
        assert findings[0].part_id == "unknown"


class TestInvalidConstraints:
    """Constraints whose condition is blank."""

    def test_blank_condition(self, detector):
        """A whitespace condition is a medium finding."""
        constraint = Constraint(id="c1", name="grain", condition="  ", affected_parameters=("thickness",))
        findings = detector.detect([], [], [constraint])
        assert len(findings) == 1
        assert findings[0].issue_type == INVALID_CONSTRAINT
        assert findings[0].severity is FindingSeverity.MEDIUM
        assert findings[0].part_id == "thickness"

    def test_no_affected_parameters(self, detector):
        """Without affected parameters the part is unknown."""
        findings = detector.detect([], [], [Constraint(id="c1", name="grain")])
        assert findings[0].part_id == "unknown"

    def test_valid_condition(self, detector):
        """A non-blank condition passes."""
        assert detector.detect([], [], [Constraint(id="c1", name="ok", condition="a > 1")]) == []

    def test_rules_are_independent(self, detector):
        """Both rules report on the same input."""
        params = [Parameter(id="p", name="p", required=True, part_id="x")]
        constraints = [Constraint(id="c", name="c", affected_parameters=("p",))]
        findings = detector.detect([], params, constraints)
        assert [f.issue_type for f in findings] == [MISSING_PARAMETER, INVALID_CONSTRAINT]


class TestConfiguredSeverity:
    """Severities come from configuration."""

    def test_override(self):
        """Configured severities replace the defaults."""
        config = ParserConfig(severities={"missing_parameter": FindingSeverity.CRITICAL})
        param = Parameter(id="p", name="p", required=True)
        findings = BrokenLogicDetector(config).detect([], [param], [Constraint(id="c", name="c")])
        assert findings[0].severity is FindingSeverity.CRITICAL
        assert findings[1].severity is FindingSeverity.MEDIUM


class TestSoftSignals:
    """Advisory warnings that never become findings."""

    def test_empty_part(self, detector):
        """A part with no parameters is a warning."""
        signals = detector.soft_signals(Dialect.LINE_A, [Part(id="e", name="EMPTY", type="cab_component")], [])
        assert len(signals) == 1
        assert signals[0].severity is IssueSeverity.WARNING
        assert "EMPTY" in signals[0].message

    def test_markup_without_required(self, detector):
        """Markup with nothing required is an info note."""
        params = [Parameter(id="a", name="a", value="1")]
        part = Part(id="p", name="p", type="x", parameters=tuple(params))
        signals = detector.soft_signals(Dialect.MARKUP, [part], params)
        assert len(signals) == 1
        assert signals[0].severity is IssueSeverity.INFO

    def test_line_dialect_without_required(self, detector):
        """Line dialects skip the required-parameter note."""
        params = [Parameter(id="a", name="a", value="1")]
        part = Part(id="p", name="p", type="x", parameters=tuple(params))
        assert detector.soft_signals(Dialect.LINE_B, [part], params) == []


class TestApplyFindings:
    """Part status derived from findings."""

    def _finding(self, part_id, severity):
        return BrokenLogicFinding(part_id=part_id, issue_type="x", severity=severity, description="")

    def test_status(self):
        """Worst severity decides each part status."""
        parts = [Part(id=pid, name=pid, type="t") for pid in ("a", "b", "c", "d")]
        findings = [
            self._finding("a", FindingSeverity.HIGH),
            self._finding("b", FindingSeverity.MEDIUM),
            self._finding("c", FindingSeverity.LOW),
            self._finding("c", FindingSeverity.CRITICAL),
        ]
        updated = apply_findings(parts, findings)
        assert [p.status for p in updated] == [
            PartStatus.BROKEN,
            PartStatus.WARNING,
            PartStatus.BROKEN,
            PartStatus.VALID,
        ]
        assert parts[0].status is PartStatus.VALID

    def test_broken_not_downgraded(self):
        """A later low finding keeps a broken part broken."""
        parts = [Part(id="a", name="a", type="t")]
        findings = [self._finding("a", FindingSeverity.HIGH), self._finding("a", FindingSeverity.LOW)]
        assert apply_findings(parts, findings)[0].status is PartStatus.BROKEN


class TestComplexityScore:
    """Weighted counts clamped to [0, 100]."""

    def test_weights(self):
        """Parts, parameters and constraints weigh 10, 2 and 5."""
        assert complexity_score([1, 2], [1, 2, 3, 4], [1]) == 33
        assert complexity_score([], [], []) == 0

    def test_capped(self):
        """Scores stop at 100."""
        assert complexity_score(range(20), range(50), range(10)) == 100

    def test_monotonic(self):
        """Adding any entity never lowers the score."""
        base = complexity_score([1], [1, 2], [])
        assert complexity_score([1, 2], [1, 2], []) >= base
        assert complexity_score([1], [1, 2, 3], []) >= base
        assert complexity_score([1], [1, 2], [1]) >= base
