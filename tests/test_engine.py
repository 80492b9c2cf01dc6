"""End-to-end tests for the parse engine."""

import json

import pytest

from cabparse import DecodeError, ParseEngine, parse
from cabparse.config import ParserConfig
from cabparse.logic_detector import INVALID_CONSTRAINT, MISSING_PARAMETER
from cabparse.models import Dialect, DependencyKind, IssueType, PartStatus
from cabparse.samples import BROKEN_SAMPLE_FILES, SAMPLE_FILES


class TestScenarios:
    """Reference inputs with known outcomes."""

    def test_broken_markup(self, broken_markup_text):
        """Broken markup yields one finding of each kind."""
        result = parse(broken_markup_text.encode(), "assembly.xml")
        stats = result.statistics
        assert result.dialect is Dialect.MARKUP
        assert (stats.total_parts, stats.total_parameters, stats.total_constraints) == (2, 4, 1)
        assert stats.broken_logic_count == 2
        assert [f.issue_type for f in result.broken_logic] == [MISSING_PARAMETER, INVALID_CONSTRAINT]
        assert result.broken_logic[0].part_id == "side_panel"
        assert result.broken_logic[1].part_id == "thickness"
        assert [p.status for p in result.parts] == [PartStatus.BROKEN, PartStatus.VALID]
        assert result.version_metadata.version == "1.0.0"

    def test_constraint_with_blank_value_attribute(self):
        """A constraint element with an empty ``value`` is counted and flagged as invalid."""
        xml = """<cabinet>
  <part id="side" name="Side">
    <parameter name="width" value="600"/>
    <parameter name="height" value="" required="true"/>
    <constraint name="max_width" value=""/>
  </part>
  <part id="top" name="Top">
    <parameter name="depth" value="560"/>
    <parameter name="edge" value="pvc"/>
  </part>
</cabinet>
"""
        result = parse(xml.encode(), "cabinet.xml")
        stats = result.statistics
        assert (stats.total_parts, stats.total_parameters, stats.total_constraints) == (2, 4, 1)
        assert stats.broken_logic_count == 2
        assert [f.issue_type for f in result.broken_logic] == [MISSING_PARAMETER, INVALID_CONSTRAINT]
        assert result.constraints[0].name == "max_width"
        assert [p.status for p in result.parts] == [PartStatus.BROKEN, PartStatus.VALID]

    def test_simple_line_file(self, simple_cab_text):
        """Plain headers and assignments parse without issues."""
        result = parse(simple_cab_text.encode(), "door.cab")
        stats = result.statistics
        assert result.dialect is Dialect.LINE_A
        assert (stats.total_parts, stats.total_parameters, stats.total_constraints) == (2, 4, 0)
        assert stats.broken_logic_count == 0
        assert result.errors == ()
        assert result.warnings == ()
        assert not result.partial

    def test_default_version(self, simple_cab_text):
        """No version token gives 1.0.0."""
        result = parse(simple_cab_text.encode(), "door.cab")
        meta = result.version_metadata
        assert (meta.version, meta.major, meta.minor, meta.patch) == ("1.0.0", 1, 0, 0)

    @pytest.mark.parametrize("data", [b"\xff\xfe\x00\x01", b"CAB_X\nw = \xc3\x28\n", b"CAB_X\x00"])
    def test_undecodable(self, data):
        """Binary or invalid UTF-8 input raises DecodeError."""
        with pytest.raises(DecodeError):
            parse(data, "door.cab")

    def test_bom_tolerated(self):
        """A UTF-8 BOM is stripped."""
        result = parse(b"\xef\xbb\xbfCAB_X\nw = 1\n", "door.cab")
        assert result.statistics.total_parts == 1


class TestSamples:
    """The bundled samples parse to their documented shapes."""

    def test_markup_sample(self, markup_text):
        """Markup sample counts, score and dependencies."""
        result = parse(markup_text.encode(), "base_cabinet.xml")
        stats = result.statistics
        assert (stats.total_parts, stats.total_parameters, stats.total_constraints) == (2, 4, 1)
        assert stats.broken_logic_count == 0
        assert stats.complexity_score == 33
        assert result.version_metadata.version == "2.1.0"
        assert [d.kind for d in result.dependencies] == [DependencyKind.REFERENCES, DependencyKind.REQUIRES]
        assert result.errors == ()
        assert result.warnings == ()

    def test_line_a_sample(self, line_a_text):
        """line-style-A sample counts and declared link."""
        result = parse(line_a_text.encode(), "base_cabinet.cab")
        stats = result.statistics
        assert (stats.total_parts, stats.total_parameters, stats.total_constraints) == (2, 8, 1)
        assert stats.broken_logic_count == 0
        assert result.version_metadata.version == "1.4.2"
        assert len(result.dependencies) == 2
        assert (result.dependencies[1].source, result.dependencies[1].target) == ("DOOR", "CARCASS")

    def test_line_b_sample(self, line_b_text):
        """line-style-B sample version and compatibility."""
        result = parse(line_b_text.encode(), "wall_unit.cabx")
        assert result.statistics.total_parameters == 6
        assert result.version_metadata.version == "2.0.0"
        assert result.version_metadata.compatibility == ("cabx-2", "moz-legacy")
        assert result.warnings == ()

    def test_model_sample(self, model_text):
        """Model sample counts."""
        result = parse(model_text.encode(), "cabinet_model.mzb")
        stats = result.statistics
        assert (stats.total_parts, stats.total_parameters, stats.total_constraints) == (3, 6, 1)
        assert result.dialect is Dialect.MODEL

    def test_broken_line_sample(self):
        """Blank constraint and empty part in the broken line sample."""
        result = parse(BROKEN_SAMPLE_FILES["broken_panel.cab"].encode(), "broken_panel.cab")
        assert [f.issue_type for f in result.broken_logic] == [INVALID_CONSTRAINT]
        assert any("EMPTY" in w.message for w in result.warnings)
        assert result.errors == ()


class TestInvariants:
    """Properties that hold for every input."""

    ALL_SAMPLES = sorted({**SAMPLE_FILES, **BROKEN_SAMPLE_FILES}.items())

    @pytest.mark.parametrize("filename, text", ALL_SAMPLES)
    def test_counts_match_collections(self, filename, text):
        """Statistics agree with the returned collections."""
        result = parse(text.encode(), filename)
        stats = result.statistics
        assert stats.total_parts == len(result.parts)
        assert stats.total_parameters == len(result.parameters)
        assert stats.total_constraints == len(result.constraints)
        assert stats.broken_logic_count == len(result.broken_logic)
        assert stats.error_count == len(result.errors)
        assert stats.warning_count == len(result.warnings)
        assert 0 <= stats.complexity_score <= 100
        assert stats.file_size == len(text.encode())

    @pytest.mark.parametrize("filename, text", ALL_SAMPLES)
    def test_idempotent(self, filename, text):
        """Parsing twice gives the same shape."""
        first, second = parse(text.encode(), filename), parse(text.encode(), filename)

        def shape(result):
            return (
                [(p.name, p.type, p.status) for p in result.parts],
                [(p.name, p.value) for p in result.parameters],
                [(c.name, c.condition) for c in result.constraints],
                [(f.issue_type, f.severity) for f in result.broken_logic],
                [w.message for w in result.warnings],
                result.version_metadata,
            )

        assert shape(first) == shape(second)

    @pytest.mark.parametrize("filename, text", ALL_SAMPLES)
    def test_result_is_json_ready(self, filename, text):
        """to_dict output survives a JSON round trip."""
        data = json.loads(json.dumps(parse(text.encode(), filename).to_dict()))
        assert data["dialect"] in {d.value for d in Dialect}
        assert data["statistics"]["total_parts"] == len(data["parts"])

    def test_score_grows_then_caps(self):
        """More parts never lower the score, which stops at 100."""
        text = "".join(f"CAB_P{i}\nw = {i}\n\n" for i in range(12))
        scores = [parse(text[: text.index(f"CAB_P{n}")].encode(), "x.cab").statistics.complexity_score
                  for n in range(1, 12)]
        assert scores == sorted(scores)
        assert parse(text.encode(), "x.cab").statistics.complexity_score == 100


class TestConfigSwitches:
    """ParserConfig changes what the engine runs."""

    def test_max_file_size(self, simple_cab_text):
        """Oversized input gives one validation error."""
        result = ParseEngine(ParserConfig(max_file_size=10)).parse(simple_cab_text.encode(), "door.cab")
        assert result.parts == ()
        assert len(result.errors) == 1
        assert result.errors[0].type is IssueType.VALIDATION
        assert result.partial

    def test_strict_mode(self):
        """Strict mode promotes structural warnings."""
        data = b"width = 1\nCAB_X\nh = 2\n"
        relaxed = parse(data, "x.cab")
        strict = ParseEngine(ParserConfig(strict_mode=True)).parse(data, "x.cab")
        assert len(relaxed.warnings) == 1 and relaxed.errors == ()
        assert len(strict.errors) == 1 and strict.warnings == ()
        assert strict.errors[0].type is IssueType.STRUCTURE

    def test_disabled_stages(self, broken_markup_text):
        """Disabled stages leave their defaults."""
        config = ParserConfig(
            enable_version_detection=False,
            enable_broken_logic_detection=False,
            enable_dependency_analysis=False,
        )
        result = ParseEngine(config).parse(b"version = 3.0\nCAB_X\nw = {y}\n", "x.cab")
        assert result.version_metadata.version == "1.0.0"
        assert result.dependencies == ()
        result = ParseEngine(config).parse(broken_markup_text.encode(), "a.xml")
        assert result.broken_logic == ()

    def test_stage_failure_recorded(self, simple_cab_text, monkeypatch):
        """A failing stage becomes an error and the rest still runs."""
        def explode(text):
            raise RuntimeError("boom")

        monkeypatch.setattr("cabparse.engine.extract_version", explode)
        result = parse(simple_cab_text.encode(), "door.cab")
        assert result.partial
        assert result.errors[0].type is IssueType.PARSING
        assert "boom" in result.errors[0].message
        assert result.statistics.total_parts == 2

    def test_malformed_markup_is_partial(self):
        """Malformed markup marks the result partial."""
        result = parse(b'<cabinet>\n<part id="a">\n<parameter name="w" value="1"/>\n', "a.xml")
        assert result.partial
        assert result.statistics.total_parts == 1
