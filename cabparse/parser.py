"""Dialect parsers turning decoded design-file text into parts, parameters and constraints.

Three grammars are supported:
- Markup (``.xml``): element tree walked recursively, each element
  classified by name/shape heuristics.
- Line-oriented CAB-style (``.cab``/``.moz`` and ``.cabx``/``.dat``/``.des``):
  header lines open parts, ``key = value`` lines attach parameters.
- Model (``.mzb``): the line-oriented grammar plus semantic parameter
  buckets (variables, constants, boundaries).

Every parser returns a :class:`~cabparse.models.DialectOutput`; all state
lives in per-call helper objects so parsers are reentrant.
"""

from __future__ import annotations

import logging
import re
import uuid
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from .errors import ParsingError, StructuralWarning
from .models import (
    Constraint,
    ConstraintKind,
    ConstraintSeverity,
    DeclaredLink,
    Dialect,
    DialectOutput,
    FileSection,
    FileStructure,
    HierarchyNode,
    IssueSeverity,
    Parameter,
    ParamValue,
    ParseIssue,
    Part,
    PartMetadata,
    Span,
    ValidationRule,
    ValueType,
)

logger = logging.getLogger(__name__)

_NUMBER = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")
_INTEGER = re.compile(r"^[+-]?\d+$")
_TRUTHY = {"true", "1", "yes", "y", "on"}


# ===================================================================
# Value inference
# ===================================================================

def infer_value(raw: Any) -> Tuple[ParamValue, ValueType]:
    """Infer the typed value of a raw literal.

    Numeric literal -> number, ``true``/``false`` (any case) -> boolean,
    anything else -> string with surrounding quotes removed. Lists and
    dicts pass through as array/object.
    """
    if isinstance(raw, bool):
        return raw, ValueType.BOOLEAN
    if isinstance(raw, (int, float)):
        return raw, ValueType.NUMBER
    if isinstance(raw, list):
        return raw, ValueType.ARRAY
    if isinstance(raw, dict):
        return raw, ValueType.OBJECT
    if raw is None:
        return "", ValueType.STRING

    text = str(raw).strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "\"'":
        return text[1:-1], ValueType.STRING
    if _NUMBER.match(text):
        if _INTEGER.match(text):
            return int(text), ValueType.NUMBER
        return float(text), ValueType.NUMBER
    if text.lower() in ("true", "false"):
        return text.lower() == "true", ValueType.BOOLEAN
    return text, ValueType.STRING


def _as_bool(raw: Optional[str]) -> bool:
    return raw is not None and raw.strip().lower() in _TRUTHY


def _split_list(raw: Optional[str]) -> Tuple[str, ...]:
    if not raw:
        return ()
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def _new_id() -> str:
    return str(uuid.uuid4())


def _constraint_kind(raw: Optional[str], warn: Callable[[str], None]) -> ConstraintKind:
    if not raw:
        return ConstraintKind.CUSTOM
    try:
        return ConstraintKind(raw.strip().lower())
    except ValueError:
        warn(f"Unknown constraint type '{raw}', treating as custom")
        return ConstraintKind.CUSTOM


def _constraint_severity(raw: Optional[str], warn: Callable[[str], None]) -> ConstraintSeverity:
    if not raw:
        return ConstraintSeverity.ERROR
    value = raw.strip().lower()
    if value == "critical":
        return ConstraintSeverity.ERROR
    try:
        return ConstraintSeverity(value)
    except ValueError:
        warn(f"Unknown constraint severity '{raw}', treating as error")
        return ConstraintSeverity.ERROR


# ===================================================================
# Abstract Parser Interface
# ===================================================================

class DialectParser(ABC):
    """Abstract base class for all dialect parsers."""

    dialect: Dialect

    @abstractmethod
    def parse_text(self, text: str) -> DialectOutput:
        """Parse decoded *text* into parts, parameters and constraints."""
        ...


# ===================================================================
# Markup Parser
# ===================================================================

class ElementKind(str, Enum):
    PART = "part"
    PARAMETER = "parameter"
    CONSTRAINT = "constraint"
    UNCLASSIFIED = "unclassified"


CONTAINER_TAGS: Set[str] = {
    "parts", "components", "parameters", "attributes", "constraints", "rules",
}

# Child elements read as fields of their classified parent rather than visited
FIELD_TAGS: Set[str] = {
    "name", "description", "value", "default_value", "condition", "message",
    "affected_parameters", "unit", "required", "author", "version",
    "created_date", "modified_date", "severity", "validation",
}

_NAME_RULES: Sequence[Tuple[Tuple[str, ...], ElementKind]] = (
    (("constraint", "rule"), ElementKind.CONSTRAINT),
    (("param", "attribute"), ElementKind.PARAMETER),
    (("part", "component"), ElementKind.PART),
)


def _name_matches(tag: str) -> List[ElementKind]:
    lowered = tag.lower()
    return [kind for keywords, kind in _NAME_RULES if any(k in lowered for k in keywords)]


def classify_element(
    tag: str,
    attrs: Mapping[str, str],
    child_tags: Iterable[str] = (),
) -> ElementKind:
    """Classify one markup element as exactly one entity kind.

    Rules are tried in order and the first hit wins: a constraint/rule
    tag name, then a ``value`` attribute, then the remaining tag names
    (param/attribute, part/component), then shape (condition/rule
    attribute or condition child, value child, id/type attribute).
    A constraint-named element carrying ``value`` reads it as its
    condition.
    """
    lowered = tag.lower()
    if lowered.startswith("dependenc"):
        return ElementKind.UNCLASSIFIED
    if lowered in CONTAINER_TAGS and not attrs:
        return ElementKind.UNCLASSIFIED

    by_name = _name_matches(tag)
    if ElementKind.CONSTRAINT in by_name:
        return ElementKind.CONSTRAINT
    if "value" in attrs:
        return ElementKind.PARAMETER
    if by_name:
        return by_name[0]

    children = {c.lower() for c in child_tags}
    if "condition" in attrs or "rule" in attrs or "condition" in children:
        return ElementKind.CONSTRAINT
    if "value" in children:
        return ElementKind.PARAMETER
    if "type" in attrs or "id" in attrs:
        return ElementKind.PART
    return ElementKind.UNCLASSIFIED


def is_ambiguous(tag: str, attrs: Mapping[str, str]) -> bool:
    """True when the tag name and the ``value`` attribute point at different kinds."""
    if tag.lower() in CONTAINER_TAGS and not attrs:
        return False
    kinds = set(_name_matches(tag))
    if "value" in attrs and ElementKind.CONSTRAINT not in kinds:
        kinds.add(ElementKind.PARAMETER)
    return len(kinds) > 1


def _local_name(tag: Any) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


class MarkupParser(DialectParser):
    """Recursive element-tree parser for the markup dialect."""

    dialect = Dialect.MARKUP

    def parse_text(self, text: str) -> DialectOutput:
        root, lines, error = self._build_tree(text)
        if root is None:
            return DialectOutput(errors=(error,) if error else ())

        walk = _MarkupWalk(lines)
        walk.visit(root, parent_id=None, level=0)
        errors = [error] if error else []
        return walk.output(errors)

    def _build_tree(self, text: str) -> Tuple[Optional[ET.Element], Dict[int, Span], Optional[ParseIssue]]:
        """Feed *text* line by line, remembering where each element starts.

        On malformed input the elements built before the failure are kept
        and the failure is returned as a ``parsing`` issue.
        """
        parser = ET.XMLPullParser(events=("start",))
        # expat reparse deferral can otherwise hold events back past their line
        flush = getattr(parser, "flush", None)
        spans: Dict[int, Span] = {}
        root: Optional[ET.Element] = None
        offset = 0
        try:
            for line_no, line in enumerate(text.splitlines(keepends=True), start=1):
                parser.feed(line)
                if flush is not None:
                    flush()
                span = Span(start=offset, end=offset + len(line.rstrip("\r\n")), line=line_no)
                for _event, elem in parser.read_events():
                    if root is None:
                        root = elem
                    spans[id(elem)] = span
                offset += len(line)
            parser.close()
            return root, spans, None
        except ET.ParseError as exc:
            line, column = getattr(exc, "position", (0, 0))
            logger.warning("Malformed markup at line %s, column %s: %s", line, column, exc)
            issue = ParsingError(
                f"Malformed markup: {exc}",
                line_number=line or None,
                context=f"column {column}",
            ).to_issue()
            return root, spans, issue


@dataclass
class _PartDraft:
    part: Part
    parameters: List[Parameter] = field(default_factory=list)
    constraints: List[Constraint] = field(default_factory=list)
    errors: List[ParseIssue] = field(default_factory=list)

    def build(self) -> Part:
        return Part(
            id=self.part.id,
            name=self.part.name,
            type=self.part.type,
            parameters=tuple(self.parameters),
            constraints=tuple(self.constraints),
            metadata=self.part.metadata,
            span=self.part.span,
            errors=tuple(self.errors),
        )


class _MarkupWalk:
    """Walks an element tree and collects entities, sections and links."""

    def __init__(self, spans: Dict[int, Span]) -> None:
        self.spans = spans
        self.drafts: List[_PartDraft] = []
        self.part_stack: List[_PartDraft] = []
        self.parameters: List[Parameter] = []
        self.constraints: List[Constraint] = []
        self.links: List[DeclaredLink] = []
        self.sections: List[Optional[FileSection]] = []
        self.hierarchy: List[Optional[HierarchyNode]] = []
        self.warnings: List[ParseIssue] = []

    # -- output ---------------------------------------------------------

    def output(self, errors: List[ParseIssue]) -> DialectOutput:
        parts = tuple(d.build() for d in self.drafts)
        return DialectOutput(
            parts=parts,
            parameters=tuple(self.parameters),
            constraints=tuple(self.constraints),
            structure=FileStructure(
                sections=tuple(s for s in self.sections if s is not None),
                hierarchy=tuple(h for h in self.hierarchy if h is not None),
            ),
            links=tuple(self.links),
            errors=tuple(errors),
            warnings=tuple(self.warnings),
        )

    def warn(self, message: str, elem: Optional[ET.Element] = None) -> None:
        span = self.spans.get(id(elem), Span()) if elem is not None else Span()
        issue = StructuralWarning(message, line_number=span.line or None, span=span).to_issue()
        self.warnings.append(issue)
        if self.part_stack:
            self.part_stack[-1].errors.append(issue)

    # -- traversal ------------------------------------------------------

    def visit(self, elem: ET.Element, parent_id: Optional[str], level: int) -> str:
        tag = _local_name(elem.tag)
        attrs = dict(elem.attrib)
        children = [c for c in elem if isinstance(c.tag, str)]
        child_tags = [_local_name(c.tag) for c in children]
        span = self.spans.get(id(elem), Span())

        section_id = _new_id()
        slot = len(self.sections)
        self.sections.append(None)
        self.hierarchy.append(None)

        if tag.lower() == "dependency":
            self._record_link(elem, attrs)
        if is_ambiguous(tag, attrs):
            self.warn(f"Ambiguous element <{tag}> matches more than one entity kind", elem)

        kind = classify_element(tag, attrs, child_tags)
        entity_id: Optional[str] = None
        pushed = False
        if kind is ElementKind.PART:
            draft = self._make_part(tag, attrs, elem, span)
            entity_id = draft.part.id
            self.drafts.append(draft)
            self.part_stack.append(draft)
            pushed = True
        elif kind is ElementKind.PARAMETER:
            param = self._make_parameter(tag, attrs, elem, span)
            entity_id = param.id
            self.parameters.append(param)
            if self.part_stack:
                self.part_stack[-1].parameters.append(param)
        elif kind is ElementKind.CONSTRAINT:
            constraint = self._make_constraint(tag, attrs, elem, span)
            entity_id = constraint.id
            self.constraints.append(constraint)
            if self.part_stack:
                self.part_stack[-1].constraints.append(constraint)

        child_ids: List[str] = []
        for child, child_tag in zip(children, child_tags):
            if kind is not ElementKind.UNCLASSIFIED and self._is_field(child, child_tag):
                continue
            child_ids.append(self.visit(child, parent_id=section_id, level=level + 1))

        if pushed:
            self.part_stack.pop()

        self.sections[slot] = FileSection(
            id=section_id,
            name=tag,
            kind="content",
            content=_element_content(elem, attrs),
            span=span,
            subsections=tuple(child_ids),
        )
        metadata: Dict[str, Any] = {}
        if entity_id:
            metadata["entity_id"] = entity_id
        self.hierarchy[slot] = HierarchyNode(
            id=section_id,
            name=tag,
            kind=kind.value,
            level=level,
            parent_id=parent_id,
            children=tuple(child_ids),
            metadata=metadata,
        )
        return section_id

    @staticmethod
    def _is_field(child: ET.Element, child_tag: str) -> bool:
        return child_tag.lower() in FIELD_TAGS and "value" not in child.attrib

    # -- entity builders ------------------------------------------------

    def _make_part(self, tag: str, attrs: Dict[str, str], elem: ET.Element, span: Span) -> _PartDraft:
        metadata = PartMetadata(
            version=_field(elem, attrs, "version") or "1.0.0",
            created_date=_field(elem, attrs, "created_date"),
            modified_date=_field(elem, attrs, "modified_date"),
            author=_field(elem, attrs, "author"),
            description=_field(elem, attrs, "description"),
        )
        part = Part(
            id=attrs.get("id") or _new_id(),
            name=_field(elem, attrs, "name") or tag,
            type=attrs.get("type") or "unknown",
            metadata=metadata,
            span=span,
        )
        return _PartDraft(part=part)

    def _make_parameter(self, tag: str, attrs: Dict[str, str], elem: ET.Element, span: Span) -> Parameter:
        if "value" in attrs:
            value, value_type = infer_value(attrs["value"])
        else:
            value_elem = _child(elem, "value")
            if value_elem is not None:
                value, value_type = _element_value(value_elem)
            else:
                value, value_type = infer_value((elem.text or "").strip())

        default_raw = _field(elem, attrs, "default_value")
        default_value = infer_value(default_raw)[0] if default_raw is not None else None

        return Parameter(
            id=attrs.get("id") or _new_id(),
            name=attrs.get("name") or tag,
            value=value,
            value_type=value_type,
            unit=_field(elem, attrs, "unit"),
            description=_field(elem, attrs, "description"),
            required=_as_bool(_field(elem, attrs, "required")),
            default_value=default_value,
            validation_rules=tuple(_validation_rules(elem)),
            span=span,
            part_id=self.part_stack[-1].part.id if self.part_stack else None,
        )

    def _make_constraint(self, tag: str, attrs: Dict[str, str], elem: ET.Element, span: Span) -> Constraint:
        condition = (
            attrs.get("condition")
            or attrs.get("rule")
            or attrs.get("value")
            or _child_text(elem, "condition")
            or (elem.text or "").strip()
        )
        warn = lambda message: self.warn(message, elem)  # noqa: E731
        return Constraint(
            id=attrs.get("id") or _new_id(),
            name=attrs.get("name") or tag,
            kind=_constraint_kind(attrs.get("type"), warn),
            condition=condition or "",
            description=_field(elem, attrs, "description"),
            message=_field(elem, attrs, "message"),
            severity=_constraint_severity(_field(elem, attrs, "severity"), warn),
            affected_parameters=_split_list(_field(elem, attrs, "affected_parameters")),
            span=span,
        )

    def _record_link(self, elem: ET.Element, attrs: Dict[str, str]) -> None:
        source, target = attrs.get("from"), attrs.get("to")
        if not source or not target:
            self.warn("Dependency element without 'from' and 'to' attributes", elem)
            return
        self.links.append(DeclaredLink(
            source=source,
            target=target,
            kind=attrs.get("type", "references"),
            description=_child_text(elem, "description"),
        ))


def _child(elem: ET.Element, name: str) -> Optional[ET.Element]:
    for child in elem:
        if _local_name(child.tag).lower() == name:
            return child
    return None


def _child_text(elem: ET.Element, name: str) -> Optional[str]:
    child = _child(elem, name)
    if child is None:
        return None
    return (child.text or "").strip()


def _field(elem: ET.Element, attrs: Dict[str, str], name: str) -> Optional[str]:
    if name in attrs:
        return attrs[name]
    return _child_text(elem, name)


def _element_value(elem: ET.Element) -> Tuple[ParamValue, ValueType]:
    children = [c for c in elem if isinstance(c.tag, str)]
    if not children:
        return infer_value((elem.text or "").strip())
    names = [_local_name(c.tag) for c in children]
    if len(set(names)) == 1 and len(names) > 1:
        return [_element_value(c)[0] for c in children], ValueType.ARRAY
    return {name: _element_value(c)[0] for name, c in zip(names, children)}, ValueType.OBJECT


def _validation_rules(elem: ET.Element) -> List[ValidationRule]:
    rules: List[ValidationRule] = []
    validation = _child(elem, "validation")
    if validation is None:
        return rules
    for rule in validation:
        if _local_name(rule.tag).lower() != "rule":
            continue
        raw = rule.attrib.get("value")
        rules.append(ValidationRule(
            type=rule.attrib.get("type", "custom"),
            value=infer_value(raw)[0] if raw is not None else None,
            message=rule.attrib.get("message", ""),
        ))
    return rules


def _element_content(elem: ET.Element, attrs: Dict[str, str]) -> str:
    text = (elem.text or "").strip()
    if text:
        return text
    return " ".join(f'{k}="{v}"' for k, v in attrs.items())


# ===================================================================
# Line-oriented Parsers (CAB-style families and the model dialect)
# ===================================================================

@dataclass(frozen=True)
class LineDialect:
    """Header prefixes and scoping rules of one line-oriented family."""
    dialect: Dialect
    prefixes: Tuple[str, ...]
    attach_constraints: bool = True
    top_level_scope: bool = False


LINE_STYLE_A = LineDialect(Dialect.LINE_A, prefixes=("CAB", "MOZ"))
LINE_STYLE_B = LineDialect(Dialect.LINE_B, prefixes=("CABX", "DAT", "DES"), top_level_scope=True)
MODEL_DIALECT = LineDialect(Dialect.MODEL, prefixes=("MZB",))

_CONSTRAINT_HEADER = re.compile(r"^CONSTRAINT_(\w*)\s*(?::(.*))?$")
_DEPENDENCY_HEADER = re.compile(r"^DEPENDENCY_(\w*)\s*$", re.IGNORECASE)
_KEY_VALUE = re.compile(r"^([^=:]*?)\s*[=:]\s*(.*)$")
_VALID_KEY = re.compile(r"^[A-Za-z_][\w.\-]*(?: +[\w.\-]+)*$")
_COMMENT_PREFIXES = ("#", ";", "//")

_CONSTRAINT_FIELDS = {
    "type": "kind", "kind": "kind",
    "severity": "severity",
    "condition": "condition", "rule": "condition", "value": "condition", "expression": "condition",
    "message": "message",
    "description": "description",
    "affected_parameters": "affected", "affects": "affected",
}
_DEPENDENCY_FIELDS = {"from", "to", "type", "description"}
_PART_METADATA_KEYS = {"version", "author", "description", "created_date", "modified_date"}


@dataclass
class _Block:
    """A constraint or dependency block opened by a header line."""
    kind: str
    name: str
    span: Span
    lines: List[str] = field(default_factory=list)
    fields: Dict[str, str] = field(default_factory=dict)
    inline: Optional[str] = None


@dataclass
class _LineScan:
    """Explicit scan state for one parse call."""
    draft: Optional[_PartDraft] = None
    draft_lines: List[str] = field(default_factory=list)
    draft_section: Optional[str] = None
    draft_slot: int = -1
    block: Optional[_Block] = None
    drafts: List[_PartDraft] = field(default_factory=list)
    parameters: List[Parameter] = field(default_factory=list)
    constraints: List[Constraint] = field(default_factory=list)
    links: List[DeclaredLink] = field(default_factory=list)
    sections: List[Optional[FileSection]] = field(default_factory=list)
    hierarchy: List[Optional[HierarchyNode]] = field(default_factory=list)
    errors: List[ParseIssue] = field(default_factory=list)
    warnings: List[ParseIssue] = field(default_factory=list)


def _child_ids(hierarchy: List[Optional[HierarchyNode]], parent_id: str) -> Tuple[str, ...]:
    return tuple(h.id for h in hierarchy if h is not None and h.parent_id == parent_id)


class LineParser(DialectParser):
    """Line-by-line scanner shared by the CAB-style families and the model dialect."""

    def __init__(self, spec: LineDialect = LINE_STYLE_A) -> None:
        self.spec = spec
        self.dialect = spec.dialect
        alternatives = "|".join(sorted(spec.prefixes, key=len, reverse=True))
        self._part_header = re.compile(rf"^({alternatives})_(\w*)\s*$", re.IGNORECASE)

    def parse_text(self, text: str) -> DialectOutput:
        scan = _LineScan()
        offset = 0
        for line_no, raw in enumerate(text.splitlines(keepends=True), start=1):
            content = raw.rstrip("\r\n")
            span = Span(start=offset, end=offset + len(content), line=line_no)
            offset += len(raw)
            try:
                self._step(scan, content.strip(), span)
            except ParsingError as exc:
                logger.debug("Line %d: %s", line_no, exc.message)
                issue = exc.to_issue()
                scan.errors.append(issue)
                if scan.draft is not None:
                    scan.draft.errors.append(issue)
            except StructuralWarning as exc:
                self._warn(scan, exc)

        self._close_block(scan)
        self._close_part(scan)
        return DialectOutput(
            parts=tuple(d.build() for d in scan.drafts),
            parameters=tuple(scan.parameters),
            constraints=tuple(scan.constraints),
            structure=FileStructure(
                sections=tuple(s for s in scan.sections if s is not None),
                hierarchy=tuple(h for h in scan.hierarchy if h is not None),
            ),
            links=tuple(scan.links),
            errors=tuple(scan.errors),
            warnings=tuple(scan.warnings),
        )

    # -- one line -------------------------------------------------------

    def _step(self, scan: _LineScan, line: str, span: Span) -> None:
        if not line:
            self._close_block(scan)
            return
        if line.startswith(_COMMENT_PREFIXES):
            return

        match = _CONSTRAINT_HEADER.match(line)
        if match:
            self._close_block(scan)
            name, inline = match.group(1), match.group(2)
            if not name:
                raise ParsingError("Constraint header without identifier", span.line, line)
            scan.block = _Block(kind="constraint", name=name, span=span, lines=[line], inline=inline)
            if inline is not None:
                self._close_block(scan)
            return

        match = _DEPENDENCY_HEADER.match(line)
        if match:
            self._close_block(scan)
            if not match.group(1):
                raise ParsingError("Dependency header without identifier", span.line, line)
            scan.block = _Block(kind="dependency", name=match.group(1), span=span, lines=[line])
            return

        match = self._part_header.match(line)
        if match:
            self._close_block(scan)
            self._close_part(scan)
            prefix, name = match.group(1), match.group(2)
            if not name:
                raise ParsingError("Part header without identifier", span.line, line)
            self._open_part(scan, prefix, name, span, line)
            return

        match = _KEY_VALUE.match(line)
        if match:
            key, value = match.group(1).strip(), match.group(2).strip()
            if not key:
                raise ParsingError("Assignment without a key", span.line, line)
            if not _VALID_KEY.match(key):
                raise StructuralWarning(
                    f"Unrecognized assignment key '{key}' on line {span.line} was skipped",
                    line_number=span.line,
                    span=span,
                )
            if scan.block is not None:
                scan.block.lines.append(line)
                scan.block.span = Span(scan.block.span.start, span.end, scan.block.span.line)
                self._block_field(scan.block, key, value, span)
                return
            self._assign(scan, key, value, span, line)
            return

        logger.debug("Skipping unrecognized line %d: %s", span.line, line)

    # -- parts ----------------------------------------------------------

    def _open_part(self, scan: _LineScan, prefix: str, name: str, span: Span, line: str) -> None:
        part = Part(
            id=_new_id(),
            name=name,
            type=f"{prefix.lower()}_component",
            span=span,
        )
        scan.draft = _PartDraft(part=part)
        scan.draft_lines = [line]
        scan.draft_section = _new_id()
        # reserve the slot so the part precedes its constraint blocks
        scan.draft_slot = len(scan.sections)
        scan.sections.append(None)
        scan.hierarchy.append(None)

    def _close_part(self, scan: _LineScan) -> None:
        draft = scan.draft
        if draft is None or scan.draft_section is None:
            return
        section_id = scan.draft_section
        scan.drafts.append(draft)
        scan.sections[scan.draft_slot] = FileSection(
            id=section_id,
            name=draft.part.name,
            kind="body",
            content="\n".join(scan.draft_lines),
            span=draft.part.span,
            subsections=_child_ids(scan.hierarchy, section_id),
        )
        scan.hierarchy[scan.draft_slot] = HierarchyNode(
            id=section_id,
            name=draft.part.name,
            kind="part",
            level=0,
            children=_child_ids(scan.hierarchy, section_id),
            metadata={"entity_id": draft.part.id},
        )
        scan.draft = None
        scan.draft_lines = []
        scan.draft_section = None
        scan.draft_slot = -1

    def _assign(self, scan: _LineScan, key: str, raw: str, span: Span, line: str) -> None:
        draft = scan.draft
        if draft is None and not self.spec.top_level_scope:
            raise StructuralWarning(
                f"Parameter '{key}' appears before any part header and was discarded",
                line_number=span.line,
                span=span,
                suggested_fix="Move the assignment below a part header",
            )

        value, value_type = infer_value(raw)
        param = Parameter(
            id=_new_id(),
            name=key,
            value=value,
            value_type=value_type,
            span=span,
            part_id=draft.part.id if draft else None,
            bucket=self._bucket_for(draft.part.name if draft else "", key),
        )
        scan.parameters.append(param)
        if draft is None:
            return

        draft.parameters.append(param)
        scan.draft_lines.append(line)
        part = draft.part
        updates: Dict[str, Any] = {"span": Span(part.span.start, span.end, part.span.line)}
        if key.lower() in _PART_METADATA_KEYS:
            updates["metadata"] = replace(part.metadata, **{key.lower(): raw})
        draft.part = replace(part, **updates)

    def _bucket_for(self, block_name: str, key: str) -> Optional[str]:
        return None

    # -- constraint / dependency blocks -------------------------------

    def _block_field(self, block: _Block, key: str, value: str, span: Span) -> None:
        lowered = key.lower()
        if block.kind == "constraint":
            target = _CONSTRAINT_FIELDS.get(lowered)
            if target is None:
                raise StructuralWarning(
                    f"Unknown constraint field '{key}' in CONSTRAINT_{block.name}",
                    line_number=span.line,
                    span=span,
                )
            block.fields[target] = value
        elif lowered in _DEPENDENCY_FIELDS:
            block.fields[lowered] = value
        else:
            raise StructuralWarning(
                f"Unknown dependency field '{key}' in DEPENDENCY_{block.name}",
                line_number=span.line,
                span=span,
            )

    def _close_block(self, scan: _LineScan) -> None:
        block = scan.block
        if block is None:
            return
        scan.block = None
        if block.kind == "constraint":
            self._emit_constraint(scan, block)
        else:
            self._emit_link(scan, block)

    def _emit_constraint(self, scan: _LineScan, block: _Block) -> None:
        fields = block.fields
        warn = lambda message: self._warn(scan, StructuralWarning(message, block.span.line, block.span))  # noqa: E731
        condition = block.inline if block.inline is not None else fields.get("condition", "")
        constraint = Constraint(
            id=_new_id(),
            name=block.name,
            kind=_constraint_kind(fields.get("kind"), warn),
            condition=condition.strip(),
            description=fields.get("description"),
            message=fields.get("message"),
            severity=_constraint_severity(fields.get("severity"), warn),
            affected_parameters=_split_list(fields.get("affected")),
            span=block.span,
        )
        scan.constraints.append(constraint)

        parent_section: Optional[str] = None
        if self.spec.attach_constraints and scan.draft is not None:
            scan.draft.constraints.append(constraint)
            scan.draft_lines.extend(block.lines)
            parent_section = scan.draft_section
        self._add_block_section(scan, block, "content", parent_section, constraint.id)

    def _emit_link(self, scan: _LineScan, block: _Block) -> None:
        fields = block.fields
        source, target = fields.get("from"), fields.get("to")
        if (not source or not target) and "_TO_" in block.name.upper():
            head, _, tail = block.name.upper().partition("_TO_")
            source, target = source or head, target or tail
        if not source or not target:
            self._warn(scan, StructuralWarning(
                f"Dependency DEPENDENCY_{block.name} does not name both ends",
                line_number=block.span.line,
                span=block.span,
                suggested_fix="Add 'from' and 'to' keys",
            ))
        else:
            scan.links.append(DeclaredLink(
                source=source,
                target=target,
                kind=fields.get("type", "references"),
                description=fields.get("description"),
            ))
        self._add_block_section(scan, block, "metadata", None, None)

    def _add_block_section(
        self,
        scan: _LineScan,
        block: _Block,
        kind: str,
        parent_section: Optional[str],
        entity_id: Optional[str],
    ) -> None:
        section_id = _new_id()
        scan.sections.append(FileSection(
            id=section_id,
            name=f"{block.kind.upper()}_{block.name}",
            kind=kind,
            content="\n".join(block.lines),
            span=block.span,
        ))
        scan.hierarchy.append(HierarchyNode(
            id=section_id,
            name=block.name,
            kind=block.kind,
            level=1 if parent_section else 0,
            parent_id=parent_section,
            metadata={"entity_id": entity_id} if entity_id else {},
        ))

    @staticmethod
    def _warn(scan: _LineScan, warning: StructuralWarning) -> None:
        issue = warning.to_issue(IssueSeverity.WARNING)
        scan.warnings.append(issue)
        if scan.draft is not None:
            scan.draft.errors.append(issue)


# stem -> bucket, so VARIABLE/VARIABLES and BOUNDARY/BOUNDARIES both match
_BUCKET_STEMS = (("variab", "variables"), ("constan", "constants"), ("boundar", "boundaries"))
_BOUNDARY_SUFFIXES = ("_min", "_max", "_limit", "_bound")


class ModelParser(LineParser):
    """Model dialect: line scanning plus informational parameter buckets."""

    def __init__(self) -> None:
        super().__init__(MODEL_DIALECT)

    def _bucket_for(self, block_name: str, key: str) -> Optional[str]:
        lowered_block = block_name.lower()
        for stem, bucket in _BUCKET_STEMS:
            if stem in lowered_block:
                return bucket
        lowered_key = key.lower()
        if lowered_key.endswith(_BOUNDARY_SUFFIXES):
            return "boundaries"
        if key.isupper() and any(c.isalpha() for c in key):
            return "constants"
        return None


# ===================================================================
# Registry
# ===================================================================

def get_parser(dialect: Dialect) -> DialectParser:
    """Return a fresh parser instance for *dialect*."""
    if dialect is Dialect.MARKUP:
        return MarkupParser()
    if dialect is Dialect.LINE_A:
        return LineParser(LINE_STYLE_A)
    if dialect is Dialect.LINE_B:
        return LineParser(LINE_STYLE_B)
    if dialect is Dialect.MODEL:
        return ModelParser()
    raise ValueError(f"Unsupported dialect: {dialect}")
