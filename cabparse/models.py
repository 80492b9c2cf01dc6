"""Core data models produced by the dialect parsers and the result assembler."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

ParamValue = Union[str, int, float, bool, List[Any], Dict[str, Any]]


class Dialect(str, Enum):
    MARKUP = "markup"
    LINE_A = "line-style-A"
    LINE_B = "line-style-B"
    MODEL = "model"


class ValueType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"


class PartStatus(str, Enum):
    VALID = "valid"
    BROKEN = "broken"
    WARNING = "warning"


class ConstraintKind(str, Enum):
    RANGE = "range"
    ENUM = "enum"
    REGEX = "regex"
    CUSTOM = "custom"


class ConstraintSeverity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class DependencyKind(str, Enum):
    REQUIRES = "requires"
    INCLUDES = "includes"
    REFERENCES = "references"
    EXTENDS = "extends"


class FindingSeverity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class IssueType(str, Enum):
    PARSING = "parsing"
    VALIDATION = "validation"
    STRUCTURE = "structure"


class IssueSeverity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class Span:
    """Character offsets into the decoded text plus the 1-based line number."""
    start: int = 0
    end: int = 0
    line: int = 0


@dataclass(frozen=True)
class ValidationRule:
    type: str
    value: Any = None
    message: str = ""


@dataclass(frozen=True)
class PartMetadata:
    version: str = "1.0.0"
    created_date: Optional[str] = None
    modified_date: Optional[str] = None
    author: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class ParseIssue:
    """A recoverable error or warning recorded during parsing."""
    type: IssueType
    message: str
    severity: IssueSeverity = IssueSeverity.ERROR
    line_number: Optional[int] = None
    span: Span = field(default_factory=Span)
    context: Optional[str] = None
    suggested_fix: Optional[str] = None


@dataclass(frozen=True)
class Parameter:
    id: str
    name: str
    value: ParamValue = ""
    value_type: ValueType = ValueType.STRING
    unit: Optional[str] = None
    description: Optional[str] = None
    required: bool = False
    default_value: Any = None
    validation_rules: Tuple[ValidationRule, ...] = ()
    span: Span = field(default_factory=Span)
    part_id: Optional[str] = None
    bucket: Optional[str] = None

    @property
    def has_value(self) -> bool:
        if self.value is None:
            return False
        if isinstance(self.value, str):
            return bool(self.value.strip())
        if isinstance(self.value, (list, dict)):
            return bool(self.value)
        return True


@dataclass(frozen=True)
class Constraint:
    id: str
    name: str
    kind: ConstraintKind = ConstraintKind.CUSTOM
    condition: str = ""
    description: Optional[str] = None
    message: Optional[str] = None
    severity: ConstraintSeverity = ConstraintSeverity.ERROR
    affected_parameters: Tuple[str, ...] = ()
    span: Span = field(default_factory=Span)

    @property
    def is_blank(self) -> bool:
        return not self.condition or not self.condition.strip()


@dataclass(frozen=True)
class Part:
    id: str
    name: str
    type: str
    parameters: Tuple[Parameter, ...] = ()
    constraints: Tuple[Constraint, ...] = ()
    metadata: PartMetadata = field(default_factory=PartMetadata)
    span: Span = field(default_factory=Span)
    status: PartStatus = PartStatus.VALID
    errors: Tuple[ParseIssue, ...] = ()


@dataclass(frozen=True)
class Dependency:
    source: str
    target: str
    kind: DependencyKind = DependencyKind.REFERENCES
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.source,
            "to": self.target,
            "type": self.kind.value,
            "description": self.description,
        }


@dataclass(frozen=True)
class VersionMetadata:
    version: str = "1.0.0"
    major: int = 1
    minor: int = 0
    patch: int = 0
    build: Optional[str] = None
    compatibility: Tuple[str, ...] = ()

    def __str__(self) -> str:
        return self.version


@dataclass(frozen=True)
class BrokenLogicFinding:
    part_id: str
    issue_type: str
    severity: FindingSeverity
    description: str
    suggested_fix: Optional[str] = None
    line_number: Optional[int] = None
    span: Span = field(default_factory=Span)


@dataclass(frozen=True)
class FileSection:
    id: str
    name: str
    kind: str = "content"
    content: str = ""
    span: Span = field(default_factory=Span)
    subsections: Tuple[str, ...] = ()


@dataclass(frozen=True)
class HierarchyNode:
    id: str
    name: str
    kind: str
    level: int = 0
    parent_id: Optional[str] = None
    children: Tuple[str, ...] = ()
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class FileStructure:
    sections: Tuple[FileSection, ...] = ()
    hierarchy: Tuple[HierarchyNode, ...] = ()


@dataclass(frozen=True)
class DeclaredLink:
    """A dependency stated explicitly in the source file."""
    source: str
    target: str
    kind: str = "references"
    description: Optional[str] = None


@dataclass(frozen=True)
class DialectOutput:
    """What a dialect parser hands to the result assembler."""
    parts: Tuple[Part, ...] = ()
    parameters: Tuple[Parameter, ...] = ()
    constraints: Tuple[Constraint, ...] = ()
    structure: FileStructure = field(default_factory=FileStructure)
    links: Tuple[DeclaredLink, ...] = ()
    errors: Tuple[ParseIssue, ...] = ()
    warnings: Tuple[ParseIssue, ...] = ()


@dataclass(frozen=True)
class ParseStatistics:
    total_parts: int = 0
    total_parameters: int = 0
    total_constraints: int = 0
    broken_logic_count: int = 0
    error_count: int = 0
    warning_count: int = 0
    processing_time: float = 0.0
    file_size: int = 0
    complexity_score: int = 0


@dataclass(frozen=True)
class ParseResult:
    dialect: Dialect
    filename: str
    parts: Tuple[Part, ...] = ()
    parameters: Tuple[Parameter, ...] = ()
    constraints: Tuple[Constraint, ...] = ()
    dependencies: Tuple[Dependency, ...] = ()
    version_metadata: VersionMetadata = field(default_factory=VersionMetadata)
    broken_logic: Tuple[BrokenLogicFinding, ...] = ()
    structure: FileStructure = field(default_factory=FileStructure)
    statistics: ParseStatistics = field(default_factory=ParseStatistics)
    errors: Tuple[ParseIssue, ...] = ()
    warnings: Tuple[ParseIssue, ...] = ()

    @property
    def partial(self) -> bool:
        """True when the file was only partially parsed."""
        return bool(self.errors)

    def to_dict(self) -> Dict[str, Any]:
        return _jsonable(self)


def _jsonable(obj: Any) -> Any:
    if isinstance(obj, Dependency):
        return obj.to_dict()
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: _jsonable(getattr(obj, f.name)) for f in dataclasses.fields(obj)}
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (list, tuple)):
        return [_jsonable(item) for item in obj]
    if isinstance(obj, dict):
        return {str(k): _jsonable(v) for k, v in obj.items()}
    return obj
