"""Dependency inference from parameter back-references and declared links."""

from __future__ import annotations

import logging
import re
from typing import Iterable, List

from .models import DeclaredLink, Dependency, DependencyKind, Parameter

logger = logging.getLogger(__name__)

_REFERENCE = re.compile(r"\{(\w+)\}")


def _kind(raw: str) -> DependencyKind:
    try:
        return DependencyKind(raw.strip().lower())
    except ValueError:
        logger.debug("Unknown dependency type '%s', using references", raw)
        return DependencyKind.REFERENCES


def analyze_dependencies(
    parameters: Iterable[Parameter],
    declared: Iterable[DeclaredLink] = (),
) -> List[Dependency]:
    """Build dependency edges in one pass over *parameters*.

    Each distinct ``{identifier}`` inside a string value yields one
    ``references`` edge from the parameter id to the identifier.
    Declared links are appended after the inferred edges. Cycles are
    allowed and left to callers.
    """
    dependencies: List[Dependency] = []
    for param in parameters:
        if not isinstance(param.value, str):
            continue
        seen = set()
        for match in _REFERENCE.finditer(param.value):
            target = match.group(1)
            if target in seen:
                continue
            seen.add(target)
            dependencies.append(Dependency(
                source=param.id,
                target=target,
                kind=DependencyKind.REFERENCES,
                description=f"Parameter '{param.name}' references '{target}'",
            ))

    for link in declared:
        dependencies.append(Dependency(
            source=link.source,
            target=link.target,
            kind=_kind(link.kind),
            description=link.description,
        ))
    return dependencies
