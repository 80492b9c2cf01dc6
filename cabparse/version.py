"""Version token extraction."""

from __future__ import annotations

import re
from typing import List, Optional, Tuple

from .models import VersionMetadata

_XML_DECLARATION = re.compile(r"<\?xml\b.*?\?>", re.DOTALL | re.IGNORECASE)
_VERSION_TOKEN = re.compile(
    r"""version["'\s]*[:=>]["'\s]*(\d+(?:\.\d+)*)\.?([-+][\w.]+)?""",
    re.IGNORECASE,
)
_COMPATIBILITY = re.compile(
    r"""compatib\w*["'\s]*[:=]["'\s]*([^"'\n<]+)""",
    re.IGNORECASE,
)


def extract_version(text: str) -> VersionMetadata:
    """Find the first ``version = X.Y.Z`` token in *text*.

    Missing minor/patch components default to 0; a fourth component or a
    ``-``/``+`` suffix becomes the build string. Without a token the
    result is ``1.0.0``.
    """
    body = _XML_DECLARATION.sub("", text or "")
    compatibility = _compatibility_tags(body)

    match = _VERSION_TOKEN.search(body)
    if not match:
        return VersionMetadata(compatibility=compatibility)

    numbers = match.group(1)
    components = [int(c) for c in numbers.split(".")]
    major, minor, patch = (components + [0, 0, 0])[:3]

    build: Optional[str] = None
    if len(components) > 3:
        build = ".".join(str(c) for c in components[3:])
    suffix = match.group(2)
    if suffix:
        build = suffix[1:] if build is None else f"{build}{suffix}"

    version = numbers + (suffix or "")
    return VersionMetadata(
        version=version,
        major=major,
        minor=minor,
        patch=patch,
        build=build,
        compatibility=compatibility,
    )


def _compatibility_tags(text: str) -> Tuple[str, ...]:
    tags: List[str] = []
    for match in _COMPATIBILITY.finditer(text):
        for tag in match.group(1).split(","):
            tag = tag.strip()
            if tag and tag not in tags:
                tags.append(tag)
    return tuple(tags)
