"""Minimal JSONPath for document addressing.

Supported syntax: ``$`` (root), ``.name``, ``[index]`` and ``['name']`` /
``["name"]`` segments, e.g. ``$.user.tags[0]``.
"""

from __future__ import annotations

import copy
import re
from typing import Any

from strata_mcp.engine.errors import ErrorCode, StrataError

_NAME = re.compile(r"[^.\[\]]+")
_INDEX = re.compile(r"\[(\d+)\]")
_QUOTED = re.compile(r"""\[(['"])(.*?)\1\]""")

Segment = str | int


def parse(path: str) -> list[Segment]:
    """Split *path* into segments; raises INVALID_PATH on bad syntax."""
    if not path.startswith("$"):
        raise StrataError(ErrorCode.INVALID_PATH, f"path must start with '$': {path}")
    segments: list[Segment] = []
    pos = 1
    while pos < len(path):
        if path[pos] == ".":
            m = _NAME.match(path, pos + 1)
            if m is None:
                raise StrataError(ErrorCode.INVALID_PATH, f"empty segment in path: {path}")
            segments.append(m.group(0))
            pos = m.end()
            continue
        m = _INDEX.match(path, pos) or _QUOTED.match(path, pos)
        if m is None:
            raise StrataError(ErrorCode.INVALID_PATH, f"invalid path syntax at {pos}: {path}")
        segments.append(int(m.group(1)) if m.re is _INDEX else m.group(2))
        pos = m.end()
    return segments


def get(doc: Any, segments: list[Segment]) -> tuple[bool, Any]:
    """Return ``(found, value)`` for *segments* inside *doc*."""
    current = doc
    for seg in segments:
        if isinstance(seg, int):
            if not isinstance(current, list) or seg >= len(current):
                return False, None
        elif not isinstance(current, dict) or seg not in current:
            return False, None
        current = current[seg]
    return True, current


def set_at(doc: Any, segments: list[Segment], value: Any) -> Any:
    """Return a copy of *doc* with *value* written at *segments*.

    Missing object members are created along the way; a list index equal to
    the list length appends.
    """
    if not segments:
        return value
    root = copy.deepcopy(doc) if doc is not None else {}
    current = root
    for i, seg in enumerate(segments):
        last = i == len(segments) - 1
        if isinstance(seg, int):
            if not isinstance(current, list):
                raise StrataError(ErrorCode.WRONG_TYPE, f"cannot index non-array with [{seg}]")
            if seg > len(current) or (seg == len(current) and not last):
                raise StrataError(ErrorCode.INVALID_PATH, f"array index {seg} out of range")
            if last:
                if seg == len(current):
                    current.append(value)
                else:
                    current[seg] = value
                return root
            current = current[seg]
        else:
            if not isinstance(current, dict):
                raise StrataError(ErrorCode.WRONG_TYPE, f"cannot read field '{seg}' of non-object")
            if last:
                current[seg] = value
                return root
            current = current.setdefault(seg, {})
    return root


def delete_at(doc: Any, segments: list[Segment]) -> tuple[Any, bool]:
    """Return ``(new_doc, removed)`` with the element at *segments* removed."""
    found, _ = get(doc, segments)
    if not found or not segments:
        return doc, found
    root = copy.deepcopy(doc)
    _found, parent = get(root, segments[:-1])
    del parent[segments[-1]]
    return root, True
