"""Safe accessors over the untyped parsed document tree.

Rules never index the document directly; every lookup goes through these
helpers so that malformed or unexpected shapes degrade to empty values.
"""

from __future__ import annotations

import json
from typing import Any, Iterator

_MISSING = object()


def as_mapping(node: Any) -> dict:
    """Return *node* if it is a mapping, else an empty dict."""
    return node if isinstance(node, dict) else {}


def as_list(node: Any) -> list:
    """Return *node* if it is a sequence, else an empty list."""
    return node if isinstance(node, list) else []


def get_path(node: Any, path: str, default: Any = None) -> Any:
    """Follow a dotted path through nested mappings.

    Integer segments index into lists, e.g. ``jobs.build.steps.0.run``.
    """
    current = node
    for segment in path.split("."):
        if isinstance(current, dict):
            current = current.get(segment, _MISSING)
        elif isinstance(current, list) and segment.isdigit():
            index = int(segment)
            current = current[index] if index < len(current) else _MISSING
        else:
            return default
        if current is _MISSING:
            return default
    return current


def iter_jobs(document: Any) -> Iterator[tuple[str, dict]]:
    """Yield ``(name, job)`` for every mapping-valued entry under ``jobs``."""
    for name, job in as_mapping(get_path(document, "jobs")).items():
        if isinstance(job, dict):
            yield str(name), job


def iter_steps(job: Any) -> Iterator[dict]:
    """Yield each mapping-valued step of a GitHub-style job."""
    for step in as_list(as_mapping(job).get("steps")):
        if isinstance(step, dict):
            yield step


def job_needs(job: Any) -> list[str]:
    """Normalize ``needs`` (string or list) to a list of job names."""
    needs = as_mapping(job).get("needs")
    if isinstance(needs, str):
        return [needs]
    if isinstance(needs, list):
        return [str(n) for n in needs if isinstance(n, (str, int))]
    return []


def trigger_map(document: Any) -> dict:
    """Normalize the GitHub ``on`` field to a mapping of trigger -> config.

    YAML 1.1 loaders turn a bare ``on`` key into ``True``; both spellings are
    accepted.
    """
    triggers = as_mapping(document).get("on")
    if triggers is None:
        triggers = as_mapping(document).get(True)
    if isinstance(triggers, str):
        return {triggers: None}
    if isinstance(triggers, list):
        return {str(t): None for t in triggers}
    if isinstance(triggers, dict):
        return {str(k): v for k, v in triggers.items()}
    return {}


def _json_key(key: Any) -> Any:
    if key is None or isinstance(key, (str, int, float, bool)):
        return key
    return str(key)


def json_safe(node: Any, _ancestors: frozenset[int] = frozenset()) -> Any:
    """Copy *node* with JSON-compatible keys.

    YAML allows dates and other scalars as mapping keys, and anchors can make
    a container contain itself; such a self reference becomes ``None``.
    """
    if not isinstance(node, (dict, list)):
        return node
    if id(node) in _ancestors:
        return None
    inner = _ancestors | {id(node)}
    if isinstance(node, dict):
        return {_json_key(k): json_safe(v, inner) for k, v in node.items()}
    return [json_safe(item, inner) for item in node]


def compact_json(document: Any) -> str:
    """Serialize the document the way keyword-counting heuristics expect."""
    return json.dumps(
        json_safe(document), separators=(",", ":"), ensure_ascii=False, default=str
    )


def pretty_json(document: Any) -> str:
    return json.dumps(json_safe(document), indent=2, ensure_ascii=False, default=str)


def step_text(step: Any) -> str:
    """Return the shell content of a step (``run`` or ``script``) as one string."""
    step = as_mapping(step)
    for key in ("run", "script"):
        value = step.get(key)
        if isinstance(value, str):
            return value
        if isinstance(value, list):
            return "\n".join(str(v) for v in value)
    return ""


def matrix_size(matrix: Any) -> int:
    """Number of jobs a strategy matrix expands to (list-valued axes only)."""
    size = 1
    for value in as_mapping(matrix).values():
        if isinstance(value, list):
            size *= len(value)
    return size
