"""Mermaid job dependency graph."""

from __future__ import annotations

import re
from typing import Any

from cicd.rules.tree import as_mapping

PLACEHOLDER_GRAPH = "graph TD\n    A[Analysis] --> B[Complete]"
SINGLE_JOB_GRAPH = "graph TD\n    A[Single Job] --> B[Complete]"

_UNSAFE_ID_CHARS = re.compile(r"[^a-zA-Z0-9]")


def node_id(name: str) -> str:
    return _UNSAFE_ID_CHARS.sub("_", name)


def dependency_graph(document: Any, platform: str) -> str:
    """Render ``needs`` edges as ``graph TD`` text.

    Only GitHub Actions workflows with more than one job get a real graph;
    anything else yields a fixed placeholder.
    """
    jobs = as_mapping(document).get("jobs")
    if platform != "github-actions" or not isinstance(jobs, dict) or not jobs:
        return PLACEHOLDER_GRAPH
    if len(jobs) <= 1:
        return SINGLE_JOB_GRAPH

    lines = ["graph TD\n"]
    for job_name, job in jobs.items():
        job_name = str(job_name)
        target = f'{node_id(job_name)}["{job_name}"]'
        needs = as_mapping(job).get("needs")
        if needs:
            for dep in needs if isinstance(needs, list) else [needs]:
                dep = str(dep)
                lines.append(f'    {node_id(dep)}["{dep}"] --> {target}\n')
        else:
            lines.append(f"    {target}\n")
    return "".join(lines)
