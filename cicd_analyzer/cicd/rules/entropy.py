"""Signature-free secret detection based on Shannon entropy."""

from __future__ import annotations

import math
import re
from collections import Counter
from typing import Any

from cicd.rules.base import Rule, RuleContext
from cicd.rules.models import (
    IssueCategory,
    IssueSeverity,
    RuleLevel,
    SecurityVulnerability,
    VulnerabilitySeverity,
)

ENTROPY_THRESHOLD = 4.5
MIN_TOKEN_LENGTH = 20

_TOKEN_SPLIT = re.compile(r"""[\s"'=:\[\]{},()<>]+""")


def shannon_entropy(value: str) -> float:
    """Return the Shannon entropy of *value* in bits per code point."""
    if not value:
        return 0.0
    length = len(value)
    entropy = 0.0
    for count in Counter(value).values():
        p = count / length
        entropy -= p * math.log2(p)
    return entropy


def mask_secret(secret: str) -> str:
    """Hide a secret, revealing only its first and last four characters.

    Values of eight characters or fewer are masked entirely.
    """
    if len(secret) <= 8:
        return "*" * len(secret)
    return secret[:4] + "*" * (len(secret) - 8) + secret[-4:]


def _is_comment(line: str) -> bool:
    return line.lstrip().startswith("#")


class HighEntropyStringsRule(Rule):
    id = "high-entropy-strings"
    name = "High Entropy String Detection"
    description = "Flags tokens whose character distribution suggests a secret"
    category = IssueCategory.security
    severity = IssueSeverity.error
    level = RuleLevel.junior

    def check(self, document: Any, context: RuleContext) -> None:
        for index, line in enumerate(context.lines):
            # ${ covers both shell and ${{ }} expression references
            if _is_comment(line) or "${" in line:
                continue
            for token in _TOKEN_SPLIT.split(line):
                if len(token) < MIN_TOKEN_LENGTH:
                    continue
                entropy = shannon_entropy(token)
                if entropy >= ENTROPY_THRESHOLD:
                    context.add_vulnerability(
                        SecurityVulnerability(
                            title="High Entropy String",
                            description=(
                                f'Potential secret detected: "{mask_secret(token)}" '
                                f"(entropy: {entropy:.2f})"
                            ),
                            severity=VulnerabilitySeverity.high,
                            recommendation=(
                                "Avoid committing secrets or tokens directly in code. "
                                "Use environment variables or secret managers."
                            ),
                            line=index + 1,
                        )
                    )
