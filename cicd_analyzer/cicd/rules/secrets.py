"""Known secret formats matched by regex signature."""

from __future__ import annotations

import base64
import binascii
import json
import re
from dataclasses import dataclass
from typing import Any, Callable

from cicd.rules.base import Rule, RuleContext
from cicd.rules.entropy import mask_secret
from cicd.rules.models import (
    IssueCategory,
    IssueSeverity,
    RuleLevel,
    SecurityVulnerability,
    VulnerabilitySeverity,
)

# Substrings that mark a match as sample data rather than a live credential
FALSE_POSITIVE_WORDS = (
    "example", "test", "placeholder", "your_", "dummy", "fake",
    "sample", "demo", "mock", "template", "xxx", "yyy", "zzz",
    "changeme", "replace", "todo", "fixme", "tbd", "null", "undefined",
    "default", "config", "setting", "value", "data", "info",
)

_PLACEHOLDER_PATTERNS = (
    re.compile(r"^x{8,}$", re.IGNORECASE),
    re.compile(r"^0{8,}$"),
    re.compile(r"^1{8,}$"),
    re.compile(r"^(your|my|the)[_-]", re.IGNORECASE),
    re.compile(r"placeholder|example|test|demo|sample", re.IGNORECASE),
)

_OBVIOUS_NON_PASSWORDS = {"password", "123456", "admin", "user", "guest", "root"}
_CONNECTION_PLACEHOLDERS = ("username", "password", "user", "pass", "localhost", "example.com")

_RECOMMENDATIONS = {
    "AWS Access Key": "Use IAM roles or AWS credentials file with proper permissions",
    "GitHub Token": "Use GitHub secrets or environment variables in CI/CD",
    "Database Connection String": "Use environment variables or secret management services",
    "JWT Token": "Generate tokens at runtime, never hardcode them",
    "Generic API Key": "Store in environment variables or secure vault",
    "Generic Password": "Use environment variables or secure password management",
    "Generic Token": "Use environment variables or secure token storage",
}
_DEFAULT_RECOMMENDATION = "Use environment variables or secret management systems"


def is_likely_secret(value: str) -> bool:
    lowered = value.lower()
    return not any(word in lowered for word in FALSE_POSITIVE_WORDS)


def is_placeholder(value: str) -> bool:
    return any(p.search(value) for p in _PLACEHOLDER_PATTERNS)


def has_good_entropy(value: str) -> bool:
    """At least eight characters drawn from two or more character classes."""
    if len(value) < 8:
        return False
    classes = (
        re.search(r"[a-z]", value),
        re.search(r"[A-Z]", value),
        re.search(r"\d", value),
        re.search(r"[+/=_-]", value),
    )
    return sum(1 for c in classes if c) >= 2


def _extract(match: str, pattern: str) -> str | None:
    found = re.search(pattern, match)
    return found.group(1) if found else None


def _valid_aws_secret(match: str, line: str) -> bool:
    secret = _extract(match, r"([A-Za-z0-9/+=]{40})")
    return secret is not None and has_good_entropy(secret) and not is_placeholder(secret)


def _valid_api_key(match: str, line: str) -> bool:
    key = _extract(match, r"([A-Za-z0-9/_+=.-]{16,})")
    return key is not None and has_good_entropy(key) and not is_placeholder(key)


def _valid_password(match: str, line: str) -> bool:
    password = _extract(match, r"([A-Za-z0-9!@#$%^&*()_+=.-]{8,})")
    if password is None:
        return False
    return password.lower() not in _OBVIOUS_NON_PASSWORDS and not is_placeholder(password)


def _valid_token(match: str, line: str) -> bool:
    token = _extract(match, r"([A-Za-z0-9/_+=.-]{20,})")
    return token is not None and has_good_entropy(token) and not is_placeholder(token)


def _valid_connection_string(match: str, line: str) -> bool:
    lowered = match.lower()
    return not any(p in lowered for p in _CONNECTION_PLACEHOLDERS)


def _valid_jwt(match: str, line: str) -> bool:
    """A real JWT has a decodable JSON header declaring typ=JWT or an alg."""
    parts = match.split(".")
    if len(parts) != 3:
        return False
    encoded = parts[0] + "=" * (-len(parts[0]) % 4)
    try:
        header = json.loads(base64.urlsafe_b64decode(encoded).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return False
    if not isinstance(header, dict):
        return False
    return header.get("typ") == "JWT" or bool(header.get("alg"))


def _contains_actual_secret(match: str, line: str) -> bool:
    value = re.split(r"[=\s]", match)[-1].strip()
    return bool(value) and is_likely_secret(value) and not is_placeholder(value)


def _not_placeholder(match: str, line: str) -> bool:
    return not is_placeholder(match)


@dataclass(frozen=True)
class SecretSignature:
    name: str
    pattern: re.Pattern[str]
    severity: VulnerabilitySeverity
    validator: Callable[[str, str], bool] | None = None


SIGNATURES: tuple[SecretSignature, ...] = (
    SecretSignature(
        "AWS Access Key", re.compile(r"AKIA[0-9A-Z]{16}"),
        VulnerabilitySeverity.critical, _not_placeholder,
    ),
    SecretSignature(
        "AWS Secret Key",
        re.compile(
            r"""aws_secret_access_key\s*[=:]\s*['"]?([A-Za-z0-9/+=]{40})['"]?""",
            re.IGNORECASE,
        ),
        VulnerabilitySeverity.critical, _valid_aws_secret,
    ),
    SecretSignature(
        "AWS Session Token", re.compile(r"FwoGZXIvYXdzE[A-Za-z0-9/+=]{100,}"),
        VulnerabilitySeverity.critical,
    ),
    SecretSignature(
        "GitHub Token", re.compile(r"gh[pasr]_[a-zA-Z0-9]{36,76}"),
        VulnerabilitySeverity.critical, _not_placeholder,
    ),
    SecretSignature(
        "GitHub Classic Token", re.compile(r"ghp_[a-zA-Z0-9]{36}"),
        VulnerabilitySeverity.critical,
    ),
    SecretSignature(
        "SSH Private Key",
        re.compile(r"-----BEGIN\s+(?:RSA\s+|EC\s+|DSA\s+|OPENSSH\s+)?PRIVATE\s+KEY-----"),
        VulnerabilitySeverity.critical,
    ),
    SecretSignature(
        "Docker ENV Secret",
        re.compile(r"(?:ENV|ARG)\s+(?:AWS_SECRET|API_KEY|TOKEN|PASSWORD|SECRET)[^\n]*", re.IGNORECASE),
        VulnerabilitySeverity.high, _contains_actual_secret,
    ),
    SecretSignature(
        "Generic API Key",
        re.compile(r"""(?:api[_-]?key|apikey)\s*[=:]\s*['"]?([A-Za-z0-9/_+=.-]{16,})['"]?""", re.IGNORECASE),
        VulnerabilitySeverity.high, _valid_api_key,
    ),
    SecretSignature(
        "Generic Password",
        re.compile(
            r"""(?:password|passwd|pwd)\s*[=:]\s*['"]?([A-Za-z0-9!@#$%^&*()_+=.-]{8,})['"]?""",
            re.IGNORECASE,
        ),
        VulnerabilitySeverity.high, _valid_password,
    ),
    SecretSignature(
        "Generic Token",
        re.compile(r"""(?:token|auth[_-]?token)\s*[=:]\s*['"]?([A-Za-z0-9/_+=.-]{20,})['"]?""", re.IGNORECASE),
        VulnerabilitySeverity.high, _valid_token,
    ),
    SecretSignature(
        "Bearer Token",
        re.compile(r"Authorization:\s*Bearer\s+([A-Za-z0-9\-_.=]{20,})", re.IGNORECASE),
        VulnerabilitySeverity.high, _not_placeholder,
    ),
    SecretSignature(
        "Database Connection String",
        re.compile(r"(?:mongodb|mysql|postgres|postgresql)://[^:\s]+:[^@\s]+@\S+", re.IGNORECASE),
        VulnerabilitySeverity.high, _valid_connection_string,
    ),
    SecretSignature(
        "JWT Token",
        re.compile(r"eyJ[A-Za-z0-9_-]+\.eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+"),
        VulnerabilitySeverity.medium, _valid_jwt,
    ),
    SecretSignature(
        "Google API Key", re.compile(r"AIza[0-9A-Za-z_-]{35}"),
        VulnerabilitySeverity.high,
    ),
    SecretSignature(
        "Slack Token", re.compile(r"xox[baprs]-[0-9]{12}-[0-9]{12}-[0-9a-zA-Z]{24}"),
        VulnerabilitySeverity.high,
    ),
    SecretSignature(
        "Stripe Key", re.compile(r"(?:sk|pk)_(?:test|live)_[0-9a-zA-Z]{24}"),
        VulnerabilitySeverity.high,
    ),
)


def _skip_line(line: str) -> bool:
    """Comments and lines that reference variables are never scanned."""
    return line.lstrip().startswith("#") or "$" in line


class HardcodedSecretsRule(Rule):
    id = "hardcoded-secrets"
    name = "Hardcoded Secrets Detection"
    description = "Detects hardcoded secrets, API keys, passwords, and tokens"
    category = IssueCategory.security
    severity = IssueSeverity.critical
    level = RuleLevel.junior

    def check(self, document: Any, context: RuleContext) -> None:
        # Overlapping signatures (e.g. two GitHub token shapes) report a match start once
        reported: set[tuple[int, int]] = set()
        for signature in SIGNATURES:
            for index, line in enumerate(context.lines):
                if _skip_line(line):
                    continue
                for found in signature.pattern.finditer(line):
                    match = found.group(0)
                    if signature.validator and not signature.validator(match, line):
                        continue
                    if not is_likely_secret(match):
                        continue
                    span = (index, found.start())
                    if span in reported:
                        continue
                    reported.add(span)
                    context.add_vulnerability(
                        SecurityVulnerability(
                            title=f"Exposed {signature.name}",
                            description=(
                                f'Potential {signature.name.lower()} found: "{mask_secret(match)}"'
                            ),
                            severity=signature.severity,
                            recommendation=_RECOMMENDATIONS.get(
                                signature.name, _DEFAULT_RECOMMENDATION
                            ),
                            line=index + 1,
                        )
                    )
