"""Security rules: dangerous shell usage, permissions, pinning and variables."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable

from cicd.rules.base import Rule, RuleContext
from cicd.rules.models import (
    Impact,
    Issue,
    IssueCategory,
    IssueSeverity,
    Optimization,
    RuleLevel,
    SecurityVulnerability,
    VulnerabilitySeverity,
)
from cicd.rules.tree import as_mapping


@dataclass(frozen=True)
class CommandPattern:
    """A risky shell construct and how to report it."""

    title: str
    pattern: re.Pattern[str]
    severity: VulnerabilitySeverity
    recommendation: str
    validator: Callable[[str, str], bool] | None = None


def _is_comment(line: str) -> bool:
    return line.lstrip().startswith("#")


def _scan_lines(
    patterns: tuple[CommandPattern, ...],
    context: RuleContext,
    describe: Callable[[CommandPattern, str], str],
    title: Callable[[CommandPattern], str] = lambda p: p.title,
) -> None:
    for command in patterns:
        for index, line in enumerate(context.lines):
            if _is_comment(line):
                continue
            for found in command.pattern.finditer(line):
                if command.validator and not command.validator(found.group(0), line):
                    continue
                context.add_vulnerability(
                    SecurityVulnerability(
                        title=title(command),
                        description=describe(command, line.strip()),
                        severity=command.severity,
                        recommendation=command.recommendation,
                        line=index + 1,
                    )
                )


# -- validators ---------------------------------------------------------------

_SAFE_DELETE_PATHS = ("/tmp/", "/var/tmp/", "./build", "./dist", "./node_modules")
_TRUSTED_DOMAINS = ("github.com", "githubusercontent.com", "docker.com", "microsoft.com")
_SYSTEM_PATHS = ("/bin/", "/sbin/", "/usr/bin/", "/usr/sbin/", "/etc/", "/boot/", "/sys/", "/proc/")
_SECRET_VAR_PARTS = ("PASSWORD", "SECRET", "TOKEN", "KEY", "AUTH", "CREDENTIAL", "PRIVATE")


def _unsafe_delete(match: str, line: str) -> bool:
    return not any(path in match for path in _SAFE_DELETE_PATHS)


def _world_writable(match: str, line: str) -> bool:
    return "777" in match or "666" in match


def _untrusted_source(match: str, line: str) -> bool:
    return not any(domain in match for domain in _TRUSTED_DOMAINS)


def _touches_system_path(match: str, line: str) -> bool:
    return any(path in match for path in _SYSTEM_PATHS)


def _echoes_secret(match: str, line: str) -> bool:
    var = re.search(r"\$([A-Z_]+)", match)
    return bool(var) and any(part in var.group(1) for part in _SECRET_VAR_PARTS)


def _remote_host(match: str, line: str) -> bool:
    return not any(host in match for host in ("localhost", "127.0.0.1", "::1"))


def _literal_credential(match: str, line: str) -> bool:
    return "$" not in match


DANGEROUS_COMMANDS: tuple[CommandPattern, ...] = (
    CommandPattern(
        "Recursive delete",
        re.compile(r"rm\s+-rf\s+(?:/\S*|\$HOME\S*|~\S*|\.\.\S*|\*)"),
        VulnerabilitySeverity.critical,
        "Use specific paths and consider using safer alternatives like trash commands",
        _unsafe_delete,
    ),
    CommandPattern(
        "Permissive permissions",
        re.compile(r"chmod\s+(?:777|666|755)\s+"),
        VulnerabilitySeverity.high,
        "Use more restrictive permissions (e.g., 644 for files, 755 for directories)",
        _world_writable,
    ),
    CommandPattern(
        "Eval with command substitution",
        re.compile(r"\beval\s+[$`]"),
        VulnerabilitySeverity.high,
        "Avoid eval with dynamic input; use safer alternatives",
    ),
    CommandPattern(
        "Remote script execution",
        re.compile(r"\b(?:curl|wget)\s+[^|]*\|\s*(?:sudo\s+)?(?:sh|bash|zsh|python|ruby|perl)\b"),
        VulnerabilitySeverity.critical,
        "Download, verify, and then execute scripts separately",
        _untrusted_source,
    ),
    CommandPattern(
        "Sudo on system paths",
        re.compile(r"sudo\s+(?:rm|chmod|chown|mv|cp|dd)\s+(?:-\S+\s+)*/\S+"),
        VulnerabilitySeverity.high,
        "Avoid modifying system paths; use package managers when possible",
        _touches_system_path,
    ),
    CommandPattern(
        "Privileged container",
        re.compile(r"docker\s+run[^|]*--privileged"),
        VulnerabilitySeverity.high,
        "Use specific capabilities instead of --privileged when possible",
    ),
    CommandPattern(
        "Environment dump",
        re.compile(r"\bprintenv\b|(?:^|[\s;&|-])env\s*$"),
        VulnerabilitySeverity.medium,
        "Avoid exposing all environment variables; use specific variable access",
    ),
    CommandPattern(
        "Echo environment variable",
        re.compile(r"echo\s+\$[A-Z_]+"),
        VulnerabilitySeverity.medium,
        "Avoid echoing sensitive environment variables",
        _echoes_secret,
    ),
    CommandPattern(
        "SSH as root",
        re.compile(r"ssh\s+root@\S+"),
        VulnerabilitySeverity.critical,
        "Use sudo or specific user accounts instead of root SSH",
        _remote_host,
    ),
    CommandPattern(
        "AWS CLI hardcoded credentials",
        re.compile(r"aws\s+configure\s+set\s+(?:aws_access_key_id|aws_secret_access_key)\s+\S+"),
        VulnerabilitySeverity.high,
        "Use AWS credential files, IAM roles, or environment variables",
        _literal_credential,
    ),
    CommandPattern(
        "Suppressed error output",
        re.compile(r">\s*/dev/null\s+2>&1"),
        VulnerabilitySeverity.medium,
        "Consider logging errors instead of suppressing them",
    ),
    CommandPattern(
        "Temporary file execution",
        re.compile(r"mktemp.*\|\s*(?:sh|bash)\b"),
        VulnerabilitySeverity.high,
        "Validate and sanitize temporary file contents",
    ),
    CommandPattern(
        "Netcat reverse shell",
        re.compile(r"\bnc\s+(?:-l\s+)?-e\s+"),
        VulnerabilitySeverity.critical,
        "Use legitimate remote access tools instead of netcat shells",
    ),
    CommandPattern(
        "Python shell command",
        re.compile(r"""python3?\s+-c\s+['"]import\s+os.*shell"""),
        VulnerabilitySeverity.high,
        "Use Python's subprocess module safely instead of shell commands",
    ),
    CommandPattern(
        "Find and delete",
        re.compile(r"find\s+/.*-exec\s+rm"),
        VulnerabilitySeverity.high,
        "Use more specific find criteria and consider dry-run first",
    ),
    CommandPattern(
        "Clear command history",
        re.compile(r"history\s+-c"),
        VulnerabilitySeverity.medium,
        "Consider why command history needs to be cleared",
    ),
    CommandPattern(
        "Insecure curl usage",
        re.compile(r"\bcurl\b.*\s(?:-k|--insecure)(?=\s|$)"),
        VulnerabilitySeverity.high,
        "Remove -k/--insecure flags and use proper SSL certificates",
    ),
    CommandPattern(
        "Insecure wget usage",
        re.compile(r"\bwget\b.*--no-check-certificate"),
        VulnerabilitySeverity.high,
        "Remove --no-check-certificate and use proper SSL certificates",
    ),
    CommandPattern(
        "Command injection vulnerability",
        re.compile(r"\$\{[^}]*\}\s*\|\s*(?:sh|bash|eval)\b"),
        VulnerabilitySeverity.high,
        "Validate and sanitize variables before using them in commands",
    ),
)


class DangerousCommandsRule(Rule):
    id = "dangerous-commands"
    name = "Dangerous Commands Detection"
    description = "Detects potentially dangerous shell commands and practices"
    category = IssueCategory.security
    severity = IssueSeverity.error
    level = RuleLevel.intermediate

    def check(self, document: Any, context: RuleContext) -> None:
        _scan_lines(
            DANGEROUS_COMMANDS,
            context,
            lambda command, line: f'Dangerous command found: "{line}"',
        )


PERMISSION_PATTERNS: tuple[CommandPattern, ...] = (
    CommandPattern(
        "File permissions",
        re.compile(r"chmod\s+(?:777|666|755|644|700|600)\s+"),
        VulnerabilitySeverity.medium,
        "Use least privilege principle: 644 for files, 755 for directories",
        lambda match, line: any(mode in match for mode in ("777", "666", "755")),
    ),
    CommandPattern(
        "Root ownership",
        re.compile(r"chown\s+(?:root|0)[\s:]"),
        VulnerabilitySeverity.high,
        "Avoid changing ownership to root unless absolutely necessary",
    ),
    CommandPattern(
        "Permissive umask",
        re.compile(r"umask\s+0{3}\b"),
        VulnerabilitySeverity.high,
        "Use more restrictive umask like 022 or 077",
    ),
    CommandPattern(
        "Finding world-writable files",
        re.compile(r"find\s+[^|]*-perm\s+777"),
        VulnerabilitySeverity.medium,
        "Review and fix world-writable files found",
    ),
    CommandPattern(
        "SUID/SGID usage",
        re.compile(r"\bset[ug]id\b"),
        VulnerabilitySeverity.high,
        "Avoid SUID/SGID unless absolutely necessary for security",
    ),
    CommandPattern(
        "Adding SUID bit",
        re.compile(r"sudo\s+chmod\s+\+s"),
        VulnerabilitySeverity.critical,
        "SUID binaries are security risks; use alternatives if possible",
    ),
)


class FilePermissionsRule(Rule):
    id = "file-permissions"
    name = "File Permissions Detection"
    description = "Detects insecure file permissions and ownership issues"
    category = IssueCategory.security
    severity = IssueSeverity.warning
    level = RuleLevel.junior

    def check(self, document: Any, context: RuleContext) -> None:
        _scan_lines(
            PERMISSION_PATTERNS,
            context,
            lambda pattern, line: f'Permission issue found: "{line}"',
            title=lambda pattern: f"Insecure {pattern.title}",
        )


def grants_write(permissions: Any) -> bool:
    """True for ``write-all`` or any scope granted ``write``."""
    if permissions == "write-all":
        return True
    return any(value == "write" for value in as_mapping(permissions).values())


class BroadPermissionsRule(Rule):
    id = "broad-permissions"
    name = "Broad Permissions"
    description = "Flags workflow-wide write permissions and sudo usage"
    category = IssueCategory.security
    severity = IssueSeverity.warning
    level = RuleLevel.junior

    def check(self, document: Any, context: RuleContext) -> None:
        if grants_write(as_mapping(document).get("permissions")):
            context.add_issue(
                Issue(
                    title="Overly broad permissions",
                    description="Workflow has broad write permissions which may be unnecessary",
                    severity=IssueSeverity.warning,
                    category=IssueCategory.security,
                    rule_id="broad-permissions",
                    suggestion=(
                        "Use minimal required permissions following the principle of "
                        "least privilege"
                    ),
                    example_code="permissions:\n  contents: read\n  pull-requests: write",
                )
            )

        sudo_lines = context.find_pattern_lines(r"\bsudo\b")
        if sudo_lines:
            context.add_issue(
                Issue(
                    title="Sudo usage detected",
                    description="Using sudo in CI/CD can be a security risk",
                    severity=IssueSeverity.warning,
                    category=IssueCategory.security,
                    rule_id="sudo-usage",
                    suggestion="Consider using rootless containers or specific user permissions",
                    line_numbers=tuple(sudo_lines),
                )
            )


_ACTION_REF = re.compile(r"""uses:\s*['"]?([^@\s'"]+)@([^\s'"]+)""")
_COMMIT_SHA = re.compile(r"^[0-9a-f]{40}$")


class UnpinnedActionVersionsRule(Rule):
    id = "unpinned-action-versions"
    name = "Unpinned Action Versions"
    description = "Actions referenced by branch or floating tag instead of a release or commit"
    category = IssueCategory.security
    severity = IssueSeverity.warning
    level = RuleLevel.junior

    def check(self, document: Any, context: RuleContext) -> None:
        for found in _ACTION_REF.finditer(context.raw_text):
            action, ref = found.group(1), found.group(2)
            if ref == "latest" or not (ref.startswith("v") or _COMMIT_SHA.match(ref)):
                context.add_issue(
                    Issue(
                        title=f"Unpinned action version: {action}",
                        description=f'Action is referenced by "{ref}" rather than a pinned version',
                        severity=IssueSeverity.warning,
                        category=IssueCategory.security,
                        rule_id="unpinned-action",
                        suggestion="Pin actions to specific versions or commit SHAs",
                        line_numbers=tuple(
                            context.find_pattern_lines(re.escape(f"{action}@{ref}"))
                        ),
                    )
                )


_ENV_REFERENCE = re.compile(r"\$\{?([A-Z_][A-Z0-9_]*)\}?")
_INSECURE_VAR_NAMES = ("PASSWORD", "SECRET", "TOKEN", "KEY", "API_KEY", "PRIVATE_KEY")
_ENV_CONFIG_NAMES = ("NODE_ENV", "ENVIRONMENT", "STAGE", "BUILD_ENV")


class InsecureEnvironmentVariablesRule(Rule):
    id = "insecure-environment-variables"
    name = "Insecure Environment Variables"
    description = "Generic secret-like variable names and missing environment configuration"
    category = IssueCategory.security
    severity = IssueSeverity.warning
    level = RuleLevel.junior

    def check(self, document: Any, context: RuleContext) -> None:
        referenced = {m.group(1) for m in _ENV_REFERENCE.finditer(context.raw_text)}
        for name in _INSECURE_VAR_NAMES:
            if name in referenced:
                context.add_issue(
                    Issue(
                        title=f"Potentially insecure environment variable: {name}",
                        description=(
                            f'Environment variable "{name}" might contain sensitive '
                            "information and could be logged"
                        ),
                        severity=IssueSeverity.warning,
                        category=IssueCategory.security,
                        rule_id="insecure-env-var",
                        suggestion=(
                            "Use more specific variable names and ensure proper secret management"
                        ),
                        example_code=(
                            f"# Instead of {name}, use:\n"
                            "DATABASE_PASSWORD: ${{ secrets.DB_PASSWORD }}"
                        ),
                    )
                )

        raw = context.raw_text
        has_env_config = any(name in raw for name in _ENV_CONFIG_NAMES)
        if not has_env_config and ("npm" in raw or "node" in raw):
            context.add_optimization(
                Optimization(
                    title="Consider adding environment configuration",
                    description="No environment variables detected for Node.js project",
                    impact=Impact.low,
                    effort=Impact.low,
                    category=IssueCategory.maintainability,
                    suggestion="Add NODE_ENV or similar environment configuration",
                    example_code="env:\n  NODE_ENV: production",
                )
            )
