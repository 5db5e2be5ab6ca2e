"""Read-only statement validation.

Lexical checks only: string literals and comments are neutralised first
so that keywords inside quoted text or comments never count, then the
remaining executable text is scanned for write, DDL and administrative
keywords. All patterns are compiled once at import; the functions here
hold no state and are safe to call from any thread.
"""

from __future__ import annotations

import re

from audited_query.core.models import RiskLevel, ValidationOutcome

BLOCKED_KEYWORDS: tuple[str, ...] = (
    "INSERT",
    "UPDATE",
    "DELETE",
    "DROP",
    "ALTER",
    "TRUNCATE",
    "CREATE",
    "EXEC",
    "EXECUTE",
    "GRANT",
    "REVOKE",
    "DENY",
)

BLOCKED_PROC_PREFIXES: tuple[str, ...] = ("sp_", "xp_")

EMPTY_STATEMENT = "Rejected: empty statement."
MULTI_STATEMENT = "Possible multi-statement batch detected (semicolons)."
UNION_DETECTED = "UNION detected - review for injection risk."

REDACTED = "***REDACTED***"

# '' inside a literal is an escaped quote, not a terminator
_STRING_LITERAL = re.compile(r"'(?:[^']|'')*'")
_BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)
_LINE_COMMENT = re.compile(r"--[^\r\n]*")
_WHITESPACE = re.compile(r"\s+")

_BLOCKED_KEYWORD = re.compile(r"\b(" + "|".join(BLOCKED_KEYWORDS) + r")\b")
_BLOCKED_PROC = re.compile(
    r"\b(" + "|".join(re.escape(p.upper()) for p in BLOCKED_PROC_PREFIXES) + r")\w+"
)
_UNION = re.compile(r"\bUNION\b")

_SENSITIVE_KEYS = r"password|pwd|secret|token|key|connectionstring"
_SENSITIVE_BARE = re.compile(
    rf"\b({_SENSITIVE_KEYS})\s*=\s*[^\s;'\"]+", re.IGNORECASE
)
_SENSITIVE_QUOTED = re.compile(rf"\b({_SENSITIVE_KEYS})\s*=\s*'[^']*'", re.IGNORECASE)


def strip_literals_and_comments(sql: str) -> str:
    """Return sql with string literals neutralised and comments blanked.

    Literals go first so that comment markers inside quoted text are not
    treated as comments.
    """
    stripped = _STRING_LITERAL.sub(" '' ", sql)
    stripped = _BLOCK_COMMENT.sub(" ", stripped)
    return _LINE_COMMENT.sub(" ", stripped)


def _statement_segments(stripped: str) -> list[str]:
    return [part.strip() for part in stripped.split(";") if part.strip()]


def validate_read_only(sql: str | None) -> ValidationOutcome:
    """Classify a statement as Safe, Suspicious or Blocked."""
    if sql is None or not sql.strip():
        return ValidationOutcome(
            is_valid=False,
            violations=[EMPTY_STATEMENT],
            risk_level=RiskLevel.BLOCKED,
        )

    violations: list[str] = []
    risk = RiskLevel.SAFE

    stripped = strip_literals_and_comments(sql)
    normalised = _WHITESPACE.sub(" ", stripped).strip().upper()

    found = {m.group(1) for m in _BLOCKED_KEYWORD.finditer(normalised)}
    for keyword in BLOCKED_KEYWORDS:
        if keyword in found:
            violations.append(f"Blocked keyword detected: {keyword}")
            risk = RiskLevel.BLOCKED

    procs = {m.group(1) for m in _BLOCKED_PROC.finditer(normalised)}
    for prefix in BLOCKED_PROC_PREFIXES:
        if prefix.upper() in procs:
            violations.append(f"Stored procedure call detected: {prefix}*")
            risk = RiskLevel.BLOCKED

    if len(_statement_segments(stripped)) > 1:
        violations.append(MULTI_STATEMENT)
        risk = max(risk, RiskLevel.SUSPICIOUS)

    if _UNION.search(normalised):
        violations.append(UNION_DETECTED)
        risk = max(risk, RiskLevel.SUSPICIOUS)

    return ValidationOutcome(
        is_valid=risk != RiskLevel.BLOCKED,
        violations=violations,
        risk_level=risk,
    )


def sanitize_for_audit(sql: str) -> str:
    """Redact credential-looking key=value pairs for audit display."""
    if not sql or not sql.strip():
        return sql

    sanitized = _SENSITIVE_BARE.sub(rf"\1={REDACTED}", sql)
    return _SENSITIVE_QUOTED.sub(rf"\1='{REDACTED}'", sanitized)
