#!/usr/bin/env python3
"""Security & PII gate for runtime code under src/.

Fails if:
- print( is used instead of the JSON logger
- a logger call formats its message with an f-string (values belong in
  extra_fields, where safe_log_context redacts them)
- a logger call line mentions a sender id, message content or raw payload
  without going through safe_log_context/redact_value/hash_identifier

Usage:
    python scripts/gate_security_pii.py
"""

import re
import sys
from pathlib import Path

# Names that carry PII or raw webhook data
SENSITIVE_KEYWORDS = (
    "payload",
    "body_bytes",
    "sender_id",
    "wa_id",
    "to_phone",
    "msg.text",
    "content",
)

PRINT_PATTERN = re.compile(r"\bprint\s*\(")

LOGGER_CALL_PATTERN = re.compile(
    r"logger\.(debug|info|warning|error|critical|exception)\s*\("
)

FSTRING_LOGGER_PATTERN = re.compile(
    r"logger\.(debug|info|warning|error|critical|exception)\s*\(\s*f[\"']"
)

REDACTION_PATTERNS = (
    "safe_log_context",
    "redact_value",
    "redact_string",
    "hash_identifier",
)


def _code_part(line: str) -> str:
    return line.split("#", 1)[0]


def check_file(filepath: Path) -> list[str]:
    """Check a single file. Returns one message per violation."""
    try:
        content = filepath.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        return []

    errors = []
    for lineno, line in enumerate(content.splitlines(), start=1):
        code = _code_part(line)
        if not code.strip():
            continue

        if PRINT_PATTERN.search(code):
            errors.append(f"{filepath}:{lineno}: print() not allowed in runtime code")

        if FSTRING_LOGGER_PATTERN.search(code):
            errors.append(f"{filepath}:{lineno}: logger message must not be an f-string")

        if LOGGER_CALL_PATTERN.search(code):
            lowered = code.lower()
            redacted = any(rp in code for rp in REDACTION_PATTERNS)
            for keyword in SENSITIVE_KEYWORDS:
                if keyword in lowered and not redacted:
                    errors.append(
                        f"{filepath}:{lineno}: logger call with '{keyword}' "
                        "must use redaction (safe_log_context/hash_identifier)"
                    )

    return errors


def check_tree(src_dir: Path) -> list[str]:
    errors: list[str] = []
    for pyfile in sorted(src_dir.rglob("*.py")):
        errors.extend(check_file(pyfile))
    return errors


def main() -> int:
    src_dir = Path(__file__).resolve().parent.parent / "src"
    if not src_dir.exists():
        sys.stderr.write("Error: src directory not found\n")
        return 1

    errors = check_tree(src_dir)
    if errors:
        sys.stderr.write("PII gate FAILED - violations found:\n")
        for err in errors:
            sys.stderr.write(f"  {err}\n")
        return 1

    sys.stdout.write("PII gate PASSED\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
