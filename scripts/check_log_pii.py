#!/usr/bin/env python3
"""Security gate: no PII reaches the logs or stdout from runtime code.

Fails if, anywhere under src/:
- print( is called
- a logger call references a sensitive variable (sender id, phone, text,
  reply, payload...) outside safe_log_context / redact_* / hash_identifier

Usage:
    python scripts/check_log_pii.py [SRC_DIR]
"""

from __future__ import annotations

import ast
import sys
from pathlib import Path

SENSITIVE_NAMES = frozenset(
    {
        "external_id",
        "recipient_key",
        "text",
        "reply",
        "body",
        "payload",
        "phone",
        "email",
        "sender_phone",
        "sender_id",
    }
)

# Values passed through these calls are redacted or hashed
SAFE_CALLS = frozenset(
    {"safe_log_context", "redact_value", "redact_string", "hash_identifier", "len"}
)

LOG_METHODS = frozenset({"debug", "info", "warning", "error", "critical", "exception"})


def _call_name(node: ast.Call) -> str | None:
    if isinstance(node.func, ast.Name):
        return node.func.id
    if isinstance(node.func, ast.Attribute):
        return node.func.attr
    return None


def _is_logger_call(node: ast.Call) -> bool:
    func = node.func
    return (
        isinstance(func, ast.Attribute)
        and func.attr in LOG_METHODS
        and isinstance(func.value, ast.Name)
        and func.value.id == "logger"
    )


def _unsafe_names(node: ast.AST) -> list[str]:
    """Sensitive names referenced by `node`, ignoring redacted subtrees."""
    if isinstance(node, ast.Call) and _call_name(node) in SAFE_CALLS:
        return []
    if isinstance(node, ast.Name) and node.id in SENSITIVE_NAMES:
        return [node.id]
    found: list[str] = []
    for child in ast.iter_child_nodes(node):
        found.extend(_unsafe_names(child))
    return found


def check_source(source: str, filename: str = "<string>") -> list[str]:
    """Check one module's source. Returns a list of violation messages."""
    errors: list[str] = []
    tree = ast.parse(source, filename=filename)

    for node in ast.walk(tree):
        if not isinstance(node, ast.Call):
            continue
        if isinstance(node.func, ast.Name) and node.func.id == "print":
            errors.append(f"{filename}:{node.lineno}: print() not allowed in runtime code")
        elif _is_logger_call(node):
            parts = [*node.args, *(kw.value for kw in node.keywords)]
            for name in sorted({n for part in parts for n in _unsafe_names(part)}):
                errors.append(
                    f"{filename}:{node.lineno}: logger call uses '{name}' "
                    "without redaction (safe_log_context/hash_identifier)"
                )
    return errors


def check_tree(src_dir: Path) -> list[str]:
    errors: list[str] = []
    for pyfile in sorted(src_dir.rglob("*.py")):
        errors.extend(check_source(pyfile.read_text(encoding="utf-8"), str(pyfile)))
    return errors


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    src_dir = Path(args[0]) if args else Path(__file__).resolve().parent.parent / "src"

    if not src_dir.is_dir():
        sys.stderr.write(f"Error: {src_dir} is not a directory\n")
        return 1

    errors = check_tree(src_dir)
    if errors:
        sys.stderr.write("PII gate FAILED:\n")
        for err in errors:
            sys.stderr.write(f"  {err}\n")
        return 1

    sys.stdout.write("PII gate passed\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
