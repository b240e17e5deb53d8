import re
from collections.abc import Iterable

REDACTED_IP = "REDACTED_IP"
REDACTED_EMAIL = "REDACTED_EMAIL"
REDACTED_SECRET = "REDACTED_SECRET"

IP_RE = re.compile(r"\b\d{1,3}(?:\.\d{1,3}){3}\b")
EMAIL_RE = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-z]{2,}", re.IGNORECASE)
TOKEN_RE = re.compile(r"\b(?:eyJ[^\s\"]+|AKIA[0-9A-Z]{16}|ghp_[a-zA-Z0-9]{36,})\b")
ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")
WHITESPACE_RE = re.compile(r"\s{2,}")


def _sanitize_pass(line: str) -> str:
    # Order matters: whitespace is collapsed after every replacement.
    line = IP_RE.sub(REDACTED_IP, line)
    line = EMAIL_RE.sub(REDACTED_EMAIL, line)
    line = TOKEN_RE.sub(REDACTED_SECRET, line)
    line = ANSI_RE.sub("", line)
    line = WHITESPACE_RE.sub(" ", line)
    return line.strip()


def sanitize_line(line: str) -> str:
    # Stripping ANSI codes can join a split IP, email or token back
    # together, so repeat the pass until the line is stable.
    while True:
        cleaned = _sanitize_pass(line)
        if cleaned == line:
            return cleaned
        line = cleaned


def sanitize(lines: Iterable[str]) -> list[str]:
    """
    Redact IPs, emails and token-shaped strings, strip ANSI colors and
    normalize whitespace. Pure and idempotent.
    """
    return [sanitize_line(line) for line in lines]
