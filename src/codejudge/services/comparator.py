from __future__ import annotations

from pathlib import Path

import structlog

from ..core.models import ExecOutcome

log = structlog.get_logger()


def normalize(data: bytes) -> bytes:
    # leading/trailing whitespace only; inner bytes must match exactly
    return data.strip()


def compare(actual: Path, expected: Path) -> ExecOutcome:
    """
    Decide acceptance of a finished run.

    Returns ACCEPTED, WRONG_ANSWER, MISSING_FILE when either file is absent,
    or INTERNAL_ERROR when a file cannot be read.
    """
    if not actual.exists() or not expected.exists():
        return ExecOutcome.MISSING_FILE
    try:
        got = normalize(actual.read_bytes())
        want = normalize(expected.read_bytes())
    except OSError as e:
        log.error("compare_read_failed", error=str(e))
        return ExecOutcome.INTERNAL_ERROR
    return ExecOutcome.ACCEPTED if got == want else ExecOutcome.WRONG_ANSWER
