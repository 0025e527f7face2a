from __future__ import annotations

import subprocess
from contextlib import ExitStack
from typing import Optional

import structlog

from ..core.languages import LanguagePolicy
from ..core.models import ExecOutcome, ExecutionResult, Mode, Workspace
from .process import run_process

log = structlog.get_logger()


class Executor:
    """Runs a built program (or an interpreted source) under a wall-clock limit."""

    def execute(
        self,
        ws: Workspace,
        policy: LanguagePolicy,
        mode: Mode,
        time_limit: int,
        case: Optional[int] = None,
    ) -> ExecutionResult:
        if mode is Mode.COMPILE_ONLY:
            raise ValueError("compile-only submissions are never executed")

        artifact = policy.artifact_path(ws.path, ws.source_name or "")
        if not ws.source_name or not artifact.exists():
            return ExecutionResult(ExecOutcome.MISSING_FILE, details="Missing executable file")

        wants_input = mode in (Mode.RUN_WITH_CUSTOM_INPUT, Mode.SUBMIT)
        input_path = ws.input_path(case)
        if wants_input and not input_path.exists():
            return ExecutionResult(ExecOutcome.MISSING_FILE, details="Missing input file")

        argv = policy.run_command(ws.path, ws.source_name)
        log.debug("run_start", argv=argv, mode=mode.value, time_limit=time_limit)

        try:
            with ExitStack() as stack:
                stdin = stack.enter_context(open(input_path, "rb")) if wants_input else subprocess.DEVNULL
                if mode is Mode.SUBMIT:
                    stdout = stack.enter_context(open(ws.actual_output_path(case), "wb"))
                    stderr = stack.enter_context(open(ws.stderr_path(case), "wb"))
                else:
                    stdout = stderr = subprocess.PIPE
                res = run_process(
                    argv, cwd=ws.path, timeout_s=time_limit,
                    stdin=stdin, stdout=stdout, stderr=stderr,
                )
        except OSError as e:
            log.error("run_failed", program=argv[0], error=str(e))
            return ExecutionResult(ExecOutcome.INTERNAL_ERROR, details=f"Unable to run '{argv[0]}'")

        if res.timed_out:
            log.info("run_timeout", pid=res.pid, time_limit=time_limit, duration_s=round(res.duration_s, 3))
            return ExecutionResult(ExecOutcome.TIME_LIMIT_EXCEEDED, duration_s=res.duration_s)

        if res.returncode != 0:
            err = res.stderr
            if mode is Mode.SUBMIT:
                try:
                    err = ws.stderr_path(case).read_bytes()
                except OSError as e:
                    return ExecutionResult(ExecOutcome.INTERNAL_ERROR, details=str(e))
            return ExecutionResult(
                ExecOutcome.RUNTIME_ERROR,
                details=ws.scrub(err.decode("utf-8", errors="replace")),
                duration_s=res.duration_s,
            )

        return ExecutionResult(
            ExecOutcome.ACCEPTED,
            stdout=res.stdout.decode("utf-8", errors="replace"),
            duration_s=res.duration_s,
        )
