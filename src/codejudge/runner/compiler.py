from __future__ import annotations

import structlog

from ..core.errors import FileError
from ..core.languages import LanguagePolicy
from ..core.models import CompileOutcome, CompileResult, Workspace
from .process import run_process

log = structlog.get_logger()


class Compiler:
    def __init__(self, timeout_s: int = 30):
        self.timeout_s = timeout_s

    def compile(self, ws: Workspace, policy: LanguagePolicy) -> CompileResult:
        """
        Build the workspace source with the language toolchain.

        Raises ``FileError`` for a language without a build step.
        """
        if not policy.compiled:
            raise FileError(f"Language '{policy.name}' has no compile step.")
        if not ws.source_name or not ws.source_path.exists():
            return CompileResult(CompileOutcome.MISSING_SOURCE, "Missing source file")

        argv = policy.compile_command(ws.path, ws.source_name)
        log.debug("compile_start", argv=argv)
        try:
            res = run_process(argv, cwd=ws.path, timeout_s=self.timeout_s)
        except OSError as e:
            log.error("compile_spawn_failed", program=argv[0], error=str(e))
            return CompileResult(CompileOutcome.PROCESS_ERROR, f"Unable to start '{argv[0]}'")

        if res.timed_out:
            return CompileResult(
                CompileOutcome.TIME_LIMIT_EXCEEDED,
                f"Compilation timed out after {self.timeout_s}s",
                res.duration_s,
            )
        try:
            stderr = res.stderr.decode("utf-8")
        except UnicodeDecodeError:
            return CompileResult(CompileOutcome.INVALID_CONSOLE_OUTPUT, "", res.duration_s)

        log.debug("compile_done", rc=res.returncode, stderr=stderr)
        if res.returncode != 0:
            return CompileResult(CompileOutcome.COMPILE_ERROR, ws.scrub(stderr), res.duration_s)
        return CompileResult(CompileOutcome.OK, "", res.duration_s)
