from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List, Optional, Tuple

import structlog

from ..core.errors import InvalidSubmission, JudgeError
from ..core.languages import LanguagePolicy, build_policies, resolve
from ..core.models import (
    CompileOutcome,
    CompileResult,
    ExecOutcome,
    ExecutionResult,
    Mode,
    Stage,
    Status,
    Submission,
    TestCase,
    Verdict,
    Workspace,
)
from ..runner.compiler import Compiler
from ..runner.executor import Executor
from ..settings import Settings, load_settings
from .comparator import compare
from .workspace import WorkspaceManager

log = structlog.get_logger()

INVALID_CONSOLE_MESSAGE = (
    "InvalidStringFromConsole :: Invalid utf8 character found in std console of child process."
)
PROCESS_ERROR_MESSAGE = (
    "ProcessError :: Something went wrong during execution of child process."
)

_EXEC_STATUS = {
    ExecOutcome.ACCEPTED: Status.ACCEPTED,
    ExecOutcome.WRONG_ANSWER: Status.WRONG_ANSWER,
    ExecOutcome.RUNTIME_ERROR: Status.RUNTIME_ERROR,
    ExecOutcome.TIME_LIMIT_EXCEEDED: Status.TIME_LIMIT_EXCEEDED,
    ExecOutcome.INTERNAL_ERROR: Status.INTERNAL_SERVER_ERROR,
    ExecOutcome.MISSING_FILE: Status.FILE_NOT_FOUND,
}


class Judge:
    """
    Runs one submission through init → compiling → running → comparing →
    cleanup and maps whatever happens to a ``Verdict``.

    Stage failures never escape as exceptions; the workspace is removed on
    every path before the verdict is returned.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        workspaces: Optional[WorkspaceManager] = None,
        compiler: Optional[Compiler] = None,
        executor: Optional[Executor] = None,
    ):
        self.settings = settings or load_settings()
        self.languages = build_policies(self.settings.runtimes)
        self.workspaces = workspaces or WorkspaceManager(self.settings.workspace_root)
        self.compiler = compiler or Compiler(timeout_s=self.settings.compile_timeout_s)
        self.executor = executor or Executor()

    # ------------ public ------------

    def judge(self, sub: Submission) -> Verdict:
        with structlog.contextvars.bound_contextvars(
            submission_id=sub.id, language=sub.language,
        ):
            verdict = self._judge(sub)
            log.info("judged", status=int(verdict.status))
            return verdict

    def judge_many(self, subs: Iterable[Submission], max_workers: int = 4) -> List[Verdict]:
        """Judge independent submissions concurrently; results keep input order."""
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            return list(pool.map(self.judge, subs))

    # ------------ stages ------------

    def _judge(self, sub: Submission) -> Verdict:
        log.debug("stage", stage=Stage.INIT.value)
        try:
            policy, filename = self._prepare(sub)
        except JudgeError as e:
            log.warning("submission_rejected", error=str(e))
            return Verdict.of(e.status, str(e))

        ws: Optional[Workspace] = None
        try:
            with self.workspaces.provision(sub.id, sub.language) as ws:
                verdict = self._pipeline(ws, sub, policy, filename)
                log.debug("stage", stage=Stage.CLEANUP.value)
        except JudgeError as e:
            log.error("workspace_unavailable", error=str(e))
            return Verdict.of(e.status, str(e))

        if ws.cleanup_error is not None:
            if verdict.status.is_success:
                verdict = Verdict.of(Status.INTERNAL_SERVER_ERROR, str(ws.cleanup_error))
            else:
                log.warning("cleanup_failed_after_verdict", status=int(verdict.status))
        log.debug("stage", stage=Stage.DONE.value)
        return verdict

    def _prepare(self, sub: Submission) -> Tuple[LanguagePolicy, str]:
        """Validate the request and pick the source name; touches no files."""
        if not isinstance(sub.mode, Mode):
            try:
                sub.mode = Mode(sub.mode)
            except ValueError:
                raise InvalidSubmission(f"Unknown mode '{sub.mode}'.") from None
        if isinstance(sub.timeout, bool) or not isinstance(sub.timeout, int) or sub.timeout <= 0:
            raise InvalidSubmission("Timeout must be a positive number of seconds.")
        if sub.mode is Mode.SUBMIT and not sub.cases():
            raise InvalidSubmission("Input and expected output are required for submission.")
        if sub.mode is Mode.RUN_WITH_CUSTOM_INPUT and sub.input is None:
            raise InvalidSubmission("Input is required for a custom input run.")
        texts = [sub.source_code, sub.input, sub.expected_output]
        texts += [t for case in sub.testcases for t in (case.input, case.expected_output)]
        if not all(_encodable(t) for t in texts):
            raise InvalidSubmission("Source code and test data must be valid UTF-8 text.")

        policy = resolve(sub.language, self.languages)
        return policy, policy.source_filename(sub.source_code)

    def _pipeline(self, ws: Workspace, sub: Submission, policy: LanguagePolicy, filename: str) -> Verdict:
        try:
            self.workspaces.write_source(ws, filename, sub.source_code)
            cases = self._write_inputs(ws, sub)

            if policy.compiled or sub.mode is Mode.COMPILE_ONLY:
                log.debug("stage", stage=Stage.COMPILING.value)
                built = self.compiler.compile(ws, policy)
                log.info("compiled", outcome=built.outcome.value, duration_s=round(built.duration_s, 3))
                failed = self._compile_verdict(built)
                if failed is not None:
                    return failed
            if sub.mode is Mode.COMPILE_ONLY:
                return Verdict(Status.OK)

            log.debug("stage", stage=Stage.RUNNING.value)
            time_limit = min(sub.timeout, self.settings.max_timeout_s)
            if sub.mode is Mode.SUBMIT:
                verdict = self._submit(ws, policy, cases, time_limit)
                if not sub.testcases:
                    verdict.passed_cases = None
                return verdict

            res = self.executor.execute(ws, policy, sub.mode, time_limit)
            log.info("ran", outcome=res.outcome.value, duration_s=round(res.duration_s, 3))
            if res.outcome is ExecOutcome.ACCEPTED:
                return Verdict(Status.ACCEPTED, debug_output=res.stdout)
            return self._failed_run(res)
        except JudgeError as e:
            log.warning("stage_failed", error=str(e))
            return Verdict.of(e.status, str(e))
        except OSError:
            log.exception("stage_crashed")
            return Verdict.of(Status.INTERNAL_SERVER_ERROR)

    def _write_inputs(self, ws: Workspace, sub: Submission) -> List[TestCase]:
        if sub.mode is Mode.RUN_WITH_CUSTOM_INPUT:
            self.workspaces.write_file(ws, ws.input_path().name, sub.input or "")
            return []
        if sub.mode is not Mode.SUBMIT:
            return []
        cases = sub.cases()
        for i, case in enumerate(cases):
            idx = _case_index(i, cases)
            self.workspaces.write_file(ws, ws.input_path(idx).name, case.input)
            self.workspaces.write_file(ws, ws.expected_output_path(idx).name, case.expected_output)
        return cases

    def _submit(self, ws: Workspace, policy: LanguagePolicy, cases: List[TestCase], time_limit: int) -> Verdict:
        passed = 0
        for i in range(len(cases)):
            idx = _case_index(i, cases)
            res = self.executor.execute(ws, policy, Mode.SUBMIT, time_limit, case=idx)
            log.info("ran", case=i, outcome=res.outcome.value, duration_s=round(res.duration_s, 3))
            if res.outcome is not ExecOutcome.ACCEPTED:
                verdict = self._failed_run(res)
                break
            log.debug("stage", stage=Stage.COMPARING.value, case=i)
            outcome = compare(ws.actual_output_path(idx), ws.expected_output_path(idx))
            if outcome is not ExecOutcome.ACCEPTED:
                verdict = Verdict.of(_EXEC_STATUS[outcome])
                break
            passed += 1
        else:
            verdict = Verdict(Status.ACCEPTED)
        verdict.passed_cases = passed
        return verdict

    @staticmethod
    def _compile_verdict(res: CompileResult) -> Optional[Verdict]:
        if res.ok:
            return None
        log.info("compile_failed", outcome=res.outcome.value)
        if res.outcome is CompileOutcome.COMPILE_ERROR:
            return Verdict(Status.COMPILATION_ERROR, error=res.details)
        if res.outcome is CompileOutcome.TIME_LIMIT_EXCEEDED:
            return Verdict(Status.COMPILATION_ERROR, error=res.details)
        if res.outcome is CompileOutcome.INVALID_CONSOLE_OUTPUT:
            return Verdict(Status.COMPILATION_ERROR, error=INVALID_CONSOLE_MESSAGE)
        if res.outcome is CompileOutcome.MISSING_SOURCE:
            return Verdict.of(Status.FILE_NOT_FOUND)
        return Verdict.of(Status.INTERNAL_SERVER_ERROR, PROCESS_ERROR_MESSAGE)

    @staticmethod
    def _failed_run(res: ExecutionResult) -> Verdict:
        status = _EXEC_STATUS[res.outcome]
        if res.outcome is ExecOutcome.RUNTIME_ERROR:
            return Verdict(status, error=res.details)
        return Verdict.of(status)


def _case_index(i: int, cases: List[TestCase]) -> Optional[int]:
    return None if len(cases) == 1 else i


def _encodable(text: Optional[str]) -> bool:
    # lone surrogates survive JSON decoding but cannot be written to disk
    if text is None:
        return True
    try:
        text.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True
