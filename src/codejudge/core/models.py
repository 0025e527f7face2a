from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from pathlib import Path
from typing import Any, Dict, List, Optional


class Status(IntEnum):
    OK = 200
    ACCEPTED = 201
    WRONG_ANSWER = 400
    COMPILATION_ERROR = 401
    RUNTIME_ERROR = 402
    INVALID_FILE = 403
    FILE_NOT_FOUND = 404
    TIME_LIMIT_EXCEEDED = 408
    INTERNAL_SERVER_ERROR = 500

    @property
    def message(self) -> str:
        return _STATUS_MESSAGES[self]

    @property
    def is_success(self) -> bool:
        return self in (Status.OK, Status.ACCEPTED)


_STATUS_MESSAGES = {
    Status.OK: "Success",
    Status.ACCEPTED: "Accepted",
    Status.WRONG_ANSWER: "Wrong Answer",
    Status.COMPILATION_ERROR: "Compilation Error",
    Status.RUNTIME_ERROR: "Runtime Error",
    Status.INVALID_FILE: "Invalid File",
    Status.FILE_NOT_FOUND: "File Not Found",
    Status.TIME_LIMIT_EXCEEDED: "Time Limit Exceeded",
    Status.INTERNAL_SERVER_ERROR: "Internal Server Error",
}


class Mode(str, Enum):
    COMPILE_ONLY = "compile-only"
    RUN_SAMPLE = "run-sample"
    RUN_WITH_CUSTOM_INPUT = "run-with-custom-input"
    SUBMIT = "submit"


class Stage(str, Enum):
    INIT = "init"
    COMPILING = "compiling"
    RUNNING = "running"
    COMPARING = "comparing"
    CLEANUP = "cleanup"
    DONE = "done"


class CompileOutcome(str, Enum):
    OK = "ok"
    COMPILE_ERROR = "compile_error"
    PROCESS_ERROR = "process_error"
    MISSING_SOURCE = "missing_source"
    INVALID_CONSOLE_OUTPUT = "invalid_console_output"
    TIME_LIMIT_EXCEEDED = "time_limit_exceeded"


class ExecOutcome(str, Enum):
    ACCEPTED = "accepted"
    WRONG_ANSWER = "wrong_answer"
    RUNTIME_ERROR = "runtime_error"
    TIME_LIMIT_EXCEEDED = "time_limit_exceeded"
    INTERNAL_ERROR = "internal_error"
    MISSING_FILE = "missing_file"


@dataclass
class TestCase:
    __test__ = False  # keep pytest from collecting this

    input: str
    expected_output: str


@dataclass
class Submission:
    id: str
    language: str
    source_code: str
    timeout: int
    mode: Mode
    input: Optional[str] = None
    expected_output: Optional[str] = None
    testcases: List[TestCase] = field(default_factory=list)

    def cases(self) -> List[TestCase]:
        """Cases judged in submit mode, in order."""
        if self.testcases:
            return list(self.testcases)
        if self.input is None or self.expected_output is None:
            return []
        return [TestCase(input=self.input, expected_output=self.expected_output)]


@dataclass
class CompileResult:
    outcome: CompileOutcome
    details: str = ""
    duration_s: float = 0.0

    @property
    def ok(self) -> bool:
        return self.outcome is CompileOutcome.OK


@dataclass
class ExecutionResult:
    outcome: ExecOutcome
    stdout: str = ""
    details: str = ""
    duration_s: float = 0.0


@dataclass
class Workspace:
    submission_id: str
    language: str
    path: Path
    source_name: Optional[str] = None
    cleanup_error: Optional[Exception] = None

    @property
    def source_path(self) -> Path:
        if not self.source_name:
            raise ValueError("workspace has no source file yet")
        return self.path / self.source_name

    @property
    def stem(self) -> str:
        return Path(self.source_name or "").stem

    def scrub(self, text: str) -> str:
        """Strip the workspace location from text shown to the caller."""
        root = str(self.path.resolve())
        return text.replace(root + "/", "").replace(root, ".")

    def input_path(self, index: Optional[int] = None) -> Path:
        return self.path / _indexed("input", index)

    def expected_output_path(self, index: Optional[int] = None) -> Path:
        return self.path / _indexed("expectedoutput", index)

    def actual_output_path(self, index: Optional[int] = None) -> Path:
        return self.path / _indexed("actualoutput", index)

    def stderr_path(self, index: Optional[int] = None) -> Path:
        return self.path / _indexed("stderr", index)


def _indexed(name: str, index: Optional[int]) -> str:
    return f"{name}.txt" if index is None else f"{name}{index}.txt"


@dataclass
class Verdict:
    status: Status
    error: Optional[str] = None
    debug_output: Optional[str] = None
    passed_cases: Optional[int] = None

    @classmethod
    def of(cls, status: Status, error: Optional[str] = None) -> "Verdict":
        return cls(status=status, error=error if error is not None else status.message)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"status": int(self.status)}
        if self.error is not None:
            out["error"] = self.error
        if self.debug_output is not None:
            out["debugOutput"] = self.debug_output
        if self.passed_cases is not None:
            out["passedCases"] = self.passed_cases
        return out
