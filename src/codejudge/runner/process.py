from __future__ import annotations

import os
import signal
import subprocess
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import IO, List, Optional, Union

import psutil
import structlog

log = structlog.get_logger()

Stream = Union[int, IO, None]

# inherited by every descendant, including ones that start their own session
RUN_TOKEN_ENV = "CODEJUDGE_RUN_TOKEN"
DRAIN_GRACE_S = 1.0


@dataclass
class ProcessOutcome:
    pid: int
    returncode: Optional[int]
    stdout: bytes
    stderr: bytes
    timed_out: bool
    duration_s: float

    @property
    def success(self) -> bool:
        return not self.timed_out and self.returncode == 0


def _kill_group(proc: subprocess.Popen) -> None:
    # child leads its own session, so its pid is the process group id
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass
    except PermissionError:
        proc.kill()


def _descendants(pid: int) -> List[psutil.Process]:
    try:
        return psutil.Process(pid).children(recursive=True)
    except psutil.Error:
        return []


def _tagged(token: str) -> List[psutil.Process]:
    found = []
    for p in psutil.process_iter():
        try:
            if p.environ().get(RUN_TOKEN_ENV) == token:
                found.append(p)
        except psutil.Error:
            continue
    return found


def _kill_tree(proc: subprocess.Popen, token: str) -> None:
    """Kill the group, then anything of this run that escaped it."""
    procs = _descendants(proc.pid)
    _kill_group(proc)
    procs += _tagged(token)
    # the leader is reaped by Popen itself
    procs = [p for p in procs if p.pid != proc.pid]
    for p in procs:
        try:
            p.kill()
        except psutil.Error:
            pass
    if procs:
        psutil.wait_procs(procs, timeout=DRAIN_GRACE_S)
        log.info("stragglers_killed", pids=sorted({p.pid for p in procs}))


def _drain(proc: subprocess.Popen):
    try:
        return proc.communicate(timeout=DRAIN_GRACE_S)
    except subprocess.TimeoutExpired:
        # someone outside our reach still holds the pipes
        for f in (proc.stdout, proc.stderr):
            if f is not None:
                f.close()
        proc.wait()
        return b"", b""


def run_process(
    argv: List[str],
    cwd: Path,
    timeout_s: float,
    stdin: Stream = subprocess.DEVNULL,
    stdout: Stream = subprocess.PIPE,
    stderr: Stream = subprocess.PIPE,
) -> ProcessOutcome:
    """
    Spawn ``argv`` in a new session and wait for it with a deadline.

    On expiry the whole process tree is killed and the child reaped before
    returning, so nothing keeps running after a timeout is reported. That
    includes descendants that moved to a session of their own: they are
    found through a token placed in the environment of the run.
    Raises ``OSError`` when the program cannot be spawned or waited on.
    """
    token = uuid.uuid4().hex
    start = time.monotonic()
    proc = subprocess.Popen(
        argv,
        stdin=stdin,
        stdout=stdout,
        stderr=stderr,
        cwd=str(cwd),
        env={**os.environ, RUN_TOKEN_ENV: token},
        start_new_session=True,
    )
    timed_out = False
    try:
        out, err = proc.communicate(timeout=timeout_s)
    except subprocess.TimeoutExpired:
        timed_out = True
        _kill_tree(proc, token)
        out, err = _drain(proc)
        log.info("process_killed", pid=proc.pid, timeout_s=timeout_s)
    except BaseException:
        _kill_tree(proc, token)
        proc.wait()
        raise
    else:
        # leftovers of a finished leader (e.g. backgrounded children) go too
        _kill_group(proc)

    return ProcessOutcome(
        pid=proc.pid,
        returncode=proc.returncode,
        stdout=out or b"",
        stderr=err or b"",
        timed_out=timed_out,
        duration_s=time.monotonic() - start,
    )
