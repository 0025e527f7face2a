import os
import shutil
import sys
import time
from dataclasses import replace
from pathlib import Path

import pytest

from codejudge.core.languages import build_policies
from codejudge.core.models import Mode, Submission
from codejudge.services.judge import Judge
from codejudge.settings import Settings

# Stands in for a real toolchain: "compiles" main.c by copying it to main.py,
# and rejects sources containing the words "syntax error".
FAKE_COMPILER = (
    "import shutil, sys\n"
    "src = open(sys.argv[1]).read()\n"
    "if 'syntax error' in src:\n"
    "    sys.stderr.write(sys.argv[1] + ':1: error: expected declaration\\n')\n"
    "    sys.exit(1)\n"
    "shutil.copy(sys.argv[1], sys.argv[2])\n"
)

needs_gcc = pytest.mark.skipif(shutil.which("gcc") is None, reason="gcc not installed")


def alive(pid: int) -> bool:
    """True while ``pid`` exists and is not a zombie."""
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    try:
        stat = Path(f"/proc/{pid}/stat").read_text()
    except OSError:
        return False
    return stat.rsplit(")", 1)[1].split()[0] != "Z"


def wait_dead(pid: int, within: float = 3.0) -> bool:
    deadline = time.monotonic() + within
    while time.monotonic() < deadline:
        if not alive(pid):
            return True
        time.sleep(0.05)
    return not alive(pid)


@pytest.fixture
def ws_root(tmp_path):
    return tmp_path / "workspaces"


@pytest.fixture
def settings(ws_root):
    return Settings(
        workspace_root=ws_root,
        compile_timeout_s=30,
        max_timeout_s=30,
        runtimes={"python3": sys.executable},
    )


@pytest.fixture
def judge(settings):
    return Judge(settings)


@pytest.fixture
def fake_c_judge(judge):
    """Judge whose "c" toolchain is a Python script, so compiled paths run without gcc."""
    table = dict(judge.languages)
    table["c"] = replace(
        table["c"],
        compile_cmd=(sys.executable, "-c", FAKE_COMPILER, "{src}", "{bin}.py"),
        run_cmd=(sys.executable, "{bin}.py"),
        artifact="{bin}.py",
    )
    judge.languages = table
    return judge


@pytest.fixture
def make_submission():
    def _make(source, language="python", mode=Mode.RUN_SAMPLE, timeout=5, **kw):
        return Submission(
            id="sub-1",
            language=language,
            source_code=source,
            timeout=timeout,
            mode=mode,
            **kw,
        )

    return _make


def leftover_workspaces(root: Path):
    return sorted(p.name for p in root.iterdir()) if root.exists() else []
