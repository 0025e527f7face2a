"""
Per-language rules: source file naming, whether a build step is needed and
the argv templates used to build and run a program.

Templates are lists of tokens. Each token may reference

  {src}   absolute path of the source file
  {bin}   absolute path of the build output without extension
  {stem}  source file name without extension
  {dir}   absolute path of the workspace

The table is built once and handed out read-only.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, replace
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Pattern, Tuple

from .errors import InvalidPublicClass, UnsupportedLanguage

Argv = Tuple[str, ...]


@dataclass(frozen=True)
class LanguagePolicy:
    name: str
    compiled: bool
    run_cmd: Argv
    compile_cmd: Argv = ()
    filename: Optional[str] = None
    name_pattern: Optional[Pattern[str]] = None
    extension: str = ""
    # what must exist before the run command can start
    artifact: str = "{src}"

    def source_filename(self, source: str) -> str:
        if self.name_pattern is None:
            return self.filename or ""
        m = self.name_pattern.search(source)
        if not m:
            raise InvalidPublicClass()
        return f"{m.group(1)}{self.extension}"

    def compile_command(self, workdir: Path, source_name: str) -> List[str]:
        return _render(self.compile_cmd, workdir, source_name)

    def run_command(self, workdir: Path, source_name: str) -> List[str]:
        return _render(self.run_cmd, workdir, source_name)

    def artifact_path(self, workdir: Path, source_name: str) -> Path:
        return Path(_render((self.artifact,), workdir, source_name)[0])


def _render(template: Argv, workdir: Path, source_name: str) -> List[str]:
    root = workdir.resolve()
    stem = Path(source_name).stem
    values = {
        "src": str(root / source_name),
        "bin": str(root / stem),
        "stem": stem,
        "dir": str(root),
    }
    return [tok.format(**values) for tok in template]


def _fixed(name: str, filename: str, run: Argv, build: Argv = (), artifact: str = "{src}") -> LanguagePolicy:
    return LanguagePolicy(
        name=name,
        compiled=bool(build),
        run_cmd=run,
        compile_cmd=build,
        filename=filename,
        artifact=artifact,
    )


_DEFAULTS: Tuple[LanguagePolicy, ...] = (
    _fixed("c", "main.c", ("{bin}",), ("gcc", "{src}", "-o", "{bin}"), "{bin}"),
    _fixed("cpp", "main.cpp", ("{bin}",), ("g++", "{src}", "-o", "{bin}"), "{bin}"),
    _fixed("rust", "main.rs", ("{bin}",), ("rustc", "{src}", "-o", "{bin}"), "{bin}"),
    _fixed("csharp", "main.cs", ("mono", "{bin}.exe"), ("mcs", "-out:{bin}.exe", "{src}"), "{bin}.exe"),
    _fixed(
        "kotlin", "main.kt", ("java", "-jar", "{bin}.jar"),
        ("kotlinc", "{src}", "-include-runtime", "-d", "{bin}.jar"), "{bin}.jar",
    ),
    _fixed("swift", "main.swift", ("{bin}",), ("swiftc", "{src}", "-o", "{bin}"), "{bin}"),
    _fixed("typescript", "index.ts", ("node", "{dir}/{stem}.js"), ("npx", "tsc", "{src}"), "{dir}/{stem}.js"),
    _fixed("zig", "main.zig", ("{bin}",), ("zig", "build-exe", "{src}", "-femit-bin={bin}"), "{bin}"),
    LanguagePolicy(
        name="java",
        compiled=True,
        run_cmd=("java", "-cp", "{dir}", "{stem}"),
        compile_cmd=("javac", "-d", "{dir}", "{src}"),
        name_pattern=re.compile(r"public\s+class\s+(\w+)\s*\{"),
        extension=".java",
        artifact="{dir}/{stem}.class",
    ),
    LanguagePolicy(
        name="scala",
        compiled=True,
        run_cmd=("scala", "-cp", "{dir}", "{stem}"),
        compile_cmd=("scalac", "-d", "{dir}", "{src}"),
        name_pattern=re.compile(r"object\s+(\w+)\s*\{"),
        extension=".scala",
        artifact="{dir}/{stem}.class",
    ),
    _fixed("python", "main.py", ("python3", "{src}")),
    _fixed("ruby", "main.rb", ("ruby", "{src}")),
    _fixed("javascript", "index.js", ("node", "{src}")),
    _fixed("go", "main.go", ("go", "run", "{src}")),
    _fixed("julia", "main.jl", ("julia", "{src}")),
)


def build_policies(runtimes: Optional[Mapping[str, str]] = None) -> Mapping[str, LanguagePolicy]:
    """
    Build the read-only policy table.

    ``runtimes`` maps a toolchain program (``python3``, ``gcc``, ``java`` ...)
    to the program that should be invoked instead.
    """
    runtimes = dict(runtimes or {})
    table: Dict[str, LanguagePolicy] = {}
    for policy in _DEFAULTS:
        if runtimes:
            policy = replace(
                policy,
                run_cmd=_swap_program(policy.run_cmd, runtimes),
                compile_cmd=_swap_program(policy.compile_cmd, runtimes),
            )
        table[policy.name] = policy
    return MappingProxyType(table)


def _swap_program(argv: Argv, runtimes: Mapping[str, str]) -> Argv:
    if not argv or argv[0] not in runtimes:
        return argv
    return (runtimes[argv[0]],) + tuple(argv[1:])


LANGUAGES: Mapping[str, LanguagePolicy] = build_policies()


def resolve(language: str, table: Optional[Mapping[str, LanguagePolicy]] = None) -> LanguagePolicy:
    policy = (table if table is not None else LANGUAGES).get(language)
    if policy is None:
        raise UnsupportedLanguage(language)
    return policy


def is_compiled(language: str) -> bool:
    return resolve(language).compiled
