import pytest

from codejudge.core.errors import InvalidPublicClass, UnsupportedLanguage
from codejudge.core.languages import LANGUAGES, build_policies, is_compiled, resolve


@pytest.mark.parametrize(
    "language, compiled",
    [
        ("c", True),
        ("cpp", True),
        ("rust", True),
        ("java", True),
        ("csharp", True),
        ("kotlin", True),
        ("scala", True),
        ("swift", True),
        ("typescript", True),
        ("zig", True),
        ("python", False),
        ("ruby", False),
        ("javascript", False),
        ("go", False),
        ("julia", False),
    ],
)
def test_compiled_flag(language, compiled):
    assert is_compiled(language) is compiled
    # same answer every time
    assert resolve(language).compiled is resolve(language).compiled


@pytest.mark.parametrize("language", ["", "sql", "Python", "c#", "brainfuck"])
def test_unknown_language_is_rejected(language):
    with pytest.raises(UnsupportedLanguage) as exc:
        resolve(language)
    assert exc.value.status == 403
    assert str(exc.value).startswith("UnsupportedLanguage :: ")


@pytest.mark.parametrize(
    "language, filename",
    [
        ("c", "main.c"),
        ("cpp", "main.cpp"),
        ("python", "main.py"),
        ("javascript", "index.js"),
        ("typescript", "index.ts"),
        ("go", "main.go"),
    ],
)
def test_fixed_filenames(language, filename):
    assert resolve(language).source_filename("whatever") == filename


def test_java_filename_comes_from_public_class():
    src = "import java.util.*;\npublic class Solution {\n  public static void main(String[] a) {}\n}"
    assert resolve("java").source_filename(src) == "Solution.java"


def test_scala_filename_comes_from_object():
    assert resolve("scala").source_filename("object Hello {\n}") == "Hello.scala"


@pytest.mark.parametrize(
    "language, src",
    [
        ("java", "class Main { public static void main(String[] a) {} }"),
        ("java", ""),
        ("scala", "class Hello { }"),
    ],
)
def test_missing_type_declaration(language, src):
    with pytest.raises(InvalidPublicClass) as exc:
        resolve(language).source_filename(src)
    assert exc.value.status == 403


def test_commands_are_token_lists(tmp_path):
    workdir = tmp_path / "dir with spaces"
    c = resolve("c")
    argv = c.compile_command(workdir, "main.c")
    assert argv == ["gcc", str(workdir / "main.c"), "-o", str(workdir / "main")]
    assert c.run_command(workdir, "main.c") == [str(workdir / "main")]
    assert c.artifact_path(workdir, "main.c") == workdir / "main"


def test_java_runs_class_from_workspace(tmp_path):
    java = resolve("java")
    assert java.run_command(tmp_path, "Solution.java") == ["java", "-cp", str(tmp_path), "Solution"]
    assert java.artifact_path(tmp_path, "Solution.java") == tmp_path / "Solution.class"


def test_interpreted_run_uses_source(tmp_path):
    py = resolve("python")
    assert py.compile_cmd == ()
    assert py.run_command(tmp_path, "main.py") == ["python3", str(tmp_path / "main.py")]
    assert py.artifact_path(tmp_path, "main.py") == tmp_path / "main.py"


def test_runtime_overrides_swap_program_only():
    table = build_policies({"python3": "/opt/py/bin/python3.12", "gcc": "clang"})
    assert table["python"].run_cmd == ("/opt/py/bin/python3.12", "{src}")
    assert table["c"].compile_cmd[0] == "clang"
    assert table["ruby"].run_cmd == LANGUAGES["ruby"].run_cmd
    # default table untouched
    assert LANGUAGES["python"].run_cmd[0] == "python3"


def test_table_is_read_only():
    with pytest.raises(TypeError):
        LANGUAGES["python"] = LANGUAGES["ruby"]  # type: ignore[index]
