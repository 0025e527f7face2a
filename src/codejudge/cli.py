"""Standalone entry point.

Judge a source file from disk and print the verdict as JSON::

    codejudge run python main.py --mode submit \
        --input 0000.in --expected 0000.out --timeout 2

or start the HTTP service::

    codejudge serve --port 3000
"""

from __future__ import annotations

import argparse
import json
import sys
import uuid
from pathlib import Path
from typing import List, Optional

from .core.models import Mode, Submission
from .logging import setup_logging
from .services.judge import Judge
from .settings import load_settings


def _read(path: Optional[Path]) -> Optional[str]:
    return path.read_text(encoding="utf-8") if path else None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="codejudge", description=__doc__,
                                     formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--config", type=Path, help="YAML configuration file")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="judge a single source file")
    run.add_argument("language", help="language identifier, e.g. python or c")
    run.add_argument("source", type=Path, help="path to the source file")
    run.add_argument(
        "--mode",
        default=Mode.RUN_SAMPLE.value,
        choices=[m.value for m in Mode],
        help="execution mode (default: run-sample)",
    )
    run.add_argument("--input", type=Path, help="file fed to the program on stdin")
    run.add_argument("--expected", type=Path, help="expected output file (submit mode)")
    run.add_argument("--timeout", type=int, default=5, help="time limit in seconds")
    run.add_argument("--id", default=None, help="submission id used in logs")

    serve = sub.add_parser("serve", help="start the HTTP service")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = load_settings(args.config)
    setup_logging(settings.log_level, settings.log_json, stream=sys.stderr)

    if args.command == "serve":
        import uvicorn
        from .api import create_app

        uvicorn.run(
            create_app(Judge(settings)),
            host=args.host or settings.host,
            port=args.port or settings.port,
        )
        return 0

    try:
        source = args.source.read_text(encoding="utf-8")
        stdin_data = _read(args.input)
        expected = _read(args.expected)
    except OSError as e:
        print(f"cannot read input: {e}", file=sys.stderr)
        return 2

    submission = Submission(
        id=args.id or uuid.uuid4().hex[:12],
        language=args.language,
        source_code=source,
        timeout=args.timeout,
        mode=Mode(args.mode),
        input=stdin_data,
        expected_output=expected,
    )
    verdict = Judge(settings).judge(submission)
    print(json.dumps(verdict.to_dict(), indent=2, ensure_ascii=False))
    return 0 if verdict.status.is_success else 1


if __name__ == "__main__":
    sys.exit(main())
