from __future__ import annotations

import shutil
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import structlog

from ..core.errors import CleanupError, FileCreationError
from ..core.models import Workspace

log = structlog.get_logger()


class WorkspaceManager:
    """
    One directory per submission under a shared root:
      <root>/<language>-<uuid4>/
        ├─ <source file>       (main.c, Main.java, ...)
        ├─ <build output>      (main, Main.class, main.jar, ...)
        ├─ input.txt / expectedoutput.txt
        └─ actualoutput.txt / stderr.txt   (submit mode)
    """

    def __init__(self, root: Path):
        # absolute so children started elsewhere still find their files
        self.root = root if root.is_absolute() else root.resolve()

    def create(self, submission_id: str, language: str) -> Workspace:
        path = self.root / f"{language}-{uuid.uuid4()}"
        try:
            # exist_ok=False: a clash means the name was not unique
            path.mkdir(parents=True, exist_ok=False)
        except OSError as e:
            log.error("workspace_create_failed", error=str(e))
            raise FileCreationError("Unable to create the submission workspace.") from e
        log.debug("workspace_created", path=str(path))
        return Workspace(submission_id=submission_id, language=language, path=path)

    def write_source(self, ws: Workspace, filename: str, source: str) -> Path:
        if not filename:
            raise FileCreationError("Refusing to create a source file without a name.")
        target = self.write_file(ws, filename, source)
        ws.source_name = filename
        return target

    def write_file(self, ws: Workspace, filename: str, content: str) -> Path:
        target = ws.path / filename
        try:
            target.write_text(content, encoding="utf-8")
        except (OSError, UnicodeError) as e:
            log.error("workspace_write_failed", file=filename, error=str(e))
            raise FileCreationError(f"Unable to create file '{filename}'.") from e
        return target

    def cleanup(self, ws: Workspace) -> None:
        try:
            shutil.rmtree(ws.path)
        except OSError as e:
            log.error("cleanup_failed", path=str(ws.path), error=str(e))
            raise CleanupError() from e
        log.debug("workspace_removed", path=str(ws.path))

    @contextmanager
    def provision(self, submission_id: str, language: str) -> Iterator[Workspace]:
        """
        Workspace that is removed when the block exits, however it exits.

        A failed removal is stored on ``ws.cleanup_error`` instead of being
        raised, so it never masks what happened inside the block.
        """
        ws = self.create(submission_id, language)
        try:
            yield ws
        finally:
            try:
                self.cleanup(ws)
            except CleanupError as e:
                ws.cleanup_error = e
