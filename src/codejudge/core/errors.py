from __future__ import annotations

from .models import Status


class JudgeError(Exception):
    """Base error; every subclass knows the status it is reported as."""

    kind = "JudgeError"
    status = Status.INTERNAL_SERVER_ERROR
    default_message = "Something went wrong."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"{self.kind} :: {self.message}"


class InvalidPublicClass(JudgeError):
    kind = "InvalidPublicClass"
    status = Status.INVALID_FILE
    default_message = (
        "The given source code does not declare a valid public class.\n"
        "Expected something like: `public class Main`."
    )


class UnsupportedLanguage(JudgeError):
    kind = "UnsupportedLanguage"
    status = Status.INVALID_FILE
    default_message = "The requested language is not supported."

    def __init__(self, language: str):
        self.language = language
        super().__init__(f"Language '{language}' is not supported.")


class InvalidSubmission(JudgeError):
    kind = "InvalidSubmission"
    status = Status.INVALID_FILE
    default_message = "The submission is missing required fields."


class FileCreationError(JudgeError):
    kind = "FileCreationError"
    default_message = "Unable to create file."


class FileError(JudgeError):
    kind = "FileError"
    status = Status.INVALID_FILE
    default_message = "Something went wrong during File I/O op."


class CleanupError(JudgeError):
    kind = "CleanupError"
    default_message = "An error occurred during cleanup of source code."
