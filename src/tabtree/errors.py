"""Deterministic error model and exit code contract."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum


class ExitCode(IntEnum):
    SUCCESS = 0
    INVALID_ARGS = 2
    CONFIG_ERROR = 3
    RUNTIME_ERROR = 4
    NOT_FOUND = 5
    VALIDATION_ERROR = 6


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    INVALID_PARENT = "invalid_parent"
    NOT_A_CONTAINER = "not_a_container"
    COUNT_MISMATCH = "count_mismatch"
    UNEXPECTED = "unexpected"


_EXIT_CODES = {
    ErrorKind.NOT_FOUND: ExitCode.NOT_FOUND,
    ErrorKind.INVALID_PARENT: ExitCode.VALIDATION_ERROR,
    ErrorKind.NOT_A_CONTAINER: ExitCode.VALIDATION_ERROR,
    ErrorKind.COUNT_MISMATCH: ExitCode.VALIDATION_ERROR,
    ErrorKind.UNEXPECTED: ExitCode.RUNTIME_ERROR,
}


def exit_code_for(kind: ErrorKind) -> ExitCode:
    return _EXIT_CODES[kind]


@dataclass
class TabTreeError(Exception):
    message: str
    kind: ErrorKind = ErrorKind.UNEXPECTED
    hint: str = ""

    @property
    def code(self) -> ExitCode:
        return exit_code_for(self.kind)

    def __str__(self) -> str:
        if self.hint:
            return f"{self.message} Hint: {self.hint}"
        return self.message


def user_facing_error(message: str, *, hint: str = "") -> str:
    if hint:
        return f"Error: {message}. Next step: {hint}"
    return f"Error: {message}."
