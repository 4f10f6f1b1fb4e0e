"""
Error types raised by the parser and the execution engine.

Parse errors are raised before any instruction runs. Execution errors carry
the instruction pointer and data pointer at the moment of failure; the tape is
left in whatever state it had reached.
"""

from typing import Optional


class BrainfuckError(Exception):
    """Base class for every error raised by bfexe."""


class ParseError(BrainfuckError):
    """Malformed program: the brackets do not pair up."""

    kind = "malformed program"

    def __init__(self, position: int, line: int = 1, column: int = 1):
        self.position = position
        self.line = line
        self.column = column
        super().__init__(f"{self.kind} at position {position} (line {line}, column {column})")


class UnmatchedOpenBracket(ParseError):
    kind = "unmatched '['"


class UnmatchedCloseBracket(ParseError):
    kind = "unmatched ']'"


class ExecutionError(BrainfuckError):
    """A fatal condition reached while running a program."""

    def __init__(self, message: str, ip: int = 0, pointer: int = 0):
        self.ip = ip
        self.pointer = pointer
        super().__init__(f"{message} (ip={ip}, pointer={pointer})")


class TapeUnderflow(ExecutionError):
    def __init__(self, ip: int = 0, pointer: int = 0):
        super().__init__("data pointer moved left of cell 0", ip, pointer)


class TapeOverflow(ExecutionError):
    def __init__(self, ip: int = 0, pointer: int = 0, tape_length: int = 0):
        self.tape_length = tape_length
        super().__init__(f"data pointer moved past the last cell of a fixed tape of {tape_length} cells", ip, pointer)


class CellOverflow(ExecutionError):
    def __init__(self, value: int, ip: int = 0, pointer: int = 0):
        self.value = value
        super().__init__(f"cell value {value} out of range 0..255 with wrapping disabled", ip, pointer)


class IoFailure(ExecutionError):
    def __init__(self, detail: str, ip: int = 0, pointer: int = 0):
        self.detail = detail
        super().__init__(f"I/O error: {detail}", ip, pointer)


class InputExhausted(ExecutionError):
    def __init__(self, ip: int = 0, pointer: int = 0):
        super().__init__("input exhausted", ip, pointer)


class StepLimitExceeded(ExecutionError):
    def __init__(self, limit: Optional[int], ip: int = 0, pointer: int = 0):
        self.limit = limit
        super().__init__(f"step limit of {limit} instructions exceeded", ip, pointer)
