"""
Brainfuck parser and bracket validator.

Brainfuck has only 8 commands:
    >   Move the pointer to the right
    <   Move the pointer to the left
    +   Increment the memory cell at the pointer
    -   Decrement the memory cell at the pointer
    .   Output the byte in the cell at the pointer
    ,   Input a byte and store it in the cell at the pointer
    [   Jump past the matching ] if the cell at the pointer is 0
    ]   Jump back to the matching [ if the cell at the pointer is nonzero

All other characters are treated as comments and ignored.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple, Union

from bfexe.errors import ParseError, UnmatchedCloseBracket, UnmatchedOpenBracket

logger = logging.getLogger(__name__)

COMMANDS = '><+-.,[]'

# Marks a non-bracket slot in the jump table
NO_JUMP = -1


class Instruction(Enum):
    MOVE_RIGHT = '>'
    MOVE_LEFT = '<'
    INCREMENT = '+'
    DECREMENT = '-'
    OUTPUT = '.'
    INPUT = ','
    JUMP_IF_ZERO = '['
    JUMP_IF_NONZERO = ']'

    def __str__(self):
        return self.value


@dataclass(frozen=True)
class Program:
    """A validated instruction sequence.

    positions[i] is the source offset of instructions[i]. jump_table[i] holds the
    index of the bracket matching instruction i (NO_JUMP for non-brackets), or
    the whole table is None when it was not precomputed.
    """
    instructions: Tuple[Instruction, ...]
    positions: Tuple[int, ...]
    jump_table: Optional[Tuple[int, ...]] = None

    def __len__(self) -> int:
        return len(self.instructions)

    @property
    def code(self) -> str:
        """The program text with comments removed."""
        return ''.join(i.value for i in self.instructions)

    def with_jump_table(self) -> 'Program':
        if self.jump_table is not None:
            return self
        return Program(self.instructions, self.positions, build_jump_table(self.instructions))


def _decode(source: Union[str, bytes]) -> str:
    if isinstance(source, (bytes, bytearray)):
        # latin-1 keeps one character per byte so offsets stay byte offsets
        return bytes(source).decode('latin-1')
    return source


def _line_col(text: str, position: int) -> Tuple[int, int]:
    line = text.count('\n', 0, position) + 1
    column = position - (text.rfind('\n', 0, position) + 1) + 1
    return line, column


def _error(cls, text: str, position: int) -> ParseError:
    line, column = _line_col(text, position)
    return cls(position, line, column)


def strip_comments(source: Union[str, bytes]) -> str:
    """Keep only valid BF commands, in order."""
    return ''.join(c for c in _decode(source) if c in COMMANDS)


def build_jump_table(instructions) -> Tuple[int, ...]:
    """Build a table mapping bracket positions for efficient jumping.

    instructions must already be balanced.
    """
    table: List[int] = [NO_JUMP] * len(instructions)
    stack: List[int] = []

    for i, ins in enumerate(instructions):
        if ins is Instruction.JUMP_IF_ZERO:
            stack.append(i)
        elif ins is Instruction.JUMP_IF_NONZERO:
            start = stack.pop()
            table[start] = i
            table[i] = start

    return tuple(table)


def parse(source: Union[str, bytes], precompute_jumps: bool = True) -> Program:
    """Parse source text into a Program, validating bracket nesting.

    Raises UnmatchedCloseBracket at the first ']' with no pending '[', or
    UnmatchedOpenBracket at the earliest '[' still open at the end.
    """
    text = _decode(source)
    instructions: List[Instruction] = []
    positions: List[int] = []
    table: List[int] = []
    # (instruction index, source offset) of every pending '['
    stack: List[Tuple[int, int]] = []

    for offset, char in enumerate(text):
        if char not in COMMANDS:
            continue
        ins = Instruction(char)
        index = len(instructions)
        instructions.append(ins)
        positions.append(offset)
        table.append(NO_JUMP)

        if ins is Instruction.JUMP_IF_ZERO:
            stack.append((index, offset))
        elif ins is Instruction.JUMP_IF_NONZERO:
            if not stack:
                raise _error(UnmatchedCloseBracket, text, offset)
            start, _ = stack.pop()
            table[start] = index
            table[index] = start

    if stack:
        raise _error(UnmatchedOpenBracket, text, stack[0][1])

    logger.debug("parsed %d instructions from %d characters", len(instructions), len(text))
    return Program(
        instructions=tuple(instructions),
        positions=tuple(positions),
        jump_table=tuple(table) if precompute_jumps else None,
    )
