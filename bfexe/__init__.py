"""
bfexe: a Brainfuck interpreter with a configurable tape, cell wrapping,
end-of-input policy and step limit.

    from bfexe import Interpreter, BufferSink
    sink = BufferSink()
    Interpreter(sink=sink).execute(",[.,]")
"""

from bfexe.config import EofPolicy, InterpreterConfig, config_from_env, load_config
from bfexe.errors import (
    BrainfuckError,
    CellOverflow,
    ExecutionError,
    InputExhausted,
    IoFailure,
    ParseError,
    StepLimitExceeded,
    TapeOverflow,
    TapeUnderflow,
    UnmatchedCloseBracket,
    UnmatchedOpenBracket,
)
from bfexe.interpreter import ExecutionInfo, Interpreter, MachineState
from bfexe.parser import Instruction, Program, parse, strip_comments
from bfexe.runner import load_source, run_code, run_once
from bfexe.streams import BufferSink, BufferSource, ByteSink, ByteSource, StreamSink, StreamSource

__version__ = "0.2.4"
