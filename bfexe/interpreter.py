"""
Brainfuck execution engine.

MachineState holds one run: instruction pointer, data pointer, tape, step
count and the sink/source handles. Interpreter.execute() builds a fresh state
per call, runs it to the end of the program and returns an ExecutionInfo.

Operations:
    >   pointer += 1; grows the tape or raises TapeOverflow past the end
    <   pointer -= 1; raises TapeUnderflow left of cell 0
    +   cell += 1 (mod 256, or CellOverflow when wrapping is disabled)
    -   cell -= 1 (mod 256, or CellOverflow when wrapping is disabled)
    .   write the cell to the sink
    ,   read a byte from the source; end of stream follows the eof policy
    [   if cell == 0 jump to just after the matching ]
    ]   if cell != 0 jump to just after the matching [
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional, Union

import numpy as np

from bfexe.config import EofPolicy, InterpreterConfig
from bfexe.errors import (
    CellOverflow,
    InputExhausted,
    IoFailure,
    StepLimitExceeded,
    TapeOverflow,
    TapeUnderflow,
)
from bfexe.parser import Instruction, Program, parse
from bfexe.streams import ByteSink, ByteSource, as_sink, as_source
from bfexe.tape import Tape

logger = logging.getLogger(__name__)

# Bound once so the dispatch loop compares against locals
MOVE_RIGHT = Instruction.MOVE_RIGHT
MOVE_LEFT = Instruction.MOVE_LEFT
INCREMENT = Instruction.INCREMENT
DECREMENT = Instruction.DECREMENT
OUTPUT = Instruction.OUTPUT
INPUT = Instruction.INPUT
JUMP_IF_ZERO = Instruction.JUMP_IF_ZERO
JUMP_IF_NONZERO = Instruction.JUMP_IF_NONZERO


@dataclass
class ExecutionInfo:
    """Result of a finished run."""
    cells: np.ndarray  # final tape
    mem_size: int
    pointer: int
    code_len: int
    instructions: int  # instructions executed
    output_bytes: int
    time: Optional[float] = None  # seconds, None when benchmarking is off


def scan_forward(program: Program, ip: int) -> int:
    """Find the ']' matching the '[' at ip by counting nesting depth."""
    depth = 1
    instructions = program.instructions
    while depth > 0:
        ip += 1
        ins = instructions[ip]
        if ins is JUMP_IF_ZERO:
            depth += 1
        elif ins is JUMP_IF_NONZERO:
            depth -= 1
    return ip


def scan_backward(program: Program, ip: int) -> int:
    """Find the '[' matching the ']' at ip by counting nesting depth."""
    depth = 1
    instructions = program.instructions
    while depth > 0:
        ip -= 1
        ins = instructions[ip]
        if ins is JUMP_IF_NONZERO:
            depth += 1
        elif ins is JUMP_IF_ZERO:
            depth -= 1
    return ip


class MachineState:
    """Mutable state of a single execution."""

    def __init__(self, program: Program, config: InterpreterConfig, sink: ByteSink, source: ByteSource):
        self.program = program
        self.config = config
        self.sink = sink
        self.source = source
        self.tape = Tape(config.tape_length, growable=config.allow_growth, growth_chunk=config.growth_chunk)
        self.pointer = config.start_offset
        self.ip = 0
        self.steps = 0
        self.output_bytes = 0

    @property
    def finished(self) -> bool:
        return self.ip >= len(self.program)

    @property
    def current_cell(self) -> int:
        return self.tape[self.pointer]

    def _match(self, ip: int) -> int:
        table = self.program.jump_table
        if table is not None:
            return table[ip]
        if self.program.instructions[ip] is JUMP_IF_ZERO:
            return scan_forward(self.program, ip)
        return scan_backward(self.program, ip)

    def _store(self, value: int) -> None:
        if not 0 <= value <= 255:
            if not self.config.wrapping_cells:
                raise CellOverflow(value, self.ip, self.pointer)
            value &= 0xFF
        self.tape[self.pointer] = value

    def _output(self) -> None:
        try:
            self.sink.write_byte(self.tape[self.pointer])
            if self.config.flush_output:
                self.sink.flush()
        except (OSError, ValueError) as e:
            raise IoFailure(f"output sink: {e}", self.ip, self.pointer) from e
        self.output_bytes += 1

    def _input(self) -> None:
        try:
            value = self.source.read_byte()
        except (OSError, ValueError) as e:
            raise IoFailure(f"input source: {e}", self.ip, self.pointer) from e

        if value is None:
            policy = self.config.eof_policy
            if policy is EofPolicy.ERROR:
                raise InputExhausted(self.ip, self.pointer)
            if policy is EofPolicy.UNCHANGED:
                return
            value = self.config.eof_value if policy is EofPolicy.VALUE else 0
        self.tape[self.pointer] = value

    def step(self) -> None:
        """Dispatch the instruction at ip. The caller checks `finished` first."""
        limit = self.config.max_steps
        if limit is not None and self.steps >= limit:
            raise StepLimitExceeded(limit, self.ip, self.pointer)

        ins = self.program.instructions[self.ip]
        self.steps += 1

        if ins is MOVE_RIGHT:
            if self.pointer + 1 >= len(self.tape):
                if not self.tape.growable:
                    raise TapeOverflow(self.ip, self.pointer, len(self.tape))
                self.tape.grow(self.pointer + 2)
            self.pointer += 1

        elif ins is MOVE_LEFT:
            if self.pointer == 0:
                raise TapeUnderflow(self.ip, self.pointer)
            self.pointer -= 1

        elif ins is INCREMENT:
            self._store(self.tape[self.pointer] + 1)

        elif ins is DECREMENT:
            self._store(self.tape[self.pointer] - 1)

        elif ins is OUTPUT:
            self._output()

        elif ins is INPUT:
            self._input()

        elif ins is JUMP_IF_ZERO:
            if self.tape[self.pointer] == 0:
                self.ip = self._match(self.ip)

        elif ins is JUMP_IF_NONZERO:
            if self.tape[self.pointer] != 0:
                self.ip = self._match(self.ip)

        self.ip += 1

    def run(self) -> None:
        while self.ip < len(self.program):
            self.step()


class Interpreter:
    """Runs programs against a config, an output sink and an input source.

    sink defaults to stdout and source to stdin; any ByteSink/ByteSource or
    file object can be passed, and bytes/str are accepted as input data.
    Input data given as bytes/str is replayed from the start on every run;
    streams and sources are shared across runs.
    """

    def __init__(self, config: Optional[InterpreterConfig] = None, sink=None, source=None):
        self.config = config or InterpreterConfig()
        self.sink = as_sink(sink)
        self._input_data = source if isinstance(source, (bytes, bytearray, str)) else None
        self.source = as_source(source)
        self.last_state: Optional[MachineState] = None

    def prepare(self, program: Union[Program, str, bytes]) -> MachineState:
        """Parse if needed and build a fresh MachineState without running it."""
        if not isinstance(program, Program):
            program = parse(program, precompute_jumps=self.config.precompute_jumps)
        elif self.config.precompute_jumps:
            program = program.with_jump_table()
        if self._input_data is not None:
            self.source = as_source(self._input_data)
        state = MachineState(program, self.config, self.sink, self.source)
        self.last_state = state
        return state

    def execute(self, program: Union[Program, str, bytes]) -> ExecutionInfo:
        """Run program to completion.

        Raises ParseError for malformed source and an ExecutionError subclass
        for runtime failures; the partial state stays available as last_state.
        """
        state = self.prepare(program)
        started = time.perf_counter() if self.config.bench_execution else None

        state.run()
        if not self.config.flush_output and state.output_bytes:
            try:
                state.sink.flush()
            except (OSError, ValueError) as e:
                raise IoFailure(f"output sink: {e}", state.ip, state.pointer) from e

        elapsed = time.perf_counter() - started if started is not None else None
        logger.debug("executed %d instructions, %d bytes written", state.steps, state.output_bytes)
        return ExecutionInfo(
            cells=state.tape.snapshot(),
            mem_size=len(state.tape),
            pointer=state.pointer,
            code_len=len(state.program),
            instructions=state.steps,
            output_bytes=state.output_bytes,
            time=elapsed,
        )
