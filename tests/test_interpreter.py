"""Tests for the execution engine."""

import io

import numpy as np
import pytest

from bfexe.config import EofPolicy, InterpreterConfig
from bfexe.errors import (
    CellOverflow,
    InputExhausted,
    IoFailure,
    StepLimitExceeded,
    TapeOverflow,
    TapeUnderflow,
    UnmatchedOpenBracket,
)
from bfexe.interpreter import Interpreter, scan_backward, scan_forward
from bfexe.parser import parse
from bfexe.streams import BufferSink, BufferSource, StreamSink, StreamSource
from tests.programs import HELLO_WORLD, HELLO_WORLD_COMMA

SIERPINSKI = """
++++++++[>+>++++<<-]>++>>+<[-[>>+<<-]+>>]>+[
    -<<<[
        ->[+[-]+>++>>>-<<]<[<]>>++++++[<<+++++>>-]+<<++.[-]<<
    ]>.>+[>>]>+
]"""


def run(code, input_data=b'', **config):
    sink = BufferSink()
    interp = Interpreter(InterpreterConfig(**config), sink=sink, source=BufferSource(input_data))
    info = interp.execute(code)
    return sink.getvalue(), info


class TestPrograms:
    """Whole programs produce the expected output."""

    def test_hello_world(self) -> None:
        out, _ = run(HELLO_WORLD)
        assert out == b"Hello World!\n"

    def test_hello_world_original(self) -> None:
        out, _ = run(HELLO_WORLD_COMMA)
        assert out == b"Hello, World!"

    def test_cat(self) -> None:
        out, _ = run(",[.,]", b"abc")
        assert out == b"abc"

    def test_sierpinski(self) -> None:
        out, info = run(SIERPINSKI)
        assert b"*" in out
        assert info.instructions > 0

    def test_empty_program(self) -> None:
        out, info = run("")
        assert out == b""
        assert info.instructions == 0
        assert info.pointer == 0

    def test_doubling(self) -> None:
        out, _ = run(",[->++<]>.", bytes([21]))
        assert out == bytes([42])

    def test_accepts_parsed_program(self) -> None:
        sink = BufferSink()
        Interpreter(sink=sink, source=b'').execute(parse("+++++++++[>++++++++<-]>."))
        assert sink.getvalue() == b"H"

    def test_parse_error_before_execution(self) -> None:
        sink = BufferSink()
        with pytest.raises(UnmatchedOpenBracket):
            Interpreter(sink=sink, source=b'').execute("+.[")
        assert sink.getvalue() == b""


class TestCellArithmetic:
    """Cells wrap mod 256 by default."""

    def test_increment_256_times_is_identity(self) -> None:
        _, info = run("+++" + "+" * 256)
        assert info.cells[0] == 3

    def test_decrement_from_zero(self) -> None:
        _, info = run("-")
        assert info.cells[0] == 255

    def test_increment_from_255(self) -> None:
        _, info = run("-+")
        assert info.cells[0] == 0

    def test_no_wrap_decrement_fails(self) -> None:
        with pytest.raises(CellOverflow) as exc:
            run("-", wrapping_cells=False)
        assert exc.value.value == -1

    def test_no_wrap_increment_fails_at_256(self) -> None:
        interp = Interpreter(InterpreterConfig(wrapping_cells=False), sink=BufferSink(), source=b'')
        with pytest.raises(CellOverflow):
            interp.execute("+" * 256)
        assert interp.last_state.current_cell == 255
        assert interp.last_state.steps == 256

    def test_cells_are_uint8(self) -> None:
        _, info = run("+>++")
        assert info.cells.dtype == np.uint8


class TestLoops:
    """'[' and ']' jump to just after their partner."""

    def test_zero_cell_skips_body(self) -> None:
        out, info = run("[.+]")
        assert out == b""
        assert info.cells[0] == 0
        assert info.instructions == 1

    def test_clear_loop(self) -> None:
        _, info = run("+++++[-]")
        assert info.cells[0] == 0

    def test_nested_loops(self) -> None:
        # 3 * 4 = 12 into cell 2
        _, info = run("+++[>++++[>+<-]<-]")
        assert info.cells[2] == 12

    def test_runtime_scan_matches_table(self) -> None:
        out_table, info_table = run(HELLO_WORLD)
        out_scan, info_scan = run(HELLO_WORLD, precompute_jumps=False)
        assert out_table == out_scan
        assert info_table.instructions == info_scan.instructions

    def test_scan_helpers(self) -> None:
        program = parse("[[]+[]]")
        assert scan_forward(program, 0) == 6
        assert scan_forward(program, 1) == 2
        assert scan_backward(program, 6) == 0
        assert scan_backward(program, 5) == 4


class TestTape:
    """Pointer bounds and tape growth."""

    def test_move_left_at_origin(self) -> None:
        with pytest.raises(TapeUnderflow) as exc:
            run("<")
        assert exc.value.ip == 0
        assert exc.value.pointer == 0

    def test_move_left_after_comments(self) -> None:
        with pytest.raises(TapeUnderflow):
            run("comment < more comment")

    def test_fixed_tape_overflow(self) -> None:
        interp = Interpreter(InterpreterConfig(tape_length=3, allow_growth=False), sink=BufferSink(), source=b'')
        with pytest.raises(TapeOverflow) as exc:
            interp.execute(">>>")
        assert exc.value.tape_length == 3
        assert interp.last_state.pointer == 2

    def test_fixed_tape_within_bounds(self) -> None:
        _, info = run(">>+", tape_length=3, allow_growth=False)
        assert info.pointer == 2
        assert info.mem_size == 3

    def test_growth(self) -> None:
        _, info = run(">>>+", tape_length=2, growth_chunk=4)
        assert info.mem_size == 6
        assert info.pointer == 3
        assert info.cells.tolist() == [0, 0, 0, 1, 0, 0]

    def test_start_offset(self) -> None:
        _, info = run("<+", start_offset=5)
        assert info.pointer == 4
        assert info.cells[4] == 1

    def test_partial_tape_kept_after_failure(self) -> None:
        interp = Interpreter(sink=BufferSink(), source=b'')
        with pytest.raises(TapeUnderflow):
            interp.execute("+++>++<<")
        state = interp.last_state
        assert state.tape[0] == 3
        assert state.tape[1] == 2


class TestInput:
    """',' reads bytes and follows the EOF policy."""

    def test_reads_bytes_in_order(self) -> None:
        _, info = run(",>,>,", b"xyz")
        assert info.cells[:3].tolist() == [ord("x"), ord("y"), ord("z")]

    def test_eof_zero(self) -> None:
        _, info = run("+++,", b"", eof_policy=EofPolicy.ZERO)
        assert info.cells[0] == 0

    def test_eof_zero_is_default(self) -> None:
        out, _ = run(",,.", b"A")
        assert out == b"\x00"

    def test_eof_unchanged(self) -> None:
        out, _ = run(",,.", b"A", eof_policy=EofPolicy.UNCHANGED)
        assert out == b"A"

    def test_eof_error(self) -> None:
        with pytest.raises(InputExhausted) as exc:
            run(",,", b"A", eof_policy=EofPolicy.ERROR)
        assert exc.value.ip == 1

    def test_eof_value(self) -> None:
        out, _ = run(",.", b"", eof_policy=EofPolicy.VALUE, eof_value=10)
        assert out == b"\n"

    def test_eof_value_ignored_by_zero_policy(self) -> None:
        out, _ = run(",.", b"", eof_policy=EofPolicy.ZERO, eof_value=10)
        assert out == b"\x00"

    def test_input_data_replayed_per_run(self) -> None:
        sink = BufferSink()
        interp = Interpreter(sink=sink, source=b"A")
        interp.execute(",.")
        interp.execute(",.")
        assert sink.getvalue() == b"AA"

    def test_shared_source_not_replayed(self) -> None:
        sink = BufferSink()
        interp = Interpreter(sink=sink, source=BufferSource(b"AB"))
        interp.execute(",.")
        interp.execute(",.")
        assert sink.getvalue() == b"AB"

    def test_stream_source(self) -> None:
        sink = BufferSink()
        Interpreter(sink=sink, source=StreamSource(io.BytesIO(b"hi"))).execute(",.,.")
        assert sink.getvalue() == b"hi"

    def test_closed_source(self) -> None:
        stream = io.BytesIO(b"x")
        stream.close()
        interp = Interpreter(sink=BufferSink(), source=StreamSource(stream))
        with pytest.raises(IoFailure, match="input source"):
            interp.execute(",")


class TestOutput:
    """'.' writes one byte per instruction."""

    def test_stream_sink(self) -> None:
        stream = io.BytesIO()
        info = Interpreter(sink=StreamSink(stream), source=b'').execute("+" * 65 + "..")
        assert stream.getvalue() == b"AA"
        assert info.output_bytes == 2

    def test_closed_sink(self) -> None:
        stream = io.BytesIO()
        stream.close()
        interp = Interpreter(sink=stream, source=b'')
        with pytest.raises(IoFailure, match="output sink") as exc:
            interp.execute("+.")
        assert exc.value.ip == 1
        assert isinstance(exc.value.__cause__, ValueError)

    def test_output_before_failure_stays(self) -> None:
        sink = BufferSink()
        with pytest.raises(TapeUnderflow):
            Interpreter(sink=sink, source=b'').execute("+.<")
        assert sink.getvalue() == b"\x01"

    def test_no_flush_mode(self) -> None:
        out, _ = run("+++.", flush_output=False)
        assert out == b"\x03"


class TestStepLimit:
    """max_steps caps dispatched instructions exactly."""

    @pytest.mark.parametrize("limit", [1, 2, 3, 10, 257])
    def test_infinite_loop_stops_after_exactly_n(self, limit: int) -> None:
        interp = Interpreter(InterpreterConfig(max_steps=limit), sink=BufferSink(), source=b'')
        with pytest.raises(StepLimitExceeded) as exc:
            interp.execute("+[]")
        assert exc.value.limit == limit
        assert interp.last_state.steps == limit

    def test_program_finishing_at_limit_succeeds(self) -> None:
        _, info = run("+++", max_steps=3)
        assert info.instructions == 3

    def test_program_one_over_limit_fails(self) -> None:
        with pytest.raises(StepLimitExceeded):
            run("+++", max_steps=2)

    def test_zero_limit(self) -> None:
        _, info = run("", max_steps=0)
        assert info.instructions == 0
        with pytest.raises(StepLimitExceeded):
            run("+", max_steps=0)

    def test_no_limit_by_default(self) -> None:
        _, info = run("+" * 10000)
        assert info.instructions == 10000


class TestExecutionInfo:
    """execute() reports the final state."""

    def test_fields(self) -> None:
        _, info = run("ab>+.", tape_length=10)
        assert info.code_len == 3
        assert info.instructions == 3
        assert info.pointer == 1
        assert info.mem_size == 10
        assert info.output_bytes == 1
        assert info.time is not None and info.time >= 0

    def test_bench_disabled(self) -> None:
        _, info = run("+", bench_execution=False)
        assert info.time is None

    def test_cells_are_a_copy(self) -> None:
        interp = Interpreter(sink=BufferSink(), source=b'')
        info = interp.execute("+")
        info.cells[0] = 99
        assert interp.last_state.tape[0] == 1

    def test_fresh_state_per_execution(self) -> None:
        interp = Interpreter(sink=BufferSink(), source=b'')
        first = interp.execute("+++>")
        second = interp.execute("+")
        assert first.cells[0] == 3
        assert second.cells[0] == 1
        assert second.pointer == 0


class TestStepping:
    """MachineState.step executes one instruction at a time."""

    def test_step_by_step(self) -> None:
        interp = Interpreter(sink=BufferSink(), source=b'')
        state = interp.prepare("+>+")
        state.step()
        assert (state.ip, state.pointer, state.tape[0]) == (1, 0, 1)
        state.step()
        assert (state.ip, state.pointer) == (2, 1)
        state.step()
        assert state.finished
        assert state.steps == 3
