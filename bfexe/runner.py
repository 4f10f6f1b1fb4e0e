from typing import Optional, Tuple, Union

from bfexe.config import InterpreterConfig, config_from_env
from bfexe.errors import BrainfuckError
from bfexe.interpreter import ExecutionInfo, Interpreter
from bfexe.streams import BufferSink

DEFAULT_STEP_LIMIT = 5000


def load_source(path: str) -> str:
    """Read a program file. Bytes outside UTF-8 are kept via latin-1."""
    with open(path, 'rb') as f:
        raw = f.read()
    try:
        return raw.decode('utf-8')
    except UnicodeDecodeError:
        return raw.decode('latin-1')


def run_code(code: str, input_data: Union[bytes, str] = b'',
             config: Optional[InterpreterConfig] = None) -> Tuple[bytes, ExecutionInfo]:
    """Execute code against in-memory input and return (output bytes, info)."""
    sink = BufferSink()
    info = Interpreter(config, sink=sink, source=input_data).execute(code)
    return sink.getvalue(), info


def run_once(code: str, x: int, step_limit: Optional[int] = None) -> Optional[int]:
    """Execute BF code with single byte input, return the first output byte.
    Any parse or runtime error gives None. step_limit falls back to BF_STEP_LIMIT,
    then DEFAULT_STEP_LIMIT.
    """
    config = config_from_env()
    if step_limit is None:
        step_limit = config.max_steps if config.max_steps is not None else DEFAULT_STEP_LIMIT
    config = config.replace(max_steps=step_limit, bench_execution=False)
    try:
        out, _ = run_code(code, bytes((x % 256,)), config)
    except BrainfuckError:
        return None
    return out[0] if out else None
