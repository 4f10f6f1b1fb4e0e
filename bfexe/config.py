"""
Interpreter configuration.

A single immutable InterpreterConfig is built before execution starts, either
directly, from a JSON/YAML file (load_config) or from BF_* environment
variables (config_from_env).
"""

import json
import os
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Dict, Mapping, Optional

import yaml

DEFAULT_TAPE_LENGTH = 30000
DEFAULT_GROWTH_CHUNK = 1024

INT_FIELDS = ('tape_length', 'max_steps', 'start_offset', 'growth_chunk', 'eof_value')
BOOL_FIELDS = ('allow_growth', 'wrapping_cells', 'precompute_jumps', 'flush_output', 'bench_execution')


class EofPolicy(Enum):
    """What ',' does once the input source is exhausted."""
    ZERO = 'zero'  # set the cell to 0
    UNCHANGED = 'unchanged'  # leave the cell as it is
    ERROR = 'error'  # raise InputExhausted
    VALUE = 'value'  # store eof_value, the fallback byte


@dataclass(frozen=True)
class InterpreterConfig:
    """Configuration parameters for one interpreter."""
    tape_length: int = DEFAULT_TAPE_LENGTH
    allow_growth: bool = True  # extend the tape past tape_length instead of failing
    wrapping_cells: bool = True  # cell arithmetic wraps mod 256 instead of failing
    max_steps: Optional[int] = None  # cap on dispatched instructions, None is unlimited
    eof_policy: EofPolicy = EofPolicy.ZERO
    start_offset: int = 0
    precompute_jumps: bool = True
    flush_output: bool = True  # flush the sink after every '.'
    growth_chunk: int = DEFAULT_GROWTH_CHUNK
    bench_execution: bool = True
    eof_value: int = 0  # byte stored by EofPolicy.VALUE

    def __post_init__(self):
        for name in INT_FIELDS:
            value = getattr(self, name)
            if value is None and name == 'max_steps':
                continue
            # bool is an int subclass, reject it explicitly
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer, got {value!r}")
        for name in BOOL_FIELDS:
            value = getattr(self, name)
            if not isinstance(value, bool):
                raise ValueError(f"{name} must be true or false, got {value!r}")
        if isinstance(self.eof_policy, str):
            # frozen dataclass: bypass __setattr__ to coerce the enum once
            object.__setattr__(self, 'eof_policy', parse_eof_policy(self.eof_policy))
        if not isinstance(self.eof_policy, EofPolicy):
            raise ValueError(f"eof_policy must be an EofPolicy, got {self.eof_policy!r}")
        if self.tape_length < 1:
            raise ValueError("tape_length must be at least 1")
        if self.growth_chunk < 1:
            raise ValueError("growth_chunk must be at least 1")
        if self.max_steps is not None and self.max_steps < 0:
            raise ValueError("max_steps must be non-negative")
        if not 0 <= self.start_offset < self.tape_length:
            raise ValueError(f"start_offset must be within the tape (0..{self.tape_length - 1})")
        if not 0 <= self.eof_value <= 255:
            raise ValueError("eof_value must be a byte (0..255)")

    def replace(self, **changes) -> 'InterpreterConfig':
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data['eof_policy'] = self.eof_policy.value
        return data


def parse_eof_policy(value: str) -> EofPolicy:
    try:
        return EofPolicy(value.strip().lower())
    except ValueError:
        choices = [p.value for p in EofPolicy]
        raise ValueError(f"Unknown eof policy: '{value}'. Available policies: {choices}") from None


def config_from_mapping(data: Mapping[str, Any], base: Optional[InterpreterConfig] = None) -> InterpreterConfig:
    """Overlay a plain mapping (e.g. parsed JSON/YAML) on base."""
    known = {f.name for f in fields(InterpreterConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown interpreter options: {unknown}")
    return replace(base or InterpreterConfig(), **dict(data))


def load_config(path: str, base: Optional[InterpreterConfig] = None) -> InterpreterConfig:
    """Load a config file. YAML for .yml/.yaml, JSON otherwise.

    Options may sit at the top level or under an 'interpreter' key.
    """
    with open(path, 'r') as f:
        try:
            if path.endswith(('.yml', '.yaml')):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ValueError(f"Config file {path} is not valid: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    if 'interpreter' in data:
        data = data['interpreter'] or {}
    return config_from_mapping(data, base)


def _env_bool(value: str) -> bool:
    v = value.strip().lower()
    if v in ('1', 'true', 'yes', 'on'):
        return True
    if v in ('0', 'false', 'no', 'off'):
        return False
    raise ValueError(f"Expected a boolean, got '{value}'")


# environment variable -> (config field, converter)
ENV_VARS = {
    'BF_TAPE_LENGTH': ('tape_length', int),
    'BF_ALLOW_GROWTH': ('allow_growth', _env_bool),
    'BF_WRAPPING_CELLS': ('wrapping_cells', _env_bool),
    'BF_STEP_LIMIT': ('max_steps', int),
    'BF_EOF_POLICY': ('eof_policy', parse_eof_policy),
    'BF_START_OFFSET': ('start_offset', int),
    'BF_FLUSH_OUTPUT': ('flush_output', _env_bool),
    'BF_EOF_VALUE': ('eof_value', int),
}


def config_from_env(environ: Optional[Mapping[str, str]] = None,
                    base: Optional[InterpreterConfig] = None) -> InterpreterConfig:
    """Build a config from BF_* environment variables, defaulting to os.environ."""
    environ = os.environ if environ is None else environ
    changes: Dict[str, Any] = {}
    for var, (name, convert) in ENV_VARS.items():
        raw = environ.get(var)
        if raw is None or raw == '':
            continue
        try:
            changes[name] = convert(raw)
        except ValueError as e:
            raise ValueError(f"Invalid value for {var}: {e}") from e
    return replace(base or InterpreterConfig(), **changes)
