"""
Brainfuck Step-by-Step Debugger

Shows the step-by-step execution of a Brainfuck program, displaying the
program with the instruction pointer, a window of the memory tape around the
data pointer and the output produced so far.
"""

from typing import Callable, List, Optional, Set

from bfexe.config import InterpreterConfig
from bfexe.errors import BrainfuckError
from bfexe.interpreter import Interpreter, MachineState
from bfexe.parser import Program
from bfexe.streams import BufferSink

HELP = """Debugger help:
    s [n]            step n instructions (default: 1)
    c                continue until a breakpoint or the end of the program
    b <ip>           toggle a breakpoint at instruction index ip
    m [addr] [n]     dump n cells starting at addr (default: pointer, 16)
    h, ?             show this help
    q                quit
An empty line repeats the last command."""


class BrainfuckDebugger:
    """Interactive debugger driving MachineState.step()."""

    def __init__(self, code, config: Optional[InterpreterConfig] = None, input_data=b'',
                 show_memory_range: int = 10, show_program_range: int = 30,
                 print_fn: Callable[[str], None] = print):
        self.output = BufferSink()
        self.interpreter = Interpreter(config, sink=self.output, source=input_data)
        self.state: MachineState = self.interpreter.prepare(code)
        self.show_memory_range = show_memory_range
        self.show_program_range = show_program_range
        self.breakpoints: Set[int] = set()
        self.error: Optional[BrainfuckError] = None
        self.print = print_fn

    @property
    def program(self) -> Program:
        return self.state.program

    @property
    def halted(self) -> bool:
        return self.state.finished or self.error is not None

    def step(self, count: int = 1) -> int:
        """Execute up to count instructions; returns how many ran."""
        done = 0
        while done < count and not self.halted:
            try:
                self.state.step()
            except BrainfuckError as e:
                self.error = e
                break
            done += 1
        return done

    def cont(self) -> int:
        """Run until a breakpoint, an error or the end of the program."""
        done = self.step()
        while not self.halted and self.state.ip not in self.breakpoints:
            done += self.step()
        return done

    def toggle_breakpoint(self, ip: int) -> bool:
        """Returns True if the breakpoint is now set."""
        if ip in self.breakpoints:
            self.breakpoints.remove(ip)
            return False
        self.breakpoints.add(ip)
        return True

    def render_program(self) -> str:
        code = self.program.code
        ip = self.state.ip
        start = max(0, ip - self.show_program_range // 2)
        end = min(len(code), start + self.show_program_range)
        parts = []
        for i in range(start, end):
            parts.append(f"[{code[i]}]" if i == ip else code[i])
        if ip >= len(code):
            parts.append("[END]")
        return ''.join(parts)

    def render_memory(self) -> List[str]:
        pointer = self.state.pointer
        tape = self.state.tape
        start = max(0, pointer - self.show_memory_range // 2)
        end = min(len(tape), start + self.show_memory_range)
        # Adjust start if we're near the end
        if end - start < self.show_memory_range:
            start = max(0, end - self.show_memory_range)

        vals, ptrs, addrs = [], [], []
        for i in range(start, end):
            vals.append(f"{tape[i]:3d}")
            ptrs.append(" ^ " if i == pointer else "   ")
            addrs.append(f"{i:3d}")
        return [
            "Memory:   [" + "|".join(vals) + "]",
            "Pointer:   " + " ".join(ptrs),
            "Address:   " + " ".join(addrs),
        ]

    def render_state(self) -> str:
        out = self.output.getvalue()
        lines = [
            f"--- Step {self.state.steps} ---",
            f"IP: {self.state.ip} / {len(self.program)}   Ptr: {self.state.pointer}",
            f"Program:  {self.render_program()}",
        ]
        lines.extend(self.render_memory())
        if out:
            lines.append(f"Output:   {out!r} -> {list(out)}")
        else:
            lines.append("Output:   (empty)")
        if self.error is not None:
            lines.append(f"Error:    {self.error}")
        return "\n".join(lines)

    def dump(self, addr: int, count: int) -> List[str]:
        tape = self.state.tape
        return [f"[{i:05}]: {tape[i]}" for i in range(max(0, addr), min(len(tape), addr + count))]

    def handle(self, cmd: str) -> bool:
        """Run one debugger command. Returns False when the session should end."""
        parts = cmd.split()
        if not parts:
            return True
        op, args = parts[0], parts[1:]
        try:
            if op in ('s', 'step'):
                self.step(int(args[0]) if args else 1)
            elif op in ('c', 'continue'):
                self.cont()
                if self.state.ip in self.breakpoints and not self.halted:
                    self.print(f"Breakpoint hit at {self.state.ip}")
            elif op in ('b', 'break'):
                ip = int(args[0])
                state = "set" if self.toggle_breakpoint(ip) else "removed"
                self.print(f"Breakpoint {state} at {ip}")
            elif op in ('m', 'mem'):
                addr = int(args[0]) if args else self.state.pointer
                count = int(args[1]) if len(args) > 1 else 16
                self.print("\n".join(self.dump(addr, count)))
            elif op in ('h', '?', 'help'):
                self.print(HELP)
            elif op in ('q', 'quit'):
                return False
            else:
                self.print(f"Unknown command: {op} (h for help)")
        except (IndexError, ValueError):
            self.print("Bad arguments (h for help)")
        return True

    def run(self, input_fn: Optional[Callable[[str], str]] = None) -> Optional[BrainfuckError]:
        """Interactive loop. Returns the error that stopped the program, if any.
        Commands are read with input() unless input_fn is given.
        """
        input_fn = input_fn or input
        self.print("BF debugger. Commands: (s)tep, (c)ontinue, (b)reak, (m)em, (h)elp, (q)uit")
        last_cmd = 's'
        while True:
            self.print(self.render_state())
            if self.halted:
                break
            try:
                cmd = input_fn("(bf-dbg) ").strip()
            except EOFError:
                break
            if cmd == '':
                cmd = last_cmd
            last_cmd = cmd
            if not self.handle(cmd):
                break

        self.print("Execution finished." if self.state.finished else "Debugger exited.")
        return self.error
