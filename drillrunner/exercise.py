"""Exercise descriptions, compilation and completion state."""

from __future__ import annotations

import contextlib
import enum
import os
import re
import subprocess
import threading
import tomllib
from dataclasses import dataclass
from pathlib import Path

RUSTC_COLOR_ARGS = ("--color", "always")
RUSTC_EDITION_ARGS = ("--edition", "2021")
I_AM_DONE_REGEX = re.compile(r"^\s*///?\s*I\s+AM\s+NOT\s+DONE", re.MULTILINE)
CONTEXT = 2
CLIPPY_CARGO_TOML_PATH = "./exercises/clippy/Cargo.toml"
BUILD_SCRIPT_CARGO_TOML_PATH = "./exercises/tests/Cargo.toml"


def temp_file() -> str:
    """Return a temporary binary name unique to this process and thread."""
    return f"./temp_{os.getpid()}_{threading.get_ident()}"


def clean() -> None:
    """Remove the temporary binary, if there is one."""
    with contextlib.suppress(OSError):
        os.remove(temp_file())


class Mode(enum.Enum):
    """How an exercise is checked."""

    COMPILE = "compile"
    TEST = "test"
    CLIPPY = "clippy"
    BUILD_SCRIPT = "buildscript"


@dataclass(frozen=True)
class ContextLine:
    """A source line shown around the pending marker."""

    line: str
    number: int
    important: bool


@dataclass(frozen=True)
class State:
    """Completion state: done when there is no pending context."""

    context: tuple[ContextLine, ...] = ()

    @property
    def done(self) -> bool:
        return not self.context


@dataclass
class ExerciseOutput:
    """Captured output of a command."""

    stdout: str = ""
    stderr: str = ""


class CompilationError(Exception):
    """The exercise did not compile."""

    def __init__(self, output: ExerciseOutput) -> None:
        super().__init__("compilation failed")
        self.output = output


class ExecutionError(Exception):
    """The compiled exercise exited with a failure."""

    def __init__(self, output: ExerciseOutput) -> None:
        super().__init__("execution failed")
        self.output = output


class CompiledExercise:
    """A successfully compiled exercise; closing it removes the binary."""

    def __init__(self, exercise: Exercise) -> None:
        self.exercise = exercise
        self._closed = False

    def run(self) -> ExerciseOutput:
        """Run the binary; raise ExecutionError if it fails."""
        return self.exercise._run()

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            clean()

    def __enter__(self) -> CompiledExercise:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def _execute(args: list[str], failure: str) -> subprocess.CompletedProcess:
    try:
        return subprocess.run(args, capture_output=True, check=False)
    except OSError as err:
        raise RuntimeError(failure) from err


def _output(result: subprocess.CompletedProcess) -> ExerciseOutput:
    return ExerciseOutput(
        stdout=(result.stdout or b"").decode("utf-8", errors="replace"),
        stderr=(result.stderr or b"").decode("utf-8", errors="replace"),
    )


def _lines(text: str) -> list[str]:
    parts = text.split("\n")
    if parts[-1] == "":
        parts.pop()
    return [part[:-1] if part.endswith("\r") else part for part in parts]


@dataclass
class Exercise:
    """One exercise as listed in the exercise list."""

    name: str
    path: Path
    mode: Mode
    hint: str = ""

    def __post_init__(self) -> None:
        self.path = Path(self.path)
        self.mode = Mode(self.mode)

    def __str__(self) -> str:
        return str(self.path)

    def _manifest(self) -> str:
        name = self.name
        return (
            f'[package]\nname = "{name}"\nversion = "0.0.1"\nedition = "2021"\n'
            f'[[bin]]\nname = "{name}"\npath = "{name}.rs"'
        )

    def _write_manifest(self, path: str) -> None:
        if "NO_EMOJI" in os.environ:
            message = "Failed to write Clippy Cargo.toml file."
        else:
            message = "Failed to write 📎 Clippy 📎 Cargo.toml file."
        try:
            Path(path).write_text(self._manifest(), encoding="utf-8")
        except OSError as err:
            raise RuntimeError(message) from err

    def compile(self) -> CompiledExercise:
        """Compile the exercise; raise CompilationError on failure."""
        source = str(self.path)
        target = temp_file()
        failure = "Failed to run 'compile' command."
        rustc = ["rustc", source, "-o", target, *RUSTC_COLOR_ARGS, *RUSTC_EDITION_ARGS]
        match self.mode:
            case Mode.COMPILE:
                result = _execute(rustc, failure)
            case Mode.TEST:
                result = _execute(
                    ["rustc", "--test", source, "-o", target,
                     *RUSTC_COLOR_ARGS, *RUSTC_EDITION_ARGS],
                    failure,
                )
            case Mode.CLIPPY:
                self._write_manifest(CLIPPY_CARGO_TOML_PATH)
                # Build a binary too so the exercise can be run afterwards.
                _execute(rustc, "Failed to compile!")
                _execute(
                    ["cargo", "clean", "--manifest-path", CLIPPY_CARGO_TOML_PATH,
                     *RUSTC_COLOR_ARGS],
                    "Failed to run 'cargo clean'",
                )
                result = _execute(
                    ["cargo", "clippy", "--manifest-path", CLIPPY_CARGO_TOML_PATH,
                     *RUSTC_COLOR_ARGS, "--", "-D", "warnings", "-D", "clippy::float_cmp"],
                    failure,
                )
            case Mode.BUILD_SCRIPT:
                self._write_manifest(BUILD_SCRIPT_CARGO_TOML_PATH)
                result = _execute(
                    ["cargo", "test", "--manifest-path", BUILD_SCRIPT_CARGO_TOML_PATH],
                    failure,
                )
        if result.returncode == 0:
            return CompiledExercise(self)
        clean()
        raise CompilationError(_output(result))

    def _run(self) -> ExerciseOutput:
        match self.mode:
            case Mode.TEST:
                arg = "--show-output"
            case Mode.BUILD_SCRIPT:
                return ExerciseOutput()
            case _:
                arg = ""
        result = _execute([temp_file(), arg], "Failed to run 'run' command")
        output = _output(result)
        if result.returncode == 0:
            return output
        raise ExecutionError(output)

    def state(self) -> State:
        """Return Done, or the lines around the pending marker."""
        source = self.path.read_text(encoding="utf-8")
        if not I_AM_DONE_REGEX.search(source):
            return State()
        lines = _lines(source)
        matched = next(
            (i for i, line in enumerate(lines) if I_AM_DONE_REGEX.search(line)), None
        )
        if matched is None:
            raise RuntimeError("pending marker found but on no single line")
        first = max(0, matched - CONTEXT)
        last = matched + CONTEXT
        return State(
            tuple(
                ContextLine(line=line, number=i + 1, important=i == matched)
                for i, line in enumerate(lines[first:last + 1], start=first)
            )
        )

    def looks_done(self) -> bool:
        """Whether the pending marker has been removed."""
        return self.state().done


_REQUIRED_KEYS = ("name", "path", "mode", "hint")


def _exercise_from_table(table: dict) -> Exercise:
    missing = [key for key in _REQUIRED_KEYS if key not in table]
    if missing:
        raise ValueError(f"exercise entry is missing {', '.join(missing)}")
    return Exercise(
        name=str(table["name"]),
        path=Path(table["path"]),
        mode=Mode(table["mode"]),
        hint=str(table["hint"]),
    )


def parse_exercises(text: str) -> list[Exercise]:
    """Parse the TOML exercise list."""
    data = tomllib.loads(text)
    if "exercises" not in data:
        raise ValueError("missing 'exercises' list")
    return [_exercise_from_table(table) for table in data["exercises"]]


def load_exercises(path: str | os.PathLike) -> list[Exercise]:
    """Read and parse the exercise list at ``path``."""
    return parse_exercises(Path(path).read_text(encoding="utf-8"))