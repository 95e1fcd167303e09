"""Checks that exercises compile, run and pass their tests."""

from __future__ import annotations

import enum
import os
from collections.abc import Iterable

from .exercise import (
    CompilationError,
    CompiledExercise,
    ExecutionError,
    Exercise,
    Mode,
)
from .ui import bold, success, warn

_BAR_WIDTH = 60


class VerificationFailed(Exception):
    """An exercise failed to compile, run, pass or be marked done."""

    def __init__(self, exercise: Exercise) -> None:
        super().__init__(f"verification of {exercise} failed")
        self.exercise = exercise


class RunMode(enum.Enum):
    """Whether a passing exercise asks the user to mark it done."""

    INTERACTIVE = "interactive"
    NON_INTERACTIVE = "non-interactive"


def _render_progress(position: int, total: int, percentage: float) -> str:
    if total <= 0:
        bar = "#" * _BAR_WIDTH
    elif position >= total:
        bar = "#" * _BAR_WIDTH
    else:
        filled = _BAR_WIDTH * position // total
        bar = "#" * filled + ">" + "-" * (_BAR_WIDTH - filled - 1)
    return f"Progress: [{bar}] {position}/{total} ({percentage:.1f} %)"


def verify(
    exercises: Iterable[Exercise],
    progress: tuple[int, int],
    verbose: bool,
    success_hints: bool,
) -> None:
    """Check each exercise in turn; raise VerificationFailed at the first failure."""
    num_done, total = progress
    percentage = num_done / total * 100.0 if total else 0.0
    position = num_done
    print(_render_progress(position, total, percentage))

    for exercise in exercises:
        match exercise.mode:
            case Mode.TEST | Mode.BUILD_SCRIPT:
                passed = compile_and_test(
                    exercise, RunMode.INTERACTIVE, verbose, success_hints
                )
            case Mode.COMPILE:
                passed = _compile_and_run_interactively(exercise, success_hints)
            case Mode.CLIPPY:
                passed = _compile_only(exercise, success_hints)
        if not passed:
            raise VerificationFailed(exercise)
        if total:
            percentage += 100.0 / total
        position += 1
        print(_render_progress(position, total, percentage))


def test(exercise: Exercise, verbose: bool) -> None:
    """Compile and run the exercise's tests without prompting."""
    compile_and_test(exercise, RunMode.NON_INTERACTIVE, verbose, False)


def _compile(exercise: Exercise) -> CompiledExercise:
    try:
        return exercise.compile()
    except CompilationError as err:
        warn(f"Compiling of {exercise} failed! Please try again. Here's the output:")
        print(err.output.stderr)
        raise VerificationFailed(exercise) from err


def _compile_only(exercise: Exercise, success_hints: bool) -> bool:
    with _compile(exercise):
        pass
    return prompt_for_completion(exercise, None, success_hints)


def _compile_and_run_interactively(exercise: Exercise, success_hints: bool) -> bool:
    with _compile(exercise) as compiled:
        try:
            output = compiled.run()
        except ExecutionError as err:
            warn(f"Ran {exercise} with errors")
            print(err.output.stdout)
            print(err.output.stderr)
            raise VerificationFailed(exercise) from err
    return prompt_for_completion(exercise, output.stdout, success_hints)


def compile_and_test(
    exercise: Exercise, run_mode: RunMode, verbose: bool, success_hints: bool
) -> bool:
    """Build and run the test harness; show its output when ``verbose``."""
    with _compile(exercise) as compiled:
        try:
            output = compiled.run()
        except ExecutionError as err:
            warn(f"Testing of {exercise} failed! Please try again. Here's the output:")
            print(err.output.stdout)
            raise VerificationFailed(exercise) from err
    if verbose:
        print(output.stdout)
    if run_mode is RunMode.INTERACTIVE:
        return prompt_for_completion(exercise, None, success_hints)
    return True


def prompt_for_completion(
    exercise: Exercise, prompt_output: str | None, success_hints: bool
) -> bool:
    """Return True if the exercise is done, else show where the marker is."""
    state = exercise.state()
    if state.done:
        return True

    match exercise.mode:
        case Mode.COMPILE:
            success(f"Successfully ran {exercise}!")
        case Mode.TEST:
            success(f"Successfully tested {exercise}!")
        case Mode.CLIPPY | Mode.BUILD_SCRIPT:
            success(f"Successfully compiled {exercise}!")

    no_emoji = "NO_EMOJI" in os.environ
    if no_emoji:
        clippy_success_msg = "The code is compiling, and Clippy is happy!"
    else:
        clippy_success_msg = "The code is compiling, and 📎 Clippy 📎 is happy!"

    success_msg = {
        Mode.COMPILE: "The code is compiling!",
        Mode.TEST: "The code is compiling, and the tests pass!",
        Mode.CLIPPY: clippy_success_msg,
        Mode.BUILD_SCRIPT: "Build script works!",
    }[exercise.mode]

    print()
    if no_emoji:
        print(f"~*~ {success_msg} ~*~")
    else:
        print(f"🎉 🎉  {success_msg} 🎉 🎉")
    print()

    if prompt_output is not None:
        print("Output:")
        print(separator())
        print(prompt_output)
        print(separator())
        print()
    if success_hints:
        print("Hints:")
        print(separator())
        print(exercise.hint)
        print(separator())
        print()

    print("You can keep working on this exercise,")
    print(
        f"or jump into the next one by removing the {bold('`I AM NOT DONE`')} comment:"
    )
    print()
    for context_line in state.context:
        line = bold(context_line.line) if context_line.important else context_line.line
        print(f"{bold(f'{context_line.number:>2}')} {bold('|')}  {line}")

    return False


def separator() -> str:
    """The line that frames output and hints."""
    return bold("====================")