"""Runs or resets a single exercise."""

from __future__ import annotations

import subprocess

from .exercise import CompilationError, ExecutionError, Exercise, Mode
from .ui import success, warn
from .verify import VerificationFailed, test


class RunFailed(Exception):
    """Running or resetting an exercise did not succeed."""

    def __init__(self, exercise: Exercise) -> None:
        super().__init__(f"running {exercise} failed")
        self.exercise = exercise


def run(exercise: Exercise, verbose: bool) -> None:
    """Compile and run the exercise, or its tests; raise RunFailed on failure."""
    match exercise.mode:
        case Mode.TEST | Mode.BUILD_SCRIPT:
            try:
                test(exercise, verbose)
            except VerificationFailed as err:
                raise RunFailed(exercise) from err
        case Mode.COMPILE | Mode.CLIPPY:
            compile_and_run(exercise)


def reset(exercise: Exercise) -> None:
    """Undo changes to the exercise with ``git stash``."""
    try:
        subprocess.Popen(["git", "stash", "--", str(exercise.path)])
    except OSError as err:
        raise RunFailed(exercise) from err


def compile_and_run(exercise: Exercise) -> None:
    """Compile the exercise as a binary and show what it prints."""
    try:
        compiled = exercise.compile()
    except CompilationError as err:
        warn(f"Compilation of {exercise} failed!, Compiler error message:\n")
        print(err.output.stderr)
        raise RunFailed(exercise) from err

    with compiled:
        try:
            output = compiled.run()
        except ExecutionError as err:
            print(err.output.stdout)
            print(err.output.stderr)
            warn(f"Ran {exercise} with errors")
            raise RunFailed(exercise) from err

    print(output.stdout)
    success(f"Successfully ran {exercise}")