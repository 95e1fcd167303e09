"""Command-line entry point: list, run, verify, watch and grade exercises."""

from __future__ import annotations

import argparse
import json
import os
import subprocess
import sys
import threading
import time
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field
from pathlib import Path

from .exercise import Exercise, load_exercises
from .project import RustAnalyzerProject
from .run import RunFailed, reset, run
from .verify import VerificationFailed, verify
from .watch import WatchStatus, watch

VERSION = "5.5.1"
INFO_FILE = "info.toml"
CHECK_RESULT_PATH = ".github/result/check_result.json"

WELCOME = r"""       welcome to...
     _      _ _ _
  __| |_ __(_) | |  _ __ _   _ _ __  _ __   ___ _ __
 / _` | '__| | | | | '__| | | | '_ \| '_ \ / _ \ '__|
| (_| | |  | | | | | |  | |_| | | | | | | |  __/ |
 \__,_|_|  |_|_|_| |_|   \__,_|_| |_|_| |_|\___|_|"""

DEFAULT_OUT = """Thanks for installing the exercise runner!

Is this your first time? Don't worry, the exercises are made for beginners!
Here's a couple of notes about how the runner operates:

1. The central concept is that you solve exercises. These exercises usually
   have some sort of syntax error in them, which will cause them to fail
   compilation or testing. Sometimes there's a logic error instead of a syntax
   error. No matter what error, it's your job to find it and fix it!
   You'll know when you fixed it because then, the exercise will compile and
   the runner will be able to move on to the next exercise.
2. If you run in watch mode (which we recommend), it'll automatically start
   with the first exercise. Don't get confused by an error message popping up
   as soon as you start! This is part of the exercise that you're supposed to
   solve, so open the exercise file in an editor and start your detective work!
3. If you're stuck on an exercise, there is a helpful hint you can view by
   typing 'hint' (in watch mode), or running the `hint exercise_name` command.
4. If an exercise doesn't make sense to you, feel free to open an issue!
5. If you want to use `rust-analyzer` with exercises, which provides features
   like autocompletion, run the `lsp` command.

Got all that? Great! To get started, run the `watch` command in order to get
the first exercise. Make sure to have your editor open!"""

FINISH_LINE = """+----------------------------------------------------+
|          You made it to the Fe-nish line!          |
+--------------------------  ------------------------+

We hope you enjoyed learning about the various aspects of Rust!
If you noticed any issues, please don't hesitate to report them.
You can also contribute your own exercises to help the greater community!"""


@dataclass
class ExerciseResult:
    """Outcome of grading one exercise."""

    name: str
    result: bool


@dataclass
class ExerciseStatistics:
    """Totals over a grading run."""

    total_exercations: int = 0
    total_succeeds: int = 0
    total_failures: int = 0
    total_time: int = 0


@dataclass
class ExerciseCheckList:
    """The grading report written as JSON."""

    exercises: list[ExerciseResult] = field(default_factory=list)
    user_name: str | None = None
    statistics: ExerciseStatistics = field(default_factory=ExerciseStatistics)

    def to_dict(self) -> dict:
        return {
            "exercises": [asdict(result) for result in self.exercises],
            "user_name": self.user_name,
            "statistics": asdict(self.statistics),
        }


class ExerciseNotFound(LookupError):
    """No exercise matches the requested name."""


class _Parser(argparse.ArgumentParser):
    def error(self, message: str):
        if message.startswith("the following arguments are required"):
            missing = message.split(":", 1)[1].strip()
            message = f"Required positional arguments not provided:\n    {missing}"
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = _Parser(
        prog="drillrunner",
        description="A collection of small exercises to get you used to "
        "writing and reading Rust code",
    )
    parser.add_argument(
        "--nocapture", action="store_true", help="show outputs from the test exercises"
    )
    parser.add_argument(
        "-v", "--version", action="store_true", help="show the executable version"
    )
    commands = parser.add_subparsers(dest="command")

    commands.add_parser("verify", help="verifies all exercises in the recommended order")

    watch_parser = commands.add_parser("watch", help="reruns `verify` when files are edited")
    watch_parser.add_argument(
        "--success-hints", action="store_true", help="show hints on success"
    )

    for name, text in (
        ("run", "runs/tests a single exercise"),
        ("reset", 'resets a single exercise using "git stash -- <filename>"'),
        ("hint", "returns a hint for the given exercise"),
    ):
        sub = commands.add_parser(name, help=text)
        sub.add_argument("name", help="the name of the exercise")

    list_parser = commands.add_parser("list", help="lists the available exercises")
    list_parser.add_argument(
        "-p", "--paths", action="store_true", help="show only the paths of the exercises"
    )
    list_parser.add_argument(
        "-n", "--names", action="store_true", help="show only the names of the exercises"
    )
    list_parser.add_argument(
        "-f",
        "--filter",
        default=None,
        help="a string to match exercise names; comma separated patterns are acceptable",
    )
    list_parser.add_argument(
        "-u", "--unsolved", action="store_true", help="display only exercises not yet solved"
    )
    list_parser.add_argument(
        "-s", "--solved", action="store_true", help="display only exercises that have been solved"
    )

    commands.add_parser("lsp", help="enable rust-analyzer for exercises")
    commands.add_parser("cicvverify", help="grade every exercise and write a JSON report")
    return parser


def find_exercise(name: str, exercises: Sequence[Exercise]) -> Exercise:
    """Find an exercise by name; ``next`` means the first unfinished one."""
    if name == "next":
        for exercise in exercises:
            if not exercise.looks_done():
                return exercise
        raise ExerciseNotFound(
            "🎉 Congratulations! You have done all the exercises!\n"
            "🔚 There are no more exercises to do next!"
        )
    for exercise in exercises:
        if exercise.name == name:
            return exercise
    raise ExerciseNotFound(f"No exercise found for '{name}'!")


def list_exercises(
    exercises: Sequence[Exercise],
    paths: bool = False,
    names: bool = False,
    filter: str | None = None,
    unsolved: bool = False,
    solved: bool = False,
) -> int:
    """Print the selected exercises and the progress line; return how many are done."""
    if not paths and not names:
        print(f"{'Name':<17}\t{'Path':<46}\t{'Status':<7}")
    patterns = [p for p in (filter or "").lower().split(",") if p.strip()]
    done_count = 0
    for exercise in exercises:
        fname = str(exercise.path)
        done = exercise.looks_done()
        if done:
            done_count += 1
        status = "Done" if done else "Pending"
        matches = any(p in exercise.name or p in fname for p in patterns)
        wanted = (done and solved) or (not done and unsolved) or (not solved and not unsolved)
        if wanted and (matches or filter is None):
            if paths:
                print(fname)
            elif names:
                print(exercise.name)
            else:
                print(f"{exercise.name:<17}\t{fname:<46}\t{status:<7}")
    total = len(exercises)
    percentage = done_count / total * 100.0 if total else float("nan")
    print(
        f"Progress: You completed {done_count} / {total} exercises ({percentage:.1f} %)."
    )
    return done_count


def cicv_verify(
    exercises: Sequence[Exercise], output_path: str | os.PathLike = CHECK_RESULT_PATH
) -> ExerciseCheckList:
    """Run every exercise concurrently and write a JSON grading report."""
    started = int(time.time())
    total = len(exercises)
    check_list = ExerciseCheckList(statistics=ExerciseStatistics(total_exercations=total))
    lock = threading.Lock()

    def check(exercise: Exercise, task_start: int) -> None:
        try:
            run(exercise, True)
            passed = True
        except RunFailed:
            passed = False
        with lock:
            if passed:
                check_list.statistics.total_succeeds += 1
                print(f"{exercise.name} passed")
            else:
                check_list.statistics.total_failures += 1
                print(f"{exercise.name} failed")
            print(f"Total exercises: {total}")
            print(f"Exercises passed so far: {check_list.statistics.total_succeeds}")
            print(f"Time spent so far: {int(time.time()) - task_start} s")
            check_list.exercises.append(ExerciseResult(name=exercise.name, result=passed))

    with ThreadPoolExecutor() as pool:
        futures = [pool.submit(check, e, int(time.time())) for e in exercises]
        for future in futures:
            future.result()

    total_time = int(time.time()) - started
    print(f"=============== Grading finished, total time: {total_time} s; ===============")
    check_list.statistics.total_time = total_time
    Path(output_path).write_text(
        json.dumps(check_list.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8"
    )
    return check_list


def rustc_exists() -> bool:
    """Whether ``rustc --version`` runs successfully."""
    try:
        result = subprocess.run(
            ["rustc", "--version"], stdout=subprocess.DEVNULL, check=False
        )
    except OSError:
        return False
    return result.returncode == 0


def _lsp() -> int:
    project = RustAnalyzerProject()
    try:
        project.get_sysroot_src()
    except OSError:
        print("Couldn't find toolchain path, do you have `rustc` installed?")
        return 1
    project.exercises_to_json()
    if not project.crates:
        print("Failed find any exercises, make sure you're in the exercises folder")
        return 0
    try:
        project.write_to_disk()
    except OSError:
        print("Failed to write rust-project.json to disk for rust-analyzer")
        return 0
    print("Successfully generated rust-project.json")
    print("rust-analyzer will now parse exercises, restart your language server or editor")
    return 0


def _watch(exercises: Sequence[Exercise], verbose: bool, success_hints: bool) -> int:
    try:
        status = watch(exercises, verbose, success_hints)
    except OSError as err:
        print(f"Error: Could not watch your progress. Error message was {err!r}.")
        print(
            "Most likely you've run out of disk space or your 'inotify limit' "
            "has been reached."
        )
        return 1
    if status is WatchStatus.FINISHED:
        emoji = "★" if "NO_EMOJI" in os.environ else "🎉"
        print(f"{emoji} All exercises completed! {emoji}")
        print(f"\n{FINISH_LINE}\n")
    else:
        print("We hope you're enjoying learning about Rust!")
        print(
            "If you want to continue working on the exercises at a later point, "
            "you can simply run the `watch` command again"
        )
    return 0


def _dispatch(args: argparse.Namespace, exercises: list[Exercise], verbose: bool) -> int:
    match args.command:
        case "list":
            try:
                list_exercises(
                    exercises, args.paths, args.names, args.filter, args.unsolved, args.solved
                )
            except BrokenPipeError:
                return 0
            except OSError:
                return 1
            return 0
        case "run":
            try:
                run(find_exercise(args.name, exercises), verbose)
            except RunFailed:
                return 1
            return 0
        case "reset":
            try:
                reset(find_exercise(args.name, exercises))
            except RunFailed:
                return 1
            return 0
        case "hint":
            print(find_exercise(args.name, exercises).hint)
            return 0
        case "verify":
            try:
                verify(exercises, (0, len(exercises)), verbose, False)
            except VerificationFailed:
                return 1
            return 0
        case "cicvverify":
            cicv_verify(exercises, CHECK_RESULT_PATH)
            return 0
        case "lsp":
            return _lsp()
        case "watch":
            return _watch(exercises, verbose, args.success_hints)
    raise ValueError(f"unknown command: {args.command}")


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line; return the exit status."""
    args = build_parser().parse_args(argv)

    if args.version:
        print(f"v{VERSION}")
        return 0

    if args.command is None:
        print(f"\n{WELCOME}\n")

    if not Path(INFO_FILE).exists():
        print(f"{sys.argv[0]} must be run from the exercises directory")
        print("Try `cd` into the directory that holds info.toml!")
        return 1

    if not rustc_exists():
        print("We cannot find `rustc`.")
        print("Try running `rustc --version` to diagnose your problem.")
        print("For instructions on how to install Rust, check the README.")
        return 1

    exercises = load_exercises(INFO_FILE)
    verbose = args.nocapture

    if args.command is None:
        print(f"{DEFAULT_OUT}\n")
        return 0

    try:
        return _dispatch(args, exercises, verbose)
    except ExerciseNotFound as err:
        print(err)
        return 1