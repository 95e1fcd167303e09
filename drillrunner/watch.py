"""Watch mode: re-verify exercises whenever their files change."""

from __future__ import annotations

import enum
import os
import queue
import subprocess
import sys
import threading
from collections.abc import Iterable, Iterator, Sequence
from pathlib import Path
from typing import TextIO

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .exercise import Exercise
from .verify import VerificationFailed, verify

EXERCISES_DIR = "./exercises"
DEBOUNCE_SECONDS = 1.0
POLL_SECONDS = 1.0
CLEAR_SCREEN = "\x1bc"

HELP_TEXT = """Commands available to you in watch mode:
  hint   - prints the current exercise's hint
  clear  - clears the screen
  quit   - quits watch mode
  !<cmd> - executes a command, like `!rustc --explain E0381`
  help   - displays this help message

Watch mode automatically re-evaluates the current exercise
when you edit a file's contents."""


class WatchStatus(enum.Enum):
    """How watch mode ended."""

    FINISHED = "finished"
    UNFINISHED = "unfinished"


class WatchShell:
    """The small command shell that runs alongside watch mode."""

    def __init__(self, hint: str | None = None, input_stream: TextIO | None = None) -> None:
        self.hint = hint
        self.should_quit = threading.Event()
        self._input = input_stream

    def handle(self, line: str) -> None:
        """Carry out one command typed by the user."""
        command = line.strip()
        if command == "hint":
            hint = self.hint
            if hint is not None:
                print(hint)
        elif command == "clear":
            print("\x1b[2J\x1b[1;1H")
        elif command == "quit":
            self.should_quit.set()
            print("Bye!")
        elif command == "help":
            print(HELP_TEXT)
        elif command.startswith("!"):
            self._execute(command[1:])
        else:
            print(f"unknown command: {command}")

    @staticmethod
    def _execute(cmd: str) -> None:
        parts = cmd.split()
        if not parts:
            print("no command provided")
            return
        try:
            subprocess.run(parts, check=False)
        except OSError as err:
            print(f"failed to execute command `{cmd}`: {err}")

    def _read_loop(self) -> None:
        stream = self._input if self._input is not None else sys.stdin
        while True:
            try:
                line = stream.readline()
            except (OSError, ValueError) as err:
                print(f"error reading command: {err}")
                return
            if not line:
                return
            self.handle(line)

    def start(self) -> threading.Thread:
        """Print the greeting and read commands on a background thread."""
        print(
            "Welcome to watch mode! You can type 'help' to get an overview "
            "of the commands you can use here."
        )
        thread = threading.Thread(target=self._read_loop, daemon=True)
        thread.start()
        return thread


def _ends_with(path: Path, suffix: Path) -> bool:
    tail = suffix.parts
    return bool(tail) and path.parts[-len(tail):] == tail


def pending_after_change(
    exercises: Sequence[Exercise], changed_path: str | os.PathLike
) -> Iterator[Exercise]:
    """Yield the changed exercise first, then every other unfinished one."""
    changed = Path(changed_path).resolve()
    changed_exercise = next((e for e in exercises if _ends_with(changed, e.path)), None)
    if changed_exercise is not None:
        yield changed_exercise
    for exercise in exercises:
        if not _ends_with(changed, exercise.path) and not exercise.looks_done():
            yield exercise


class _ChangeCollector(FileSystemEventHandler):
    def __init__(self, events: queue.Queue[str]) -> None:
        super().__init__()
        self._events = events

    def _push(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._events.put(os.fsdecode(event.src_path))

    def on_created(self, event: FileSystemEvent) -> None:
        self._push(event)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._push(event)


def _debounced(events: queue.Queue[str], first: str) -> list[str]:
    changed = {first: None}
    while True:
        try:
            changed[events.get(timeout=DEBOUNCE_SECONDS)] = None
        except queue.Empty:
            return list(changed)


def watch(exercises: Sequence[Exercise], verbose: bool, success_hints: bool) -> WatchStatus:
    """Verify exercises, then re-verify on every change until done or quit."""
    if not Path(EXERCISES_DIR).is_dir():
        raise FileNotFoundError(f"no such directory: {EXERCISES_DIR}")

    events: queue.Queue[str] = queue.Queue()
    observer = Observer()
    observer.schedule(_ChangeCollector(events), EXERCISES_DIR, recursive=True)
    observer.start()
    try:
        print(CLEAR_SCREEN, flush=True)
        try:
            verify(exercises, (0, len(exercises)), verbose, success_hints)
        except VerificationFailed as err:
            shell = WatchShell(hint=err.exercise.hint)
        else:
            return WatchStatus.FINISHED

        shell.start()
        while True:
            try:
                first = events.get(timeout=POLL_SECONDS)
            except queue.Empty:
                first = None
            if first is not None:
                for changed in _debounced(events, first):
                    status = _recheck(exercises, Path(changed), verbose, success_hints, shell)
                    if status is WatchStatus.FINISHED:
                        return status
            if shell.should_quit.is_set():
                return WatchStatus.UNFINISHED
    finally:
        observer.stop()
        observer.join()


def _recheck(
    exercises: Sequence[Exercise],
    changed: Path,
    verbose: bool,
    success_hints: bool,
    shell: WatchShell,
) -> WatchStatus | None:
    if changed.suffix != ".rs" or not changed.exists():
        return None
    pending: Iterable[Exercise] = pending_after_change(exercises, changed)
    num_done = sum(1 for e in exercises if e.looks_done())
    print(CLEAR_SCREEN, flush=True)
    try:
        verify(pending, (num_done, len(exercises)), verbose, success_hints)
    except VerificationFailed as err:
        shell.hint = err.exercise.hint
        return None
    return WatchStatus.FINISHED