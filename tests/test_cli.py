import json
import subprocess
from pathlib import Path

import pytest

from drillrunner.cli import (
    ExerciseCheckList,
    ExerciseNotFound,
    ExerciseResult,
    ExerciseStatistics,
    build_parser,
    cicv_verify,
    find_exercise,
    list_exercises,
    main,
    rustc_exists,
)
from drillrunner.exercise import Exercise, Mode, load_exercises

SUCCESS = {
    "compSuccess.rs": ("compile", "fn main() {\n}\n"),
    "testSuccess.rs": (
        "test",
        '#[test]\nfn passing() {\n    println!("THIS TEST TOO SHALL PASS");\n'
        "    assert!(true);\n}\n",
    ),
}

FAILURE = {
    "compFailure.rs": ("compile", "fn main() {\n    let\n}\n"),
    "testFailure.rs": ("test", "#[test]\nfn passing() {\n    asset!(true);\n}\n"),
    "testNotPassed.rs": ("test", "#[test]\nfn not_passing() {\n    assert!(false);\n}\n"),
}

STATE = {
    "finished_exercise.rs": ("compile", "// fake_exercise\n\nfn main() {\n\n}\n"),
    "pending_exercise.rs": (
        "compile",
        "// fake_exercise\n\n// I AM NOT DONE\n\nfn main() {\n\n}\n",
    ),
    "pending_test_exercise.rs": ("test", "// I AM NOT DONE\n\n#[test]\nfn it_works() {}\n"),
}


def write_fixture(root: Path, files: dict) -> None:
    entries = []
    for filename, (mode, source) in files.items():
        (root / filename).write_text(source, encoding="utf-8")
        name = filename[:-3]
        hint = "Hello!" if name == "testFailure" else ""
        entries.append(
            f'[[exercises]]\nname = "{name}"\npath = "{filename}"\n'
            f'mode = "{mode}"\nhint = """{hint}"""\n'
        )
    (root / "info.toml").write_text("\n".join(entries), encoding="utf-8")


class FakeToolchain:
    """Stands in for rustc and the binaries it builds."""

    compile_failures = {"compFailure.rs", "testFailure.rs"}

    def __init__(self):
        self.calls = []
        self.last_source = None

    def __call__(self, args, *rest, **kwargs):
        args = [str(a) for a in args]
        self.calls.append(args)
        if args[0] == "rustc":
            if "--version" in args:
                return subprocess.CompletedProcess(args, 0, b"", b"")
            source = args[2] if args[1] == "--test" else args[1]
            self.last_source = Path(source).name
            if self.last_source in self.compile_failures:
                return subprocess.CompletedProcess(args, 1, b"", b"error: expected pattern")
            return subprocess.CompletedProcess(args, 0, b"", b"")
        if self.last_source == "testNotPassed.rs":
            return subprocess.CompletedProcess(args, 101, b"test not_passing ... FAILED\n", b"")
        if self.last_source == "testSuccess.rs" and "--show-output" in args:
            return subprocess.CompletedProcess(args, 0, b"THIS TEST TOO SHALL PASS\n", b"")
        return subprocess.CompletedProcess(args, 0, b"", b"")


@pytest.fixture
def toolchain(monkeypatch):
    fake = FakeToolchain()
    monkeypatch.setattr(subprocess, "run", fake)
    return fake


@pytest.fixture
def success_dir(tmp_path, monkeypatch):
    write_fixture(tmp_path, SUCCESS)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def failure_dir(tmp_path, monkeypatch):
    write_fixture(tmp_path, FAILURE)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def state_dir(tmp_path, monkeypatch):
    write_fixture(tmp_path, STATE)
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_runs_without_arguments(success_dir, toolchain, capsys):
    assert main([]) == 0
    assert "Got all that?" in capsys.readouterr().out


def test_fails_when_in_wrong_dir(tmp_path, monkeypatch, toolchain):
    monkeypatch.chdir(tmp_path)
    assert main([]) == 1


def test_fails_without_rustc(success_dir, monkeypatch, capsys):
    def missing(args, *rest, **kwargs):
        raise FileNotFoundError("rustc")

    monkeypatch.setattr(subprocess, "run", missing)
    assert main(["verify"]) == 1
    assert "We cannot find `rustc`." in capsys.readouterr().out


def test_version(capsys):
    assert main(["-v"]) == 0
    assert capsys.readouterr().out == "v5.5.1\n"


def test_verify_all_success(success_dir, toolchain):
    assert main(["verify"]) == 0


def test_verify_fails_if_some_fails(failure_dir, toolchain):
    assert main(["verify"]) == 1


def test_run_single_compile_success(success_dir, toolchain):
    assert main(["run", "compSuccess"]) == 0


def test_run_single_compile_failure(failure_dir, toolchain):
    assert main(["run", "compFailure"]) == 1


def test_run_single_test_success(success_dir, toolchain):
    assert main(["run", "testSuccess"]) == 0


def test_run_single_test_failure(failure_dir, toolchain):
    assert main(["run", "testFailure"]) == 1


def test_run_single_test_not_passed(failure_dir, toolchain):
    assert main(["run", "testNotPassed.rs"]) == 1


def test_run_single_test_no_filename(success_dir, toolchain):
    with pytest.raises(SystemExit) as info:
        main(["run"])
    assert info.value.code == 1


def test_run_single_test_no_exercise(failure_dir, toolchain, capsys):
    assert main(["run", "compNoExercise.rs"]) == 1
    assert "No exercise found for 'compNoExercise.rs'!" in capsys.readouterr().out


def test_reset_single_exercise(success_dir, toolchain, monkeypatch):
    started = []
    monkeypatch.setattr(subprocess, "Popen", lambda args, *a, **k: started.append(list(args)))
    assert main(["reset", "compSuccess"]) == 0
    assert started == [["git", "stash", "--", "compSuccess.rs"]]


def test_reset_no_exercise(success_dir, toolchain, capsys):
    with pytest.raises(SystemExit) as info:
        main(["reset"])
    assert info.value.code == 1
    assert "positional arguments not provided" in capsys.readouterr().err


def test_get_hint_for_single_test(failure_dir, toolchain, capsys):
    assert main(["hint", "testFailure"]) == 0
    assert capsys.readouterr().out == "Hello!\n"


def test_run_compile_exercise_does_not_prompt(state_dir, toolchain, capsys):
    assert main(["run", "pending_exercise"]) == 0
    assert "I AM NOT DONE" not in capsys.readouterr().out


def test_run_test_exercise_does_not_prompt(state_dir, toolchain, capsys):
    assert main(["run", "pending_test_exercise"]) == 0
    assert "I AM NOT DONE" not in capsys.readouterr().out


def test_run_single_test_success_with_output(success_dir, toolchain, capsys):
    assert main(["--nocapture", "run", "testSuccess"]) == 0
    assert "THIS TEST TOO SHALL PASS" in capsys.readouterr().out


def test_run_single_test_success_without_output(success_dir, toolchain, capsys):
    assert main(["run", "testSuccess"]) == 0
    assert "THIS TEST TOO SHALL PASS" not in capsys.readouterr().out


def test_list(success_dir, toolchain, capsys):
    assert main(["list"]) == 0
    assert "Progress: You completed 2 / 2 exercises (100.0 %)." in capsys.readouterr().out


def test_list_no_pending(success_dir, toolchain, capsys):
    assert main(["list"]) == 0
    assert "Pending" not in capsys.readouterr().out


def test_list_both_done_and_pending(state_dir, toolchain, capsys):
    assert main(["list"]) == 0
    out = capsys.readouterr().out
    assert "Done" in out and "Pending" in out


def test_list_without_pending(state_dir, toolchain, capsys):
    assert main(["list", "--solved"]) == 0
    assert "Pending" not in capsys.readouterr().out


def test_list_without_done(state_dir, toolchain, capsys):
    assert main(["list", "--unsolved"]) == 0
    assert "Done" not in capsys.readouterr().out


def test_cicvverify(tmp_path, monkeypatch, toolchain):
    write_fixture(tmp_path, {**{"compSuccess.rs": SUCCESS["compSuccess.rs"]},
                             **{"compFailure.rs": FAILURE["compFailure.rs"]}})
    (tmp_path / ".github" / "result").mkdir(parents=True)
    monkeypatch.chdir(tmp_path)
    assert main(["--nocapture", "cicvverify"]) == 0
    report = json.loads(
        (tmp_path / ".github" / "result" / "check_result.json").read_text(encoding="utf-8")
    )
    assert report["user_name"] is None
    assert report["statistics"]["total_exercations"] == 2
    assert report["statistics"]["total_succeeds"] == 1
    assert report["statistics"]["total_failures"] == 1
    results = sorted((e["name"], e["result"]) for e in report["exercises"])
    assert results == [("compFailure", False), ("compSuccess", True)]


def test_cicv_verify_returns_check_list(success_dir, toolchain):
    output = success_dir / "report.json"
    check_list = cicv_verify(load_exercises("info.toml"), output)
    assert check_list.statistics.total_succeeds == 2
    assert check_list.statistics.total_failures == 0
    assert json.loads(output.read_text(encoding="utf-8")) == check_list.to_dict()


def test_find_exercise_by_name(state_dir):
    exercises = load_exercises("info.toml")
    assert find_exercise("pending_test_exercise", exercises).path == Path(
        "pending_test_exercise.rs"
    )


def test_find_exercise_next_is_first_pending(state_dir):
    exercises = load_exercises("info.toml")
    assert find_exercise("next", exercises).name == "pending_exercise"


def test_find_exercise_next_when_all_done(success_dir):
    with pytest.raises(ExerciseNotFound, match="Congratulations"):
        find_exercise("next", load_exercises("info.toml"))


def test_find_exercise_unknown():
    exercises = [Exercise("a", Path("a.rs"), Mode.COMPILE)]
    with pytest.raises(ExerciseNotFound, match="No exercise found for 'b'!"):
        find_exercise("b", exercises)


def test_list_exercises_filter_names(state_dir, capsys):
    done = list_exercises(load_exercises("info.toml"), names=True, filter="PENDING")
    lines = capsys.readouterr().out.splitlines()
    assert done == 1
    assert lines == [
        "pending_exercise",
        "pending_test_exercise",
        "Progress: You completed 1 / 3 exercises (33.3 %).",
    ]


def test_list_exercises_empty_filter_shows_nothing(state_dir, capsys):
    list_exercises(load_exercises("info.toml"), paths=True, filter="")
    assert capsys.readouterr().out.splitlines() == [
        "Progress: You completed 1 / 3 exercises (33.3 %).",
    ]


def test_list_exercises_paths_solved(state_dir, capsys):
    list_exercises(load_exercises("info.toml"), paths=True, solved=True)
    assert capsys.readouterr().out.splitlines()[0] == "finished_exercise.rs"


def test_check_list_to_dict():
    check_list = ExerciseCheckList(
        exercises=[ExerciseResult("intro1", True)],
        statistics=ExerciseStatistics(1, 1, 0, 3),
    )
    assert check_list.to_dict() == {
        "exercises": [{"name": "intro1", "result": True}],
        "user_name": None,
        "statistics": {
            "total_exercations": 1,
            "total_succeeds": 1,
            "total_failures": 0,
            "total_time": 3,
        },
    }


def test_build_parser_list_options():
    args = build_parser().parse_args(["list", "-p", "-f", "a,b", "-u"])
    assert (args.command, args.paths, args.names, args.filter, args.unsolved, args.solved) == (
        "list", True, False, "a,b", True, False,
    )


def test_build_parser_watch_success_hints():
    args = build_parser().parse_args(["--nocapture", "watch", "--success-hints"])
    assert (args.command, args.nocapture, args.success_hints) == ("watch", True, True)


@pytest.mark.parametrize("returncode, expected", [(0, True), (1, False)])
def test_rustc_exists_by_status(monkeypatch, returncode, expected):
    monkeypatch.setattr(
        subprocess, "run", lambda args, *a, **k: subprocess.CompletedProcess(args, returncode)
    )
    assert rustc_exists() is expected


def test_rustc_exists_missing(monkeypatch):
    def missing(args, *a, **k):
        raise FileNotFoundError("rustc")

    monkeypatch.setattr(subprocess, "run", missing)
    assert rustc_exists() is False