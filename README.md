# drillrunner

drillrunner is a command-line companion for a directory of small Rust
exercises. Each exercise is a single `.rs` file that is broken in some way.
You fix it. drillrunner then compiles it, runs it or runs its tests, and
moves you on to the next one once you remove the `// I AM NOT DONE` marker.

## Installation

```
pip install drillrunner
```

The package calls `rustc`, which must be on your `PATH`. Clippy and
build-script exercises also call `cargo`.

## The exercise directory

Run drillrunner from a directory that holds an `info.toml` describing the
exercises in order:

```toml
[[exercises]]
name = "intro1"
path = "exercises/intro/intro1.rs"
mode = "compile"
hint = "Remove the I AM NOT DONE comment."
```

Every entry needs `name`, `path`, `mode` and `hint`. `mode` is one of
`compile`, `test`, `clippy` or `buildscript`.

An exercise counts as done when its file no longer has a line matching
`// I AM NOT DONE`. This also accepts `///` and any amount of whitespace.

## Commands

```
drillrunner                 # print the introduction
drillrunner --version       # print the version (also -v)
drillrunner watch           # verify exercises in order, rerunning on every save
drillrunner verify          # verify all exercises once, in order
drillrunner run NAME        # compile and run or test a single exercise
drillrunner run next        # run the first exercise not yet done
drillrunner hint NAME       # print the hint for an exercise
drillrunner reset NAME      # restore an exercise with `git stash -- <path>`
drillrunner list            # list exercises with their status
drillrunner lsp             # write rust-project.json for rust-analyzer
drillrunner cicvverify      # grade every exercise and write a JSON report
```

If `info.toml` is missing or `rustc` cannot be run, drillrunner exits with
status 1. The same happens when a run or verification fails and when no
exercise has the given name.

- `--nocapture`, given before the command, shows the output of test exercises.
- `list` takes these options:
  - `--paths`/`-p`
  - `--names`/`-n`
  - `--filter`/`-f PATTERNS`, comma separated and matched against names and paths
  - `--solved`/`-s`
  - `--unsolved`/`-u`

  It ends with a line showing your progress.
- `watch` needs an `./exercises` directory and watches it for changes to `.rs`
  files. `--success-hints` shows an exercise's hint when it passes but is not
  yet marked done. While it is watching, you can type these commands:
  - `hint`
  - `clear`
  - `quit`
  - `help`
  - `!<cmd>`, which runs a command
- `lsp` adds a crate for every `.rs` file below `./exercises`. It takes the
  standard library location from `RUST_SRC_PATH` when that is set, and from
  `rustc --print sysroot` otherwise.
- `cicvverify` runs every exercise at the same time. It writes the results and
  totals to `.github/result/check_result.json`. That directory must already
  exist.

Set `NO_EMOJI` in the environment to get plain-text markers in the output.
Colours are used when standard output is a terminal. `NO_COLOR` turns them off
and `CLICOLOR_FORCE` turns them on.

## Use from Python

```python
from drillrunner.exercise import load_exercises

for exercise in load_exercises("info.toml"):
    print(exercise, "done" if exercise.looks_done() else "pending")
```

The modules are:

- `drillrunner.exercise`: `Exercise`, `Mode`, `State`, `parse_exercises` and
  `load_exercises`. `Exercise.compile()` raises `CompilationError`. Running the
  result raises `ExecutionError` when the run fails.
- `drillrunner.verify`: `verify`, which raises `VerificationFailed`.
- `drillrunner.run`: `run` and `reset`, which raise `RunFailed`.
- `drillrunner.project`: `RustAnalyzerProject`.
- `drillrunner.watch`: `watch` and `WatchShell`.
- `drillrunner.cli`: `main`, `find_exercise`, `list_exercises` and
  `cicv_verify`.