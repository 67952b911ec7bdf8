from __future__ import annotations

import json
from pathlib import Path

import pytest

from pwmake.cli.main import build_parser, main
from pwmake.contracts import validate
from tests.helpers import PHONY_MAKEFILE, SCENARIO_MAKEFILE, write_makefile


def _run(capsys: pytest.CaptureFixture[str], *argv: str) -> tuple[int, str, str]:
    code = main(list(argv))
    captured = capsys.readouterr()
    return code, captured.out, captured.err


def test_parser_accepts_variable_lists() -> None:
    ns = build_parser().parse_args(["-V", "a=1,b=2", "-V", "c=3", "build"])
    assert ns.target == "build"
    assert ns.variables == ["a=1,b=2", "c=3"]


def test_target_help_lists_visible_targets(project_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_makefile(project_dir, PHONY_MAKEFILE)
    code, out, _ = _run(capsys, "-H")
    assert code == 0
    assert out == (
        "target  synopsis\n"
        "------  --------\n"
        "all     build everything\n"
        "build\n"
        "clean   remove artifacts\n"
    )


def test_target_help_json(project_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_makefile(project_dir, PHONY_MAKEFILE)
    code, out, _ = _run(capsys, "--target-help", "--json")
    assert code == 0
    payload = json.loads(out)
    validate("pwmake.help.v1", payload)
    assert [(row["name"], row["help"], row["phony"]) for row in payload["targets"]] == [
        ("all", "build everything", False),
        ("build", "", False),
        ("clean", "remove artifacts", True),
    ]


def test_scenario_runs_prerequisite_first(project_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_makefile(project_dir, SCENARIO_MAKEFILE)
    code, out, _ = _run(capsys)
    assert code == 0
    assert out == "echo making a.txt\nmaking a.txt\necho built a\nbuilt a\n"


def test_command_line_variables_override_file(project_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_makefile(project_dir, "x := 1\nall:\n    @echo ${x}\n")
    code, out, _ = _run(capsys, "-V", "x=2")
    assert code == 0
    assert out == "2\n"


def test_param_and_params(project_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_makefile(project_dir, "all:\n    @echo $param ${params[1]}\n")
    code, out, _ = _run(capsys, "--param", "P", "--params", "a", "--params", "b")
    assert code == 0
    assert out == "P b\n"


def test_cycle_exits_before_running_anything(project_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_makefile(project_dir, "all: a\n    echo never\na: all\n    echo never\n")
    code, out, err = _run(capsys)
    assert code == 4
    assert out == ""
    assert "pwmake: circular dependency: all -> a -> all" in err


def test_unknown_target(project_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_makefile(project_dir, SCENARIO_MAKEFILE)
    code, out, err = _run(capsys, "nope")
    assert code == 5
    assert out == ""
    assert "pwmake: no rule to make target 'nope'" in err


def test_missing_prerequisite_file(project_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_makefile(project_dir, "all: input.txt\n    echo never\n")
    code, out, err = _run(capsys)
    assert code == 5
    assert out == ""
    assert "needed by 'all'" in err


def test_empty_makefile_has_no_targets(project_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_makefile(project_dir, "# nothing here\n")
    code, _, err = _run(capsys)
    assert code == 5
    assert "no targets defined" in err


def test_orphan_command_is_a_parse_error(project_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_makefile(project_dir, "    echo orphan\nall:\n")
    code, out, err = _run(capsys)
    assert code == 3
    assert out == ""
    assert "Makefile:1: command line before any target" in err


def test_self_referencing_variable(project_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_makefile(project_dir, "A = ${A}\nall:\n    echo ${A}\n")
    code, out, err = _run(capsys)
    assert code == 6
    assert out == ""
    assert "while expanding 'A'" in err


def test_failing_command_stops_the_run(project_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_makefile(project_dir, "all:\n    exit 3\n    echo after\n")
    code, out, err = _run(capsys)
    assert code == 7
    assert out == "exit 3\n"
    assert "command failed in target 'all' (exit 3): exit 3" in err


def test_error_action_from_config_file(project_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_makefile(project_dir, "all:\n    exit 1\n    @echo after\n")
    (project_dir / "pwmake.toml").write_text('error_action = "continue"\n', encoding="utf-8")
    code, out, _ = _run(capsys)
    assert code == 7
    assert out == "exit 1\nafter\n"


def test_makefile_from_environment(
    project_dir: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    write_makefile(project_dir, "all:\n    @echo from build.mk\n", name="build.mk")
    monkeypatch.setenv("PWMAKE_FILE", "build.mk")
    code, out, _ = _run(capsys)
    assert code == 0
    assert out == "from build.mk\n"


def test_missing_makefile(project_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code, _, err = _run(capsys)
    assert code == 2
    assert "makefile not found" in err


def test_directory_option(tmp_path: Path, project_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    other = tmp_path / "other"
    other.mkdir()
    write_makefile(other, "all:\n    @pwd\n")
    code, out, _ = _run(capsys, "-C", str(other))
    assert code == 0
    assert out.strip() == str(other.resolve())


def test_missing_directory(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code, _, err = _run(capsys, "-C", str(tmp_path / "missing"))
    assert code == 2
    assert "no such directory" in err


def test_conflicting_targets(project_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_makefile(project_dir, SCENARIO_MAKEFILE)
    code, _, err = _run(capsys, "all", "-t", "a.txt")
    assert code == 2
    assert "conflicting targets" in err


def test_nothing_to_be_done(project_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_makefile(project_dir, "all:\n")
    code, out, _ = _run(capsys)
    assert code == 0
    assert out == "pwmake: nothing to be done for 'all'\n"


def test_dry_run_is_stable_and_runs_nothing(project_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_makefile(project_dir, "file := a\nall: ${file}.txt\n    touch made.txt\na.txt:\n    @echo making a.txt\n")
    first = _run(capsys, "-n", "-V", "extra=1")
    second = _run(capsys, "-n", "-V", "extra=1")
    assert first == second
    code, out, _ = first
    assert code == 0
    assert not (project_dir / "made.txt").exists()
    assert "######## overrides ##########\nextra=1\n" in out
    assert "######## variables ##########\nfile=a\nextra=1\n" in out
    assert "######## phonies ##########\n(none)\n" in out
    assert "######## topological sorted targets ##########\na.txt\nall\n" in out
    assert out.endswith("######## topological sorted commands ##########\n@echo making a.txt\ntouch made.txt\n")


def test_dry_run_json(project_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_makefile(project_dir, SCENARIO_MAKEFILE)
    code, out, _ = _run(capsys, "--dry-run", "--format", "json")
    assert code == 0
    payload = json.loads(out)
    validate("pwmake.dryrun.v1", payload)
    assert payload["targets"] == ["a.txt", "all"]
    assert [c["command"] for c in payload["commands"]] == ["echo making a.txt", "echo built a"]
    assert payload["rules"][0]["prerequisites"] == ["${file}.txt"]


def test_graph_text_and_json(project_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_makefile(project_dir, "all: a b\na: c\nb:\nc:\n")
    code, out, _ = _run(capsys, "--graph")
    assert code == 0
    assert out == "all\n├─ a\n│  └─ c\n└─ b\n"
    code, out, _ = _run(capsys, "--graph", "--json", "a")
    payload = json.loads(out)
    validate("pwmake.graph.v1", payload)
    assert payload["root"] == "a"
    assert payload["tree"] == ["a", "└─ c"]


def test_json_errors_follow_the_contract(project_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_makefile(project_dir, SCENARIO_MAKEFILE)
    code, _, err = _run(capsys, "nope", "--json")
    assert code == 5
    payload = json.loads(err)
    validate("pwmake.error.v1", payload)
    assert payload["errors"][0]["kind"] == "unknown_target"


def test_python_shell(project_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_makefile(project_dir, "all:\n    value = 1 + 1\n    print('py', value)\n")
    code, out, _ = _run(capsys, "--shell", "python")
    assert code == 0
    assert out == "value = 1 + 1\nprint('py', value)\npy 2\n"


def test_warnings_for_undefined_variables_and_overridden_recipes(
    project_dir: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    write_makefile(project_dir, "all:\n    @true\nall:\n    @true ${missing}\n")
    code, _, err = _run(capsys, "--run-id", "warn-run")
    assert code == 0
    assert "level=warning run_id=warn-run component=parser action=recipe-overridden target=all" in err
    assert "action=undefined-variable name=missing" in err


def test_quiet_hides_warnings(project_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_makefile(project_dir, "all:\n    @true ${missing}\n")
    code, _, err = _run(capsys, "--quiet")
    assert code == 0
    assert err == ""


def test_verbose_json_logs(project_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_makefile(project_dir, "all:\n    @true\n")
    code, _, err = _run(capsys, "--verbose", "--log-json", "--run-id", "json-run")
    assert code == 0
    events = [json.loads(line) for line in err.splitlines()]
    assert events[0]["action"] == "start"
    assert {event["run_id"] for event in events} == {"json-run"}
    assert "run-command" in {event["action"] for event in events}


def test_variables_flag_followed_by_target(project_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_makefile(project_dir, "x := 1\nother:\n    @echo other\nall:\n    @echo ${x}\n")
    code, out, _ = _run(capsys, "-V", "x=2", "all")
    assert code == 0
    assert out == "2\n"


def test_phony_target_runs_even_when_a_file_has_its_name(
    project_dir: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    write_makefile(project_dir, PHONY_MAKEFILE)
    (project_dir / "clean").write_text("", encoding="utf-8")
    code, out, _ = _run(capsys, "clean")
    assert code == 0
    assert out == "echo cleaning\ncleaning\n"


def test_failing_command_stderr_is_shown_once(project_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_makefile(project_dir, "all:\n    @echo oops >&2; exit 3\n")
    code, out, err = _run(capsys)
    assert code == 7
    assert out == ""
    assert err == "oops\npwmake: command failed in target 'all' (exit 3): echo oops >&2; exit 3\n"


def test_long_dependency_chain_is_planned(project_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    size = 2000
    text = "".join(f"t{i}: t{i + 1}\n" for i in range(size - 1)) + f"t{size - 1}:\n    @echo bottom\n"
    write_makefile(project_dir, text)
    code, out, err = _run(capsys, "-n", "t0")
    assert code == 0, err
    sorted_targets = out.split("######## topological sorted targets ##########\n", 1)[1].split("\n\n", 1)[0]
    assert sorted_targets.splitlines() == [f"t{i}" for i in reversed(range(size))]
