from __future__ import annotations

import pytest
from conftest import FakeRunner, make_ctx, make_hw, state_with

from llm_autosetup.errors import CommandError
from llm_autosetup.steps.step_50_install_tools import InstallToolsStep, select_tool_groups


def _installed(runner: FakeRunner):
    return [a[4:] for a in runner.argvs if a[:3] == ["sudo", "apt-get", "install"]]


def test_select_tool_groups_keywords() -> None:
    available = ["diagnostics", "tmux", "cli"]
    assert select_tool_groups(None, available, ["tmux"]) == ["tmux"]
    assert select_tool_groups(["all"], available, []) == available
    assert select_tool_groups(["none"], available, ["tmux"]) == []
    assert select_tool_groups(["CLI", "tmux"], available, []) == ["tmux", "cli"]


def test_default_selection_installs_required_group(cfg, runner) -> None:
    state = InstallToolsStep().run(make_ctx(cfg, runner), state_with(make_hw()))
    assert _installed(runner) == [cfg.tool_groups["diagnostics"].packages]
    assert state["execution"]["plan"]["tools"]["installed"] == ["diagnostics"]


def test_required_group_installed_even_with_none(cfg, runner) -> None:
    InstallToolsStep().run(make_ctx(cfg, runner, tools=["none"]), state_with(make_hw()))
    assert _installed(runner) == [cfg.tool_groups["diagnostics"].packages]


def test_required_group_failure_is_fatal(cfg) -> None:
    runner = FakeRunner(rc_for=lambda argv: 100 if "htop" in argv else 0)
    with pytest.raises(CommandError, match="diagnostics"):
        InstallToolsStep().run(make_ctx(cfg, runner), state_with(make_hw()))


def test_optional_group_failure_warns_and_continues(cfg) -> None:
    runner = FakeRunner(rc_for=lambda argv: 100 if "tmux" in argv else 0)
    state = InstallToolsStep().run(make_ctx(cfg, runner, tools=["tmux", "fetch"]), state_with(make_hw()))
    assert state["execution"]["plan"]["tools"]["installed"] == ["diagnostics", "fetch"]
    assert [w["component"] for w in state["execution"]["warnings"]] == ["tools"]


def test_fallback_chain_tries_next_candidate(cfg) -> None:
    runner = FakeRunner(rc_for=lambda argv: 100 if argv[-1] == "eza" else 0)
    state = InstallToolsStep().run(make_ctx(cfg, runner, tools=["cli"]), state_with(make_hw()))
    assert ["eza"] in _installed(runner)
    assert ["exa"] in _installed(runner)
    assert "cli" in state["execution"]["plan"]["tools"]["installed"]


def test_fallback_chain_exhausted_warns(cfg) -> None:
    runner = FakeRunner(rc_for=lambda argv: 100 if argv[-1] in {"eza", "exa"} else 0)
    state = InstallToolsStep().run(make_ctx(cfg, runner, tools=["cli"]), state_with(make_hw()))
    reasons = [w["reason"] for w in state["execution"]["warnings"]]
    assert any("eza/exa" in r for r in reasons)


def test_fallback_skips_install_when_present(cfg) -> None:
    runner = FakeRunner(commands=["sudo", "apt-get", "fastfetch"])
    InstallToolsStep().run(make_ctx(cfg, runner, tools=["fetch"]), state_with(make_hw()))
    assert ["fastfetch"] not in _installed(runner)


def test_gated_groups_skipped_without_hardware(cfg, runner) -> None:
    state = InstallToolsStep().run(make_ctx(cfg, runner, tools=["all"]), state_with(make_hw(display=False)))
    plan = state["execution"]["plan"]["tools"]
    assert plan["skipped"] == ["nvtop", "gui"]
    assert ["nvtop"] not in _installed(runner)


def test_unknown_group_warns(cfg, runner) -> None:
    state = InstallToolsStep().run(make_ctx(cfg, runner, tools=["bogus"]), state_with(make_hw()))
    assert any("bogus" in w["reason"] for w in state["execution"]["warnings"])
