from __future__ import annotations

import pytest
from conftest import FakeRunner, make_ctx, make_hw, state_with

from llm_autosetup.errors import CommandError, PrerequisiteError
from llm_autosetup.steps.step_20_install_packages import InstallPackagesStep, plan_packages


def _install_calls(runner: FakeRunner):
    return [a for a in runner.argvs if a[:3] == ["sudo", "apt-get", "install"]]


def test_plan_includes_blas_only_with_avx2(cfg) -> None:
    with_avx2 = plan_packages(cfg, make_hw(avx2=True))
    without = plan_packages(cfg, make_hw(avx2=False))
    assert "libopenblas-dev" in with_avx2
    assert "libopenblas-dev" not in without
    assert without == cfg.baseline_packages


def test_no_avx2_installs_all_baseline_packages(cfg, runner) -> None:
    state = InstallPackagesStep().run(make_ctx(cfg, runner), state_with(make_hw(avx2=False)))

    assert runner.argvs[0] == ["sudo", "apt-get", "update"]
    required = _install_calls(runner)[0]
    assert required[4:] == cfg.baseline_packages
    assert all("libopenblas-dev" not in call for call in _install_calls(runner))
    assert state["execution"]["plan"]["packages"] == cfg.baseline_packages


def test_avx2_host_gets_blas(cfg, runner) -> None:
    InstallPackagesStep().run(make_ctx(cfg, runner), state_with(make_hw(avx2=True)))
    assert "libopenblas-dev" in _install_calls(runner)[0]


def test_update_failure_is_fatal(cfg) -> None:
    runner = FakeRunner(rc_for=lambda argv: 100 if "update" in argv else 0)
    with pytest.raises(CommandError, match="apt-get update failed"):
        InstallPackagesStep().run(make_ctx(cfg, runner), state_with(make_hw()))


def test_required_install_failure_is_fatal(cfg) -> None:
    runner = FakeRunner(rc_for=lambda argv: 100 if "git" in argv else 0)
    with pytest.raises(CommandError):
        InstallPackagesStep().run(make_ctx(cfg, runner), state_with(make_hw()))


def test_optional_failure_only_warns(cfg) -> None:
    runner = FakeRunner(rc_for=lambda argv: 100 if "grc" in argv else 0)
    state = InstallPackagesStep().run(make_ctx(cfg, runner), state_with(make_hw()))
    assert [w["component"] for w in state["execution"]["warnings"]] == ["packages"]


def test_missing_critical_command_after_install(cfg) -> None:
    runner = FakeRunner(commands=["sudo", "apt-get", "curl", "wget", "python3"])
    with pytest.raises(PrerequisiteError, match="git"):
        InstallPackagesStep().run(make_ctx(cfg, runner), state_with(make_hw()))
