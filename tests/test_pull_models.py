from __future__ import annotations

from conftest import FakeRunner, make_ctx, make_hw, state_with

from llm_autosetup.steps.step_80_pull_models import PullModelsStep
from llm_autosetup.state import record_decision


def _pulls(runner: FakeRunner):
    return [a[2] for a in runner.argvs if a[:2] == ["ollama", "pull"]]


def test_no_flag_pulls_nothing(cfg, runner) -> None:
    PullModelsStep().run(make_ctx(cfg, runner), state_with(make_hw()))
    assert _pulls(runner) == []


def test_all_attempts_every_model_and_continues(cfg) -> None:
    failing = {"qwen3:4b", "qwen3:32b"}
    runner = FakeRunner(rc_for=lambda argv: 1 if argv[-1] in failing else 0)
    state = PullModelsStep().run(make_ctx(cfg, runner, install_models="all"), state_with(make_hw()))

    expected = [m["name"] for m in cfg.models]
    assert _pulls(runner) == expected
    results = state["execution"]["models"]
    assert [r["model"] for r in results] == expected
    assert {r["model"] for r in results if not r["ok"]} == failing
    assert sorted(w["model"] for w in state["execution"]["warnings"]) == sorted(failing)


def test_unknown_name_attempted_exactly_once(cfg) -> None:
    runner = FakeRunner(rc_for=lambda argv: 1 if argv[:2] == ["ollama", "pull"] else 0)
    state = PullModelsStep().run(make_ctx(cfg, runner, install_models="does-not-exist"), state_with(make_hw()))

    assert _pulls(runner) == ["does-not-exist"]
    assert state["execution"]["models"] == [{"model": "does-not-exist", "ok": False}]
    assert len(state["execution"]["warnings"]) == 1


def test_pull_inherits_tuning_variable(cfg, runner) -> None:
    state = state_with(make_hw())
    record_decision(state, "tuning", {"env_var": "OLLAMA_NUM_PARALLEL", "value": 16, "ram_gib": 32})
    PullModelsStep().run(make_ctx(cfg, runner, install_models="qwen3:8b"), state)
    assert runner.calls[0]["env"] == {"OLLAMA_NUM_PARALLEL": "16"}
    assert runner.calls[0]["timeout_s"] == cfg.timeout("pull")


def test_pull_derives_tuning_when_run_starts_after_it(cfg, runner) -> None:
    PullModelsStep().run(make_ctx(cfg, runner, install_models="qwen3:8b"), state_with(make_hw(ram=64)))
    assert runner.calls[0]["env"] == {"OLLAMA_NUM_PARALLEL": "16"}
