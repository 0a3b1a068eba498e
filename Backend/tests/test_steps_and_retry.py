"""
Durable step memoization and the coarse workflow retry policy.
"""
import json

import pytest

from app.core.exceptions import NonRetriableError, StepError, UnknownTemplateError
from app.orchestration.retry_policy import RetryPolicy
from app.workflow.steps import StepRunner


async def no_sleep(_):
    return None


@pytest.mark.asyncio
async def test_completed_step_is_replayed_not_rerun():
    step = StepRunner("run-1")
    calls = []

    async def work():
        calls.append(1)
        return {"id": "sbx-1"}

    step.begin_pass()
    first = await step.run("get-sandbox", work)
    step.begin_pass()
    second = await step.run("get-sandbox", work)

    assert first == second == {"id": "sbx-1"}
    assert len(calls) == 1
    assert step.is_completed("get-sandbox")


@pytest.mark.asyncio
async def test_failed_step_is_rerun_next_pass():
    step = StepRunner("run-1")
    outcomes = [RuntimeError("flaky"), "ok"]

    async def work():
        outcome = outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    step.begin_pass()
    with pytest.raises(RuntimeError):
        await step.run("agent-generate-code", work)

    step.begin_pass()
    assert await step.run("agent-generate-code", work) == "ok"
    assert step.executions["agent-generate-code"] == 2


@pytest.mark.asyncio
async def test_duplicate_step_id_in_one_pass_is_an_error():
    step = StepRunner("run-1")
    step.begin_pass()

    async def work():
        return 1

    await step.run("a", work)
    with pytest.raises(StepError):
        await step.run("a", work)


@pytest.mark.asyncio
async def test_results_are_json_round_tripped():
    step = StepRunner("run-1")
    step.begin_pass()

    async def work():
        return {"attempt": 1, "tags": ("a", "b")}

    assert await step.run("x", work) == {"attempt": 1, "tags": ["a", "b"]}


@pytest.mark.asyncio
async def test_non_serializable_result_is_rejected():
    step = StepRunner("run-1")
    step.begin_pass()

    async def work():
        return object()

    with pytest.raises(StepError):
        await step.run("x", work)
    assert not step.is_completed("x")


@pytest.mark.asyncio
async def test_checkpoint_persists_across_runners(tmp_path):
    first = StepRunner("run-42", checkpoint_dir=tmp_path)
    first.begin_pass()

    async def work():
        return {"id": "sbx-9", "host": "3000-sbx-9.e2b.test"}

    await first.run("get-sandbox", work)

    saved = json.loads((tmp_path / "run-42.json").read_text(encoding="utf-8"))
    assert saved["steps"]["get-sandbox"]["id"] == "sbx-9"

    async def must_not_run():
        raise AssertionError("step should have been replayed")

    resumed = StepRunner("run-42", checkpoint_dir=tmp_path)
    resumed.begin_pass()
    assert (await resumed.run("get-sandbox", must_not_run))["id"] == "sbx-9"

    resumed.clear()
    assert not (tmp_path / "run-42.json").exists()


@pytest.mark.asyncio
async def test_retry_until_success_with_linear_backoff():
    delays = []

    async def record_sleep(seconds):
        delays.append(seconds)

    attempts = {"n": 0}

    async def flaky():
        attempts["n"] += 1
        if attempts["n"] < 3:
            raise ConnectionError("provisioning failed")
        return "done"

    policy = RetryPolicy(retries=5, backoff_seconds=2, sleep=record_sleep)

    assert await policy.run_with_retries(flaky) == "done"
    assert attempts["n"] == 3
    assert delays == [2, 4]


@pytest.mark.asyncio
async def test_retry_gives_up_after_budget():
    attempts = {"n": 0}

    async def always_fails():
        attempts["n"] += 1
        raise ConnectionError(f"failure {attempts['n']}")

    policy = RetryPolicy(retries=5, backoff_seconds=0, sleep=no_sleep)

    with pytest.raises(ConnectionError, match="failure 6"):
        await policy.run_with_retries(always_fails)
    assert attempts["n"] == 6


@pytest.mark.asyncio
async def test_non_retriable_error_stops_immediately():
    attempts = {"n": 0}

    async def rejected():
        attempts["n"] += 1
        raise UnknownTemplateError("nope")

    policy = RetryPolicy(retries=5, backoff_seconds=0, sleep=no_sleep)

    with pytest.raises(NonRetriableError):
        await policy.run_with_retries(rejected)
    assert attempts["n"] == 1
