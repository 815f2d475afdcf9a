import pytest

from darwin_orchestrator.core.types import (
    AttemptFailure,
    CompletionRequest,
    Failure,
    FailureClass,
    Success,
)
from darwin_orchestrator.pipeline.fallback import (
    EXHAUSTED,
    Aborted,
    Decision,
    FallbackController,
    Succeeded,
    decide,
)

pytestmark = pytest.mark.unit

CANDIDATES = ("a", "b", "c", "d")
REQUEST = CompletionRequest("s", "p")
OK = {"choices": [{"message": {"content": "fine"}, "finish_reason": "stop"}]}


def fail(failure_class: FailureClass) -> Failure[AttemptFailure]:
    return Failure(AttemptFailure(failure_class, f"{failure_class.value} happened"))


class ScriptedExecutor:
    """Returns scripted outcomes per candidate and counts calls."""

    def __init__(self, scripts):
        self.scripts = {k: list(v) for k, v in scripts.items()}
        self.calls: list[str] = []

    async def attempt(self, candidate, request):
        self.calls.append(candidate)
        return self.scripts[candidate].pop(0)


def controller(executor, sleep, retry_delay=2.0):
    return FallbackController(executor, retry_delay=retry_delay, sleep=sleep)


@pytest.mark.parametrize(
    ("failure_class", "attempt", "retries", "expected"),
    [
        (FailureClass.RATE_LIMITED, 0, 3, Decision.ABORT),
        (FailureClass.BILLING_REQUIRED, 2, 3, Decision.ABORT),
        (FailureClass.CLIENT_ERROR, 0, 3, Decision.ADVANCE),
        (FailureClass.SERVER_ERROR, 0, 3, Decision.RETRY),
        (FailureClass.SERVER_ERROR, 2, 3, Decision.ADVANCE),
        (FailureClass.EMPTY_RESPONSE, 1, 3, Decision.RETRY),
        (FailureClass.TRANSPORT, 0, 1, Decision.ADVANCE),
    ],
)
def test_decision_table(failure_class, attempt, retries, expected):
    assert decide(failure_class, attempt, retries) is expected


@pytest.mark.asyncio
@pytest.mark.parametrize("abort_class", [FailureClass.RATE_LIMITED, FailureClass.BILLING_REQUIRED])
@pytest.mark.parametrize("position", [0, 1, 2])
async def test_account_level_failures_stop_all_calls(abort_class, position, recording_sleep):
    # Earlier candidates reject the request shape; the abort comes at `position`.
    scripts = {c: [fail(FailureClass.CLIENT_ERROR)] for c in CANDIDATES}
    scripts[CANDIDATES[position]] = [fail(abort_class)]
    executor = ScriptedExecutor(scripts)

    outcome = await controller(executor, recording_sleep).run(CANDIDATES, REQUEST, retries=3)

    assert isinstance(outcome.state, Aborted)
    assert outcome.state.failure_class is abort_class
    assert outcome.state.reason in ("rate limit", "billing")
    assert executor.calls == list(CANDIDATES[: position + 1])
    assert outcome.calls == position + 1


@pytest.mark.asyncio
async def test_first_candidate_429_aborts_after_one_call(recording_sleep):
    executor = ScriptedExecutor({"a": [fail(FailureClass.RATE_LIMITED)]})
    outcome = await controller(executor, recording_sleep).run(CANDIDATES, REQUEST, retries=3)
    assert outcome.state == Aborted("rate limit", FailureClass.RATE_LIMITED, "rate_limited happened")
    assert executor.calls == ["a"]
    assert recording_sleep.delays == []


@pytest.mark.asyncio
async def test_server_errors_retry_same_candidate_then_succeed(recording_sleep):
    retries = 3
    executor = ScriptedExecutor(
        {"a": [fail(FailureClass.SERVER_ERROR)] * (retries - 1) + [Success(OK)]}
    )
    outcome = await controller(executor, recording_sleep).run(CANDIDATES, REQUEST, retries)

    assert outcome.state == Succeeded(payload=OK, candidate="a")
    assert executor.calls == ["a"] * retries
    assert recording_sleep.delays == [2.0] * (retries - 1)
    assert len(outcome.records) == retries - 1


@pytest.mark.asyncio
async def test_client_error_advances_without_spending_retries(recording_sleep):
    executor = ScriptedExecutor(
        {"a": [fail(FailureClass.CLIENT_ERROR)], "b": [Success(OK)]}
    )
    outcome = await controller(executor, recording_sleep).run(CANDIDATES, REQUEST, retries=3)

    assert outcome.succeeded
    assert executor.calls == ["a", "b"]
    assert recording_sleep.delays == []


@pytest.mark.asyncio
async def test_retry_budget_exhaustion_advances(recording_sleep):
    executor = ScriptedExecutor(
        {
            "a": [fail(FailureClass.TRANSPORT), fail(FailureClass.EMPTY_RESPONSE)],
            "b": [Success(OK)],
        }
    )
    outcome = await controller(executor, recording_sleep).run(CANDIDATES, REQUEST, retries=2)

    assert outcome.state == Succeeded(payload=OK, candidate="b")
    assert executor.calls == ["a", "a", "b"]
    assert recording_sleep.delays == [2.0]


@pytest.mark.asyncio
async def test_all_candidates_exhausted_with_trail(recording_sleep):
    executor = ScriptedExecutor({c: [fail(FailureClass.SERVER_ERROR)] for c in CANDIDATES})
    outcome = await controller(executor, recording_sleep).run(CANDIDATES, REQUEST, retries=1)

    assert isinstance(outcome.state, Aborted)
    assert outcome.state.reason == EXHAUSTED
    assert outcome.state.message == "server_error happened"
    assert [(r.candidate, r.failure_class) for r in outcome.records] == [
        (c, FailureClass.SERVER_ERROR) for c in CANDIDATES
    ]
    assert outcome.calls == len(CANDIDATES)


@pytest.mark.asyncio
async def test_records_are_shared_with_caller(recording_sleep):
    records = []
    executor = ScriptedExecutor(
        {"a": [fail(FailureClass.CLIENT_ERROR)], "b": [Success(OK)]}
    )
    await controller(executor, recording_sleep).run(
        CANDIDATES, REQUEST, retries=1, records=records
    )
    assert [r.candidate for r in records] == ["a"]


@pytest.mark.asyncio
async def test_empty_candidate_list_is_rejected(recording_sleep):
    with pytest.raises(ValueError, match="candidates"):
        await controller(ScriptedExecutor({}), recording_sleep).run((), REQUEST, retries=1)
