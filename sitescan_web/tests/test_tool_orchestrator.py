from __future__ import annotations

import pytest

from sitescan_web.domain.errors import NotFoundError
from sitescan_web.domain.models import ToolCall
from sitescan_web.services.tool_orchestrator import (
    AutoApprovePolicy,
    ManualApprovalPolicy,
    ToolDefinition,
    ToolOrchestrator,
)


class DeclineAll:
    def review(self, call):
        return "decline"


def echo(params):
    return {"echo": params}


def boom(params):
    raise RuntimeError("handler exploded")


def make(policy=None):
    return ToolOrchestrator(
        [
            ToolDefinition("echo", echo, ("url",)),
            ToolDefinition("boom", boom),
        ],
        policy=policy or AutoApprovePolicy(),
    )


def test_auto_approved_call_completes_with_result():
    orch = make()
    call = ToolCall(name="echo", parameters={"url": "https://example.com"})

    result = orch.submit(call)

    assert call.status == "completed"
    assert result.ok
    assert result.tool_call_id == call.id
    assert result.result == {"echo": {"url": "https://example.com"}}
    assert orch.result_for(call.id) is result


def test_unknown_tool_fails_the_call_with_an_error_result():
    orch = make()
    call = ToolCall(name="teleport", parameters={})

    result = orch.submit(call)

    assert call.status == "failed"
    assert result.error == "Unknown tool: teleport"
    assert result.result is None


def test_missing_required_parameter_fails_the_call():
    orch = make()
    call = ToolCall(name="echo", parameters={"url": ""})

    result = orch.submit(call)

    assert call.status == "failed"
    assert "url" in result.error


def test_handler_exception_is_captured():
    orch = make()
    call = ToolCall(name="boom", parameters={})

    result = orch.submit(call)

    assert call.status == "failed"
    assert result.error == "handler exploded"
    assert call.is_terminal


def test_declined_call_is_never_dispatched():
    orch = make(DeclineAll())
    call = ToolCall(name="boom", parameters={})

    assert orch.submit(call) is None
    assert call.status == "declined"
    assert orch.result_for(call.id) is None


def test_manual_policy_defers_until_approved():
    orch = make(ManualApprovalPolicy())
    call = ToolCall(name="echo", parameters={"url": "https://example.com"})

    assert orch.submit(call) is None
    assert call.status == "pending"
    assert orch.pending_calls() == [call]

    result = orch.approve(call.id)
    assert call.status == "completed"
    assert result.ok
    assert orch.pending_calls() == []


def test_manual_policy_decline():
    orch = make(ManualApprovalPolicy())
    call = ToolCall(name="echo", parameters={"url": "https://example.com"})
    orch.submit(call)

    orch.decline(call.id)
    assert call.status == "declined"


def test_illegal_transitions_raise():
    orch = make(ManualApprovalPolicy())
    call = ToolCall(name="echo", parameters={"url": "https://example.com"})
    orch.submit(call)
    orch.approve(call.id)

    with pytest.raises(ValueError):
        orch.approve(call.id)
    with pytest.raises(ValueError):
        orch.decline(call.id)


def test_submit_rejects_resubmission_and_non_pending_calls():
    orch = make()
    call = ToolCall(name="echo", parameters={"url": "https://example.com"})
    orch.submit(call)

    with pytest.raises(ValueError):
        orch.submit(call)
    with pytest.raises(ValueError):
        orch.submit(ToolCall(name="echo", parameters={}, status="approved"))


def test_unknown_call_id():
    with pytest.raises(NotFoundError):
        make().approve("tool_missing")


def test_parameters_must_be_a_mapping():
    with pytest.raises(TypeError):
        ToolCall(name="echo", parameters=["https://example.com"])


def test_duplicate_definitions_are_rejected():
    with pytest.raises(ValueError):
        ToolOrchestrator([ToolDefinition("echo", echo), ToolDefinition("echo", echo)])


def test_history_and_description():
    orch = make()
    first = ToolCall(name="echo", parameters={"url": "u"})
    second = ToolCall(name="boom", parameters={})
    orch.submit(first)
    orch.submit(second)

    assert [c.name for c in orch.history()] == ["echo", "boom"]
    assert orch.tool_names == ["echo", "boom"]
    assert orch.describe()[0]["requiredParams"] == ["url"]


def test_snapshot_does_not_follow_later_changes():
    orch = make(ManualApprovalPolicy())
    call = ToolCall(name="echo", parameters={"url": "https://example.com"})
    orch.submit(call)
    snap = call.snapshot()

    orch.approve(call.id)
    assert snap.status == "pending"
    assert call.status == "completed"


def test_only_the_most_recent_finished_calls_are_kept():
    orch = ToolOrchestrator([ToolDefinition("echo", echo, ("url",))], ManualApprovalPolicy(), max_finished=2)
    waiting = ToolCall(name="echo", parameters={"url": "u0"})
    orch.submit(waiting)
    calls = [ToolCall(name="echo", parameters={"url": f"u{i}"}) for i in range(1, 4)]
    for call in calls:
        orch.submit(call)
        orch.approve(call.id)

    assert [c.id for c in orch.history()] == [waiting.id, calls[1].id, calls[2].id]
    assert orch.result_for(calls[0].id) is None
    with pytest.raises(NotFoundError):
        orch.get(calls[0].id)

    # approving an old pending call makes it the newest finished one
    orch.approve(waiting.id)
    assert [c.id for c in orch.history()] == [calls[2].id, waiting.id]
    assert orch.pending_calls() == []


def test_max_finished_must_be_positive():
    with pytest.raises(ValueError):
        ToolOrchestrator([], max_finished=0)
