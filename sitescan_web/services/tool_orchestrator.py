from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from sitescan_web.domain.errors import NotFoundError, ToolExecutionError, UnknownToolError
from sitescan_web.domain.models import ToolCall, ToolResult

logger = logging.getLogger(__name__)

APPROVE = "approve"
DECLINE = "decline"
DEFER = "defer"

# Finished (terminal) calls kept for lookup; older ones are dropped first.
MAX_FINISHED_CALLS = 200

_TRANSITIONS = {
    "pending": ("approved", "declined"),
    "approved": ("completed", "failed"),
}


@dataclass(frozen=True)
class ToolDefinition:
    """One named operation: its handler and the parameters it cannot run without."""
    name: str
    handler: Callable[[Dict[str, Any]], Any]
    required_params: Tuple[str, ...] = ()
    description: str = ""


class ApprovalPolicy:
    """Strategy interface: decides what happens to a call between pending and approved."""
    def review(self, call: ToolCall) -> str:
        raise NotImplementedError


class AutoApprovePolicy(ApprovalPolicy):
    def review(self, call: ToolCall) -> str:
        return APPROVE


class ManualApprovalPolicy(ApprovalPolicy):
    """Leaves every call pending until approve()/decline() is called on the orchestrator."""
    def review(self, call: ToolCall) -> str:
        return DEFER


class ToolOrchestrator:
    """
    Owns the ToolCall lifecycle:
        pending -> approved -> completed | failed
        pending -> declined
    Dispatch problems come back as a failed call plus an error-bearing ToolResult.
    """

    def __init__(
        self,
        definitions: Iterable[ToolDefinition],
        policy: Optional[ApprovalPolicy] = None,
        max_finished: int = MAX_FINISHED_CALLS,
    ):
        if max_finished < 1:
            raise ValueError("max_finished must be >= 1")
        self._registry: Dict[str, ToolDefinition] = {}
        for definition in definitions:
            if definition.name in self._registry:
                raise ValueError(f"Duplicate tool definition: {definition.name}")
            self._registry[definition.name] = definition
        self.policy = policy or AutoApprovePolicy()
        self._calls: Dict[str, ToolCall] = {}
        self._results: Dict[str, ToolResult] = {}
        self.max_finished = max_finished

    @property
    def tool_names(self) -> List[str]:
        return list(self._registry)

    def describe(self) -> List[Dict[str, Any]]:
        return [
            {"name": d.name, "requiredParams": list(d.required_params), "description": d.description}
            for d in self._registry.values()
        ]

    def submit(self, call: ToolCall) -> Optional[ToolResult]:
        """
        Register a new call and apply the approval policy.
        Returns the ToolResult when the call was dispatched, None when declined or deferred.
        """
        if call.id in self._calls:
            raise ValueError(f"Tool call {call.id} was already submitted")
        if call.status != "pending":
            raise ValueError(f"Tool call {call.id} must be pending, got {call.status}")
        self._calls[call.id] = call

        decision = self.policy.review(call)
        if decision == APPROVE:
            return self.approve(call.id)
        if decision == DECLINE:
            self.decline(call.id)
            return None
        logger.info("Tool call %s (%s) awaiting approval", call.id, call.name)
        return None

    def approve(self, call_id: str) -> ToolResult:
        call = self.get(call_id)
        self._transition(call, "approved")
        return self._dispatch(call)

    def decline(self, call_id: str) -> ToolCall:
        call = self.get(call_id)
        self._transition(call, "declined")
        logger.info("Tool call %s (%s) declined", call.id, call.name)
        self._prune(call.id)
        return call

    def get(self, call_id: str) -> ToolCall:
        try:
            return self._calls[call_id]
        except KeyError:
            raise NotFoundError("Tool call", call_id) from None

    def result_for(self, call_id: str) -> Optional[ToolResult]:
        return self._results.get(call_id)

    def pending_calls(self) -> List[ToolCall]:
        return [c for c in self._calls.values() if c.status == "pending"]

    def history(self) -> List[ToolCall]:
        return list(self._calls.values())

    def _transition(self, call: ToolCall, new_status: str) -> None:
        allowed = _TRANSITIONS.get(call.status, ())
        if new_status not in allowed:
            raise ValueError(f"Illegal tool call transition {call.status} -> {new_status} for {call.id}")
        call.status = new_status

    def _dispatch(self, call: ToolCall) -> ToolResult:
        try:
            definition = self._registry.get(call.name)
            if definition is None:
                raise UnknownToolError(call.name)

            missing = [p for p in definition.required_params if call.parameters.get(p) in (None, "")]
            if missing:
                raise ToolExecutionError(f"{call.name} is missing required parameter(s): {', '.join(missing)}")

            payload = definition.handler(dict(call.parameters))
        except Exception as e:  # pylint: disable=broad-except
            if isinstance(e, (UnknownToolError, ToolExecutionError)):
                logger.warning("Tool call %s (%s) failed: %s", call.id, call.name, e)
            else:
                logger.exception("Tool call %s (%s) raised", call.id, call.name)
            self._transition(call, "failed")
            result = ToolResult(tool_call_id=call.id, error=str(e) or e.__class__.__name__)
        else:
            self._transition(call, "completed")
            result = ToolResult(tool_call_id=call.id, result=payload)
            logger.info("Tool call %s (%s) completed", call.id, call.name)

        self._results[call.id] = result
        self._prune(call.id)
        return result

    def _prune(self, just_finished: str) -> None:
        # Finished calls are ordered by when they finished, not when they were submitted.
        self._calls[just_finished] = self._calls.pop(just_finished)
        finished = [call_id for call_id, c in self._calls.items() if c.is_terminal]
        for call_id in finished[:-self.max_finished]:
            del self._calls[call_id]
            self._results.pop(call_id, None)
