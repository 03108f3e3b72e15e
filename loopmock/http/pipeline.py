"""Per-request phase driver.

Phases run strictly in order: before, matched, after. Within a phase each
action gets its own Continuation and the next action starts only when that
continuation is called. The end of every phase yields once through
``timers.set_immediate`` before the next phase begins. When the before
phase completes, the response is handed to the caller unless an action
has taken over delivery. Whatever happens, the response body is closed
and ``mock_response_done`` fires; an error is then emitted on the request.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from enum import Enum
from typing import Any

from loopmock.errors import PipelinePhaseError
from loopmock.http.actions import Action
from loopmock.http.proxy import MockClientRequest
from loopmock.runtime import timers
from loopmock.runtime.client import IncomingResponse

logger = logging.getLogger(__name__)


class Phase(Enum):
    BEFORE = "before"
    MATCHED = "matched"
    AFTER = "after"


class Continuation:
    """The ``next`` callback given to one action. Honoured once."""

    def __init__(self, resume: Callable[[Any], None], label: str) -> None:
        self._resume = resume
        self.label = label
        self.called = False

    def __call__(self, error: Any = None) -> None:
        if self.called:
            logger.warning("next() called more than once by %s; ignoring", self.label)
            return
        self.called = True
        self._resume(error)


class RequestPipeline:
    def __init__(
        self,
        request: MockClientRequest,
        response: IncomingResponse,
        before: Sequence[Action],
        matched: Sequence[Action],
        after: Sequence[Action],
    ) -> None:
        self.request = request
        self.response = response
        self.phases: list[tuple[Phase, list[Action]]] = [
            (Phase.BEFORE, list(before)),
            (Phase.MATCHED, list(matched)),
            (Phase.AFTER, list(after)),
        ]
        self.finished = False
        self.error: BaseException | None = None

    def start(self) -> None:
        deferring = self.phases[0][1] + self.phases[1][1]
        if any(action.defers_response for action in deferring):
            self.request.defer_response()
        self._run_action(0, 0)

    def _run_action(self, phase_index: int, action_index: int) -> None:
        phase, actions = self.phases[phase_index]
        if action_index >= len(actions):
            timers.set_immediate(self._phase_done, phase_index)
            return

        def resume(error: Any) -> None:
            if error is not None:
                self._finish(error, phase)
            else:
                self._run_action(phase_index, action_index + 1)

        continuation = Continuation(resume, f"{phase.value} action #{action_index}")
        try:
            actions[action_index].run(self.request, self.response, continuation)
        except Exception as err:
            if continuation.called:
                raise
            continuation(err)

    def _phase_done(self, phase_index: int) -> None:
        if self.finished:
            return
        phase, _ = self.phases[phase_index]
        if phase is Phase.BEFORE and not self.request.response_deferred:
            self.request.deliver_response(self.response)
        if phase_index + 1 < len(self.phases):
            self._run_action(phase_index + 1, 0)
        else:
            self._finish(None)

    def _finish(self, error: Any, phase: Phase | None = None) -> None:
        if self.finished:
            return
        self.finished = True
        self.response.push(None)
        self.request.emit("mock_response_done", self.response)
        if error is None:
            return

        if not isinstance(error, BaseException):
            error = PipelinePhaseError(str(error), phase=phase.value if phase else None, value=error)
        self.error = error
        logger.debug(
            "pipeline for %s %s failed in %s phase: %s",
            self.request.method,
            self.request.url,
            phase.value if phase else "?",
            error,
        )
        self.request.emit("error", error)
