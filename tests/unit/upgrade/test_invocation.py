"""Tests for step call containment."""

import asyncio

import pytest

from upshift.upgrade.errors import RollbackStepError, StepExecutionError
from upshift.upgrade.invocation import invoke_step_call
from upshift.upgrade.models import StepResult


class TestInvokeStepCall:
    """Tests for invoke_step_call."""

    @pytest.mark.asyncio
    async def test_returns_value(self) -> None:
        async def call() -> int:
            return 7

        assert await invoke_step_call("a", call, StepExecutionError) == 7

    @pytest.mark.asyncio
    async def test_wraps_exceptions(self) -> None:
        async def call() -> None:
            raise KeyError("user_id")

        with pytest.raises(RollbackStepError) as exc_info:
            await invoke_step_call("a", call, RollbackStepError)

        assert exc_info.value.step_id == "a"
        assert "KeyError" in exc_info.value.message
        assert isinstance(exc_info.value.__cause__, KeyError)

    @pytest.mark.asyncio
    async def test_internal_cancellation_is_a_step_failure(self) -> None:
        """A cancelled subtask inside the step does not cancel the run."""

        async def call() -> None:
            inner = asyncio.create_task(asyncio.sleep(10))
            inner.cancel()
            await inner

        with pytest.raises(StepExecutionError, match="cancelled"):
            await invoke_step_call("a", call, StepExecutionError)

    @pytest.mark.asyncio
    async def test_outer_cancellation_propagates(self) -> None:
        started = asyncio.Event()

        async def call() -> None:
            started.set()
            await asyncio.sleep(10)

        task = asyncio.create_task(invoke_step_call("a", call, StepExecutionError))
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

    @pytest.mark.asyncio
    async def test_rejects_unexpected_return_type(self) -> None:
        """A dict where a StepResult belongs is a step failure."""

        async def call() -> dict[str, bool]:
            return {"success": True}

        with pytest.raises(StepExecutionError) as exc_info:
            await invoke_step_call("a", call, StepExecutionError, StepResult)

        assert exc_info.value.step_id == "a"
        assert "returned dict, expected StepResult" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_accepts_expected_return_type(self) -> None:
        async def call() -> StepResult:
            return StepResult(success=True, message="ok")

        result = await invoke_step_call("a", call, RollbackStepError, StepResult)

        assert result.success
