"""Containment of step callables.

Whatever a step raises is converted into the caller's error type so a single
misbehaving step can never take down the orchestrator.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from upshift.upgrade.errors import RollbackStepError, StepExecutionError

T = TypeVar("T")


async def invoke_step_call(
    step_id: str,
    call: Callable[[], Awaitable[T]],
    error_cls: type[StepExecutionError] | type[RollbackStepError],
    expected: type[T] | None = None,
) -> T:
    """Await a step callable, wrapping failures in error_cls.

    When expected is given, a return value of any other type is a failure
    too; the caller never touches a malformed result.

    A CancelledError raised from inside the step while the surrounding task
    is not itself being cancelled (e.g. one of the step's own subtasks was
    cancelled) counts as a step failure rather than stopping the run.
    """
    try:
        result = await call()
        if expected is not None and not isinstance(result, expected):
            raise error_cls(
                f"Step '{step_id}' returned {type(result).__name__}, "
                f"expected {expected.__name__}",
                step_id,
            )
        return result
    except asyncio.CancelledError as e:
        task = asyncio.current_task()
        if task is not None and task.cancelling():
            raise
        raise error_cls(f"Step '{step_id}' was cancelled internally", step_id) from e
    except (StepExecutionError, RollbackStepError):
        raise
    except Exception as e:
        raise error_cls(f"Step '{step_id}' raised {type(e).__name__}: {e}", step_id) from e
