import asyncio
from collections.abc import Awaitable, Callable

import pytest

from songwatch.supervisor import Supervisor


class ScriptedClient:
    """Stands in for ReconnectingClient; each run() call plays the next step."""

    def __init__(self, steps: list[str]) -> None:
        self.steps = list(steps)
        self.runs = 0
        self.stop_calls = 0

    async def run(self) -> None:
        self.runs += 1
        step = self.steps.pop(0) if self.steps else "forever"
        if step == "crash":
            err_msg = "fault in run loop"
            raise RuntimeError(err_msg)
        if step == "return":
            return
        await asyncio.Event().wait()

    def stop(self) -> None:
        self.stop_calls += 1


@pytest.mark.asyncio
async def test_start_does_not_block_and_stop_cancels() -> None:
    client = ScriptedClient(["forever"])
    supervisor = Supervisor(client)  # type: ignore[arg-type]

    supervisor.start()
    task = supervisor.task
    assert isinstance(task, asyncio.Task)
    await asyncio.sleep(0)
    assert client.runs == 1
    assert not task.done()

    await supervisor.stop()
    assert task.cancelled()
    assert supervisor.task is None
    assert client.stop_calls == 1
    assert supervisor.restarts == 0


@pytest.mark.asyncio
async def test_second_start_is_ignored() -> None:
    client = ScriptedClient(["forever"])
    supervisor = Supervisor(client)  # type: ignore[arg-type]

    supervisor.start()
    first = supervisor.task
    supervisor.start()
    assert supervisor.task is first
    await asyncio.sleep(0)
    assert client.runs == 1

    await supervisor.stop()


@pytest.mark.asyncio
async def test_crashed_task_is_restarted(
    wait_until: Callable[..., Awaitable[None]],
) -> None:
    client = ScriptedClient(["crash", "return", "forever"])
    supervisor = Supervisor(client, restart_delay_s=0.01)  # type: ignore[arg-type]

    supervisor.start()
    await wait_until(lambda: client.runs == 3)

    assert supervisor.restarts == 2
    assert supervisor.task is not None
    assert not supervisor.task.done()

    await supervisor.stop()


@pytest.mark.asyncio
async def test_restart_can_be_disabled() -> None:
    client = ScriptedClient(["crash"])
    supervisor = Supervisor(  # type: ignore[arg-type]
        client, restart_on_crash=False, restart_delay_s=0.01
    )

    supervisor.start()
    await asyncio.sleep(0.05)

    assert client.runs == 1
    assert supervisor.restarts == 0
    assert supervisor.task is not None
    assert supervisor.task.done()

    await supervisor.stop()


@pytest.mark.asyncio
async def test_stop_cancels_pending_restart() -> None:
    client = ScriptedClient(["crash"])
    supervisor = Supervisor(client, restart_delay_s=0.05)  # type: ignore[arg-type]

    supervisor.start()
    await asyncio.sleep(0.01)
    assert supervisor.restarts == 1

    await supervisor.stop()
    await asyncio.sleep(0.1)
    assert client.runs == 1
