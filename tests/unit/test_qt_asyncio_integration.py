import asyncio
from typing import Any
from unittest.mock import MagicMock

import pytest
from pytest_mock import MockerFixture

from songwatch.ui import qt_asyncio_integration
from songwatch.ui.qt_asyncio_integration import run_with_asyncio


@pytest.fixture
def qt_app(mocker: MockerFixture) -> MagicMock:
    """Replaces the Qt application and drives the coroutine with plain asyncio."""
    app_cls = mocker.patch.object(qt_asyncio_integration, "QApplication")

    def _run(coro: Any, **_kwargs: Any) -> None:
        asyncio.run(coro)

    mocker.patch.object(qt_asyncio_integration.QtAsyncio, "run", side_effect=_run)
    return app_cls.instance.return_value


def test_exit_code_of_main_coroutine_is_returned(qt_app: MagicMock) -> None:
    async def main_coro() -> int:
        await asyncio.sleep(0)
        return 3

    assert run_with_asyncio(main_coro()) == 3
    qt_app.quit.assert_not_called()


def test_exception_in_main_coroutine_quits_and_is_reraised(qt_app: MagicMock) -> None:
    async def main_coro() -> int:
        err_msg = "window could not be created"
        raise RuntimeError(err_msg)

    with pytest.raises(RuntimeError, match="window could not be created"):
        run_with_asyncio(main_coro())
    qt_app.quit.assert_called_once()
