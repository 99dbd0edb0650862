import sys
from collections.abc import Coroutine
from typing import Any

from loguru import logger
from PySide6 import QtAsyncio
from PySide6.QtWidgets import QApplication


def run_with_asyncio(main_coro: Coroutine[Any, Any, int]) -> int:
    """Sets up and runs the application with an integrated Qt and asyncio event loop.

    The QApplication is created first so that widgets can be built, then
    `PySide6.QtAsyncio` installs an asyncio event loop driven by Qt's own loop
    and schedules `main_coro` on it. The call blocks until the application
    quits; any tasks still pending at that point are cancelled by QtAsyncio.

    Args:
        main_coro: The main asynchronous function (coroutine) of the application.
                   This coroutine should set up the UI and start the core logic,
                   then return an exit code.

    Returns:
        The exit code returned by `main_coro`.

    Raises:
        Exception: Whatever `main_coro` raised, re-raised once the Qt loop exits.
    """
    app = QApplication.instance()
    if app is None:
        app = QApplication(sys.argv)

    exit_code = 0
    failure: Exception | None = None

    async def _run_main() -> None:
        nonlocal exit_code, failure
        try:
            exit_code = await main_coro
        except Exception as e:
            failure = e
            logger.error(f"The main application task exited with an exception: {e}")
            QApplication.instance().quit()

    logger.info("Starting the Qt application event loop.")
    QtAsyncio.run(_run_main(), keep_running=True, quit_qapp=True)
    logger.info("Qt application event loop has finished.")

    if failure is not None:
        raise failure
    return exit_code
