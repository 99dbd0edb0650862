import sys
from pathlib import Path

from loguru import logger

from songwatch.config import Settings
from songwatch.logging_config import setup_logging
from songwatch.service import SongService
from songwatch.ui.overlay import OverlayWindow
from songwatch.ui.qt_asyncio_integration import run_with_asyncio

# The window must outlive main_async(), which returns once services are up.
_main_window: OverlayWindow | None = None


async def main_async() -> int:
    """The main async entry point for the application."""
    global _main_window

    settings = Settings.get_instance()
    log_dir = (
        Path(settings.general.log_directory)
        if settings.general.log_directory
        else None
    )
    setup_logging(
        console_level=settings.general.log_level_console,
        file_level=settings.general.log_level_file,
        log_dir=log_dir,
    )

    service = SongService(settings.stream)
    _main_window = OverlayWindow(service, settings.overlay)
    _main_window.apply_settings()
    _main_window.show()
    await _main_window.start_services()
    return 0


def main() -> None:
    """The synchronous entry point for the application."""
    try:
        exit_code = run_with_asyncio(main_async())
        sys.exit(exit_code)
    except Exception:
        logger.exception("An unhandled exception reached the top-level entry point.")
        sys.exit(1)


if __name__ == "__main__":
    main()
