from loguru import logger
from PySide6.QtCore import Qt
from PySide6.QtGui import QColor
from PySide6.QtWidgets import QWidget


class WindowCommandError(Exception):
    """Raised when the windowing platform rejects a command."""


class WindowCommands:
    """Thin pass-through commands that adjust the overlay window.

    Each command forwards to the Qt window API. Any failure reported by the
    platform is re-raised as a `WindowCommandError` carrying its message.
    """

    def __init__(self, window: QWidget) -> None:
        self._window = window

    def set_always_on_top(self, flag: bool) -> None:
        self._set_window_flag(Qt.WindowType.WindowStaysOnTopHint, flag)
        logger.debug(f"Always-on-top set to {flag}.")

    def set_mouse_passthrough(self, flag: bool) -> None:
        """Lets mouse input fall through the window to whatever is beneath it."""
        self._set_window_flag(Qt.WindowType.WindowTransparentForInput, flag)
        try:
            self._window.setAttribute(
                Qt.WidgetAttribute.WA_TransparentForMouseEvents, flag
            )
        except RuntimeError as e:
            raise WindowCommandError(str(e)) from e
        logger.debug(f"Mouse passthrough set to {flag}.")

    def change_theme_color(self, color: str) -> str:
        """Applies a text color to the overlay and returns it.

        Args:
            color: Any color name Qt understands ("#ff8800", "white", ...).

        Returns:
            The color that was applied, exactly as given.

        Raises:
            WindowCommandError: If the color is not recognised.
        """
        if not QColor(color).isValid():
            err_msg = f"Invalid color: {color!r}"
            raise WindowCommandError(err_msg)
        try:
            self._window.setStyleSheet(f"color: {color};")
        except RuntimeError as e:
            raise WindowCommandError(str(e)) from e
        logger.debug(f"Theme color changed to {color}.")
        return color

    def _set_window_flag(self, flag: Qt.WindowType, on: bool) -> None:
        # Changing window flags hides a visible window, so it has to be re-shown.
        try:
            was_visible = self._window.isVisible()
            self._window.setWindowFlag(flag, on)
            if was_visible:
                self._window.show()
        except RuntimeError as e:
            raise WindowCommandError(str(e)) from e
