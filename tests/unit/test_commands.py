from unittest.mock import MagicMock

import pytest
from pytest_mock import MockerFixture
from PySide6.QtCore import Qt
from PySide6.QtWidgets import QWidget

from songwatch.ui.commands import WindowCommandError, WindowCommands


@pytest.fixture
def window(mocker: MockerFixture) -> MagicMock:
    mock = mocker.MagicMock(spec=QWidget)
    mock.isVisible.return_value = True
    return mock


def test_set_always_on_top_forwards_flag(window: MagicMock) -> None:
    WindowCommands(window).set_always_on_top(True)

    window.setWindowFlag.assert_called_once_with(
        Qt.WindowType.WindowStaysOnTopHint, True
    )
    # Changing window flags hides the window; it must be shown again.
    window.show.assert_called_once()


def test_hidden_window_stays_hidden(window: MagicMock) -> None:
    window.isVisible.return_value = False
    WindowCommands(window).set_always_on_top(False)

    window.setWindowFlag.assert_called_once_with(
        Qt.WindowType.WindowStaysOnTopHint, False
    )
    window.show.assert_not_called()


def test_set_mouse_passthrough(window: MagicMock) -> None:
    WindowCommands(window).set_mouse_passthrough(True)

    window.setWindowFlag.assert_called_once_with(
        Qt.WindowType.WindowTransparentForInput, True
    )
    window.setAttribute.assert_called_once_with(
        Qt.WidgetAttribute.WA_TransparentForMouseEvents, True
    )


def test_platform_errors_become_command_errors(window: MagicMock) -> None:
    window.setWindowFlag.side_effect = RuntimeError("window was deleted")

    with pytest.raises(WindowCommandError, match="window was deleted"):
        WindowCommands(window).set_always_on_top(True)


def test_change_theme_color_returns_color(window: MagicMock) -> None:
    assert WindowCommands(window).change_theme_color("#ff8800") == "#ff8800"
    window.setStyleSheet.assert_called_once_with("color: #ff8800;")


def test_change_theme_color_rejects_invalid_color(window: MagicMock) -> None:
    with pytest.raises(WindowCommandError, match="Invalid color"):
        WindowCommands(window).change_theme_color("not-a-colour")
    window.setStyleSheet.assert_not_called()
