import asyncio

from loguru import logger
from PySide6.QtCore import QPoint, Qt
from PySide6.QtGui import QCloseEvent, QMouseEvent
from PySide6.QtWidgets import QApplication, QLabel, QVBoxLayout, QWidget

from songwatch.config import OverlaySettings
from songwatch.models import SONG_INFO_UPDATE_TOPIC, Notification, SongInfo
from songwatch.service import SongService
from songwatch.ui.commands import WindowCommandError, WindowCommands


class OverlayWindow(QWidget):
    """A small frameless window that shows the song currently playing.

    The window is seeded from the service's query interface and then follows
    `song-info-update` notifications from the publisher.
    """

    def __init__(
        self,
        service: SongService,
        overlay_settings: OverlaySettings | None = None,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self._service = service
        self._settings = overlay_settings if overlay_settings is not None else OverlaySettings()
        self._subscription_id: int | None = None
        self._ui_update_task: asyncio.Task[None] | None = None
        self._drag_offset: QPoint | None = None
        self._shutdown_task: asyncio.Task[None] | None = None

        self.commands = WindowCommands(self)
        self._setup_ui()
        self.show_song(self._service.query())

    def _setup_ui(self) -> None:
        self.setWindowTitle("SongWatch")
        self.setWindowFlag(Qt.WindowType.FramelessWindowHint, True)
        self.setWindowFlag(Qt.WindowType.Tool, True)
        self.setAttribute(Qt.WidgetAttribute.WA_TranslucentBackground, True)
        self.setMinimumWidth(320)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(12, 8, 12, 8)
        layout.setSpacing(2)

        self._title_label = QLabel(self)
        self._title_label.setStyleSheet("font-size: 18px; font-weight: bold;")
        self._artist_label = QLabel(self)
        self._artist_label.setStyleSheet("font-size: 13px;")
        layout.addWidget(self._title_label)
        layout.addWidget(self._artist_label)

    def apply_settings(self) -> None:
        """Applies the configured window state, logging anything the platform rejects."""
        try:
            self.commands.set_always_on_top(self._settings.always_on_top)
            self.commands.set_mouse_passthrough(self._settings.mouse_passthrough)
            self.commands.change_theme_color(self._settings.theme_color)
        except WindowCommandError as e:
            logger.error(f"Could not apply overlay settings: {e}")

    def show_song(self, song: SongInfo) -> None:
        self._title_label.setText(song.title)
        self._artist_label.setText(song.artist)

    async def start_services(self) -> None:
        """Starts the song service and begins following its updates."""
        await self._service.start()
        ui_queue: asyncio.Queue[Notification] = asyncio.Queue(maxsize=100)
        self._subscription_id = await self._service.subscribe(
            SONG_INFO_UPDATE_TOPIC, ui_queue
        )
        self._ui_update_task = asyncio.create_task(self._ui_update_loop(ui_queue))
        # An update may have landed before the subscription existed.
        self.show_song(self._service.query())

    async def _ui_update_loop(self, queue: "asyncio.Queue[Notification]") -> None:
        """Feeds notifications from the publisher to the labels."""
        try:
            while True:
                notification = await queue.get()
                self.show_song(notification.payload)
                queue.task_done()
        except asyncio.CancelledError:
            logger.info("UI update loop cancelled.")

    async def _shutdown(self) -> None:
        """Gracefully shuts down the UI loop and the song service."""
        logger.info("Initiating graceful shutdown...")
        if self._ui_update_task:
            self._ui_update_task.cancel()
        if self._subscription_id is not None:
            await self._service.unsubscribe(self._subscription_id)
            self._subscription_id = None
        await self._service.stop()
        logger.success("Shutdown complete.")

    def mousePressEvent(self, event: QMouseEvent) -> None:  # noqa: N802
        if event.button() == Qt.MouseButton.LeftButton:
            self._drag_offset = (
                event.globalPosition().toPoint() - self.frameGeometry().topLeft()
            )
            event.accept()

    def mouseMoveEvent(self, event: QMouseEvent) -> None:  # noqa: N802
        if self._drag_offset is not None and event.buttons() & Qt.MouseButton.LeftButton:
            self.move(event.globalPosition().toPoint() - self._drag_offset)
            event.accept()

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:  # noqa: N802
        self._drag_offset = None
        event.accept()

    def closeEvent(self, event: QCloseEvent) -> None:  # noqa: N802
        """Overrides QWidget.closeEvent to trigger async shutdown."""
        logger.info("Close event triggered.")
        event.accept()
        self._shutdown_task = asyncio.create_task(self._shutdown())
        self._shutdown_task.add_done_callback(lambda _: QApplication.instance().quit())
