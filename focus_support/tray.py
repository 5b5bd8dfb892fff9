from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

import pystray

from .icon import tray_icon_image
from .paths import custom_app_icon
from .summary import checkin_count_line, state_counts_line

if TYPE_CHECKING:
    from .app import FocusSupportApp

logger = logging.getLogger(__name__)


class TrayIcon:
    """Menu-bar icon. Menu callbacks run on pystray's thread and are posted to the app."""

    def __init__(self, app: "FocusSupportApp"):
        self.app = app
        self.icon = pystray.Icon(
            "focus_support",
            self._icon_image(armed=False),
            "Focus Support",
            self._build_menu(),
        )
        self._thread: threading.Thread | None = None

    def _icon_image(self, armed: bool):
        return tray_icon_image(armed, custom_app_icon())

    def _build_menu(self) -> pystray.Menu:
        return pystray.Menu(
            pystray.MenuItem(lambda item: checkin_count_line(self.app.service.stats.snapshot()), None, enabled=False),
            pystray.MenuItem(lambda item: state_counts_line(self.app.service.stats.snapshot()), None, enabled=False),
            pystray.Menu.SEPARATOR,
            pystray.MenuItem("Check in now", self._checkin, default=True),
            pystray.MenuItem("Show today's log", self._show_log),
            pystray.Menu.SEPARATOR,
            pystray.MenuItem("Notification hours...", self._show_settings),
            pystray.MenuItem("Quit", self._quit),
        )

    def _checkin(self, icon, item) -> None:
        self.app.post(self.app.manual_checkin)

    def _show_log(self, icon, item) -> None:
        self.app.post(self.app.show_logs)

    def _show_settings(self, icon, item) -> None:
        self.app.post(self.app.show_settings)

    def _quit(self, icon, item) -> None:
        self.app.post(self.app.quit_app)

    def notify(self, message: str, title: str = "Focus Support") -> None:
        try:
            self.icon.notify(message, title)
        except NotImplementedError:
            logger.debug("Tray backend cannot show notifications")

    def refresh(self) -> None:
        self.icon.icon = self._icon_image(self.app.service.scheduler.is_armed)
        self.icon.update_menu()

    def run(self) -> None:
        self._thread = threading.Thread(target=self.icon.run, name="focus-support-tray", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self.icon.stop()
