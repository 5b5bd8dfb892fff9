from __future__ import annotations

import argparse
import logging
import queue
import tkinter as tk
from datetime import date
from tkinter import messagebox, ttk
from tkinter.scrolledtext import ScrolledText
from typing import Callable

from . import __version__
from .context import ContextWatcher, local_now
from .errors import LogReadError
from .logging_config import configure_logging
from .logstore import LogStore
from .models import CheckinState, NotificationWindow
from .paths import app_log_path, ensure_directories, existing_image_files, logs_directory, settings_path
from .service import CheckinService
from .settings import SettingsStore
from .summary import format_breakdown, format_entries
from .window import next_allowed_instant

logger = logging.getLogger(__name__)

DRAIN_INTERVAL_MS = 250
BREAKDOWN_DAYS = 7
AUTO_STATE = "auto"


class CheckinDialog(tk.Toplevel):
    """Modal prompt asking for a one-line reflection and an attention state."""

    def __init__(self, master: tk.Misc, question: str):
        super().__init__(master)
        self.title("Check-in")
        self.resizable(False, False)
        self.result: tuple[str, CheckinState | None] | None = None

        frame = ttk.Frame(self, padding=14)
        frame.grid(row=0, column=0, sticky="nsew")

        ttk.Label(frame, text=question, wraplength=320).grid(row=0, column=0, columnspan=4, sticky="w")
        self.response_var = tk.StringVar()
        entry = ttk.Entry(frame, textvariable=self.response_var, width=44)
        entry.grid(row=1, column=0, columnspan=4, sticky="ew", pady=(8, 8))

        self.state_var = tk.StringVar(value=AUTO_STATE)
        ttk.Radiobutton(frame, text="Auto", value=AUTO_STATE, variable=self.state_var).grid(row=2, column=0, sticky="w")
        for column, state in enumerate(CheckinState, start=1):
            ttk.Radiobutton(frame, text=state.label, value=state.value, variable=self.state_var).grid(
                row=2, column=column, sticky="w"
            )

        buttons = ttk.Frame(frame)
        buttons.grid(row=3, column=0, columnspan=4, sticky="e", pady=(12, 0))
        ttk.Button(buttons, text="Skip", command=self.destroy).grid(row=0, column=0, padx=(0, 6))
        ttk.Button(buttons, text="Send", command=self._submit).grid(row=0, column=1)

        self.bind("<Return>", lambda _event: self._submit())
        self.bind("<Escape>", lambda _event: self.destroy())
        self.attributes("-topmost", True)
        entry.focus_set()
        self.grab_set()

    def _submit(self) -> None:
        text = self.response_var.get().strip()
        if not text:
            self.destroy()
            return
        raw = self.state_var.get()
        state = None if raw == AUTO_STATE else CheckinState(raw)
        self.result = (text, state)
        self.destroy()


class FocusSupportApp(tk.Tk):
    """Hidden Tk root that serves as the serial context for all check-in state."""

    def __init__(self):
        super().__init__()
        self.withdraw()
        self.title("Focus Support")

        ensure_directories()
        self.settings = SettingsStore(settings_path())
        self.settings.reconcile_image_files(existing_image_files())
        self.events: queue.Queue[Callable[[], None]] = queue.Queue()
        self.watcher = ContextWatcher()
        self.service = CheckinService(
            self.settings,
            LogStore(logs_directory()),
            emitter=self.fire_checkin_signal,
            dispatch=self.post,
            watcher=self.watcher,
        )
        self._prompt_open = False
        self._log_window: tk.Toplevel | None = None
        self._log_text: ScrolledText | None = None

        from .tray import TrayIcon

        self.tray = TrayIcon(self)
        self.protocol("WM_DELETE_WINDOW", self.quit_app)
        self.after(DRAIN_INTERVAL_MS, self._drain_events)

    def post(self, task: Callable[[], None]) -> None:
        self.events.put(task)

    def _drain_events(self) -> None:
        while True:
            try:
                task = self.events.get_nowait()
            except queue.Empty:
                break
            try:
                task()
            except Exception:  # noqa: BLE001
                logger.exception("UI task failed")
        self.after(DRAIN_INTERVAL_MS, self._drain_events)

    def fire_checkin_signal(self) -> None:
        self.tray.notify("What's on your mind right now? 🤔")
        self.tray.refresh()
        self.post(self.manual_checkin)

    def manual_checkin(self) -> None:
        if self._prompt_open:
            return
        question = self.service.next_question()
        self._prompt_open = True
        try:
            dialog = CheckinDialog(self, question)
            self.wait_window(dialog)
        finally:
            self._prompt_open = False

        if dialog.result is None:
            return
        response, state = dialog.result
        result = self.service.submit_answer(response, state=state, question=question)
        self.tray.refresh()
        if not result.saved:
            messagebox.showwarning("Could not save", "The check-in was counted but could not be written to the log.")
        messagebox.showinfo("Feedback", result.entry.state.feedback_message)

    def show_logs(self) -> None:
        today = local_now().date()
        try:
            body = format_entries(today, self.service.today_entries())
            body += "\nLast 7 days\n" + format_breakdown(self.service.recent_breakdown(BREAKDOWN_DAYS))
        except LogReadError as exc:
            messagebox.showerror("Log unavailable", str(exc))
            return

        if self._log_window is None or self._log_text is None or not self._log_window.winfo_exists():
            self._log_window = tk.Toplevel(self)
            self._log_window.title("Today's log")
            self._log_window.geometry("560x420")
            self._log_text = ScrolledText(self._log_window, wrap="word")
            self._log_text.pack(fill="both", expand=True)
        text = self._log_text
        text.configure(state="normal")
        text.delete("1.0", "end")
        text.insert("end", body)
        text.configure(state="disabled")
        self._log_window.deiconify()
        self._log_window.lift()

    def show_settings(self) -> None:
        current = self.service.get_notification_window()
        window = tk.Toplevel(self)
        window.title("Notification hours")
        frame = ttk.Frame(window, padding=14)
        frame.grid(row=0, column=0)

        start_var = tk.IntVar(value=current.start_hour)
        end_var = tk.IntVar(value=current.end_hour)
        ttk.Label(frame, text="From").grid(row=0, column=0, padx=(0, 6))
        ttk.Spinbox(frame, from_=0, to=23, width=4, textvariable=start_var).grid(row=0, column=1)
        ttk.Label(frame, text="until").grid(row=0, column=2, padx=6)
        ttk.Spinbox(frame, from_=0, to=23, width=4, textvariable=end_var).grid(row=0, column=3)
        ttk.Label(frame, text="Equal hours mean always on.").grid(row=1, column=0, columnspan=4, pady=(8, 0))

        def _save() -> None:
            try:
                chosen = NotificationWindow.clamped(start_var.get(), end_var.get())
            except (tk.TclError, ValueError):
                messagebox.showerror("Invalid hours", "Choose hours between 0 and 23.", parent=window)
                return
            self.service.set_notification_window(chosen)
            self.tray.refresh()
            window.destroy()

        ttk.Button(frame, text="Save", command=_save).grid(row=2, column=3, sticky="e", pady=(12, 0))

    def quit_app(self) -> None:
        self.service.shutdown()
        self.tray.stop()
        self.destroy()

    def run(self) -> None:
        self.service.start()
        self.tray.run()
        self.tray.refresh()
        self.mainloop()


def _show_log_cli(day: date) -> int:
    store = LogStore(logs_directory())
    try:
        entries = store.read_day(day)
    except LogReadError as exc:
        print(f"error: {exc}")
        return 1
    print(format_entries(day, entries), end="")
    return 0


def _stats_cli(days: int) -> int:
    store = LogStore(logs_directory())
    print(format_breakdown(store.recent_daily_breakdown(days)))
    return 0


def _next_checkin_cli() -> int:
    settings = SettingsStore(settings_path())
    window = settings.get_notification_window()
    target = next_allowed_instant(local_now(), window)
    print(f"window={window.start_hour:02d}-{window.end_hour:02d} next={target.isoformat(timespec='seconds')}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="focus_support")
    parser.add_argument("--version", action="store_true", help="Print app version and exit")
    parser.add_argument(
        "--show-log",
        nargs="?",
        const="today",
        metavar="YYYY-MM-DD",
        help="Print the check-in log for a day (default today) and exit",
    )
    parser.add_argument("--stats", type=int, metavar="DAYS", help="Print per-day state counts and exit")
    parser.add_argument("--next-checkin", action="store_true", help="Print the next allowed check-in time and exit")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return 0

    ensure_directories()
    configure_logging(logging.DEBUG if args.debug else logging.INFO, app_log_path())

    if args.show_log is not None:
        if args.show_log == "today":
            day = local_now().date()
        else:
            try:
                day = date.fromisoformat(args.show_log)
            except ValueError:
                parser.error(f"invalid date: {args.show_log}")
        return _show_log_cli(day)
    if args.stats is not None:
        return _stats_cli(max(1, args.stats))
    if args.next_checkin:
        return _next_checkin_cli()

    app = FocusSupportApp()
    app.run()
    return 0
