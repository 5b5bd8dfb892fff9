from __future__ import annotations

import json
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Protocol

from .models import AISettings, NotificationWindow
from .questions import DEFAULT_QUESTIONS

NOTIFICATION_START_HOUR_KEY = "notification_start_hour"
NOTIFICATION_END_HOUR_KEY = "notification_end_hour"
QUESTIONS_KEY = "questions"
IMAGE_FILES_KEY = "image_files"
AI_ENABLED_KEY = "ai_enabled"
AI_BASE_URL_KEY = "ai_base_url"
AI_TOKEN_KEY = "ai_token"
AI_MODEL_KEY = "ai_model"

DEFAULT_WINDOW = NotificationWindow(start_hour=9, end_hour=20)


class SettingsRepository(Protocol):
    def get_notification_window(self) -> NotificationWindow: ...

    def set_notification_window(self, window: NotificationWindow) -> None: ...


class SettingsStore:
    """Key/value preferences persisted in a small SQLite database."""

    def __init__(self, db_file: Path):
        self._db_file = Path(db_file)
        self._db_file.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._init_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_file, timeout=30)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _connection(self):
        conn = self._connect()
        try:
            yield conn
        finally:
            conn.close()

    def _init_schema(self) -> None:
        with self._lock, self._connection() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS app_settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )
            conn.commit()

    def get_setting(self, key: str, default: str | None = None) -> str | None:
        with self._lock, self._connection() as conn:
            row = conn.execute(
                "SELECT value FROM app_settings WHERE key = ?",
                (key,),
            ).fetchone()
        if row is None:
            return default
        return str(row["value"])

    def get_setting_int(self, key: str, default: int) -> int:
        value = self.get_setting(key)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            return default

    def set_setting(self, key: str, value: str) -> None:
        with self._lock, self._connection() as conn:
            conn.execute(
                """
                INSERT INTO app_settings(key, value)
                VALUES(?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (key, value),
            )
            conn.commit()

    def get_notification_window(self) -> NotificationWindow:
        return NotificationWindow.clamped(
            self.get_setting_int(NOTIFICATION_START_HOUR_KEY, DEFAULT_WINDOW.start_hour),
            self.get_setting_int(NOTIFICATION_END_HOUR_KEY, DEFAULT_WINDOW.end_hour),
        )

    def set_notification_window(self, window: NotificationWindow) -> None:
        window = NotificationWindow.clamped(window.start_hour, window.end_hour)
        self.set_setting(NOTIFICATION_START_HOUR_KEY, str(window.start_hour))
        self.set_setting(NOTIFICATION_END_HOUR_KEY, str(window.end_hour))

    def get_questions(self) -> list[str]:
        stored = self._get_string_list(QUESTIONS_KEY)
        if stored is None:
            return list(DEFAULT_QUESTIONS)
        return stored

    def set_questions(self, questions: list[str]) -> None:
        cleaned = [q.strip() for q in questions if q and q.strip()]
        self.set_setting(QUESTIONS_KEY, json.dumps(cleaned, ensure_ascii=False))

    def get_image_files(self) -> list[str]:
        return self._get_string_list(IMAGE_FILES_KEY) or []

    def set_image_files(self, file_names: list[str]) -> None:
        self.set_setting(IMAGE_FILES_KEY, json.dumps(list(file_names), ensure_ascii=False))

    def reconcile_image_files(self, existing: list[str]) -> list[str]:
        """Align the configured image list with the files actually on disk."""
        configured = self.get_image_files()
        if not configured:
            reconciled = list(existing)
        else:
            on_disk = set(existing)
            reconciled = [name for name in configured if name in on_disk]
            reconciled.extend(name for name in existing if name not in reconciled)

        if reconciled != configured:
            self.set_image_files(reconciled)
        return reconciled

    def get_ai_settings(self) -> AISettings:
        return AISettings(
            enabled=self.get_setting(AI_ENABLED_KEY, "0") == "1",
            base_url=self.get_setting(AI_BASE_URL_KEY, "") or "",
            token=self.get_setting(AI_TOKEN_KEY, "") or "",
            model=self.get_setting(AI_MODEL_KEY, "") or "",
        )

    def set_ai_settings(self, settings: AISettings) -> None:
        self.set_setting(AI_ENABLED_KEY, "1" if settings.enabled else "0")
        self.set_setting(AI_BASE_URL_KEY, settings.base_url.strip())
        self.set_setting(AI_TOKEN_KEY, settings.token.strip())
        self.set_setting(AI_MODEL_KEY, settings.model.strip())

    def _get_string_list(self, key: str) -> list[str] | None:
        raw = self.get_setting(key)
        if raw is None:
            return None
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            return None
        if not isinstance(parsed, list):
            return None
        return [str(item) for item in parsed]
