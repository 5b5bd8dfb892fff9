from __future__ import annotations

import os
import sys
from datetime import date
from pathlib import Path

APP_DIR_NAME = "FocusSupport"
HOME_ENV_VAR = "FOCUS_SUPPORT_HOME"


def data_directory() -> Path:
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override)
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_DIR_NAME
    if os.name == "nt":
        local_appdata = os.environ.get("LOCALAPPDATA")
        base = Path(local_appdata) if local_appdata else Path.home() / "AppData" / "Local"
        return base / APP_DIR_NAME
    xdg = os.environ.get("XDG_DATA_HOME")
    base = Path(xdg) if xdg else Path.home() / ".local" / "share"
    return base / APP_DIR_NAME


def logs_directory() -> Path:
    return data_directory() / "Logs"


def images_directory() -> Path:
    return data_directory() / "Images"


def settings_path() -> Path:
    return data_directory() / "settings.sqlite3"


def app_log_path() -> Path:
    return data_directory() / "focus_support.log"


def ensure_directories() -> None:
    logs_directory().mkdir(parents=True, exist_ok=True)
    images_directory().mkdir(parents=True, exist_ok=True)


def log_file_name(day: date) -> str:
    return f"log_{day.strftime('%Y-%m-%d')}.log"


def existing_image_files(directory: Path | None = None) -> list[str]:
    folder = directory if directory is not None else images_directory()
    if not folder.is_dir():
        return []
    return sorted(item.name for item in folder.iterdir() if item.is_file())


def app_icon_directory() -> Path:
    return data_directory() / "AppIcon"


def custom_app_icon() -> Path | None:
    folder = app_icon_directory()
    if not folder.is_dir():
        return None
    candidates = sorted(folder.glob("status_icon.*"))
    return candidates[0] if candidates else None
