# src/tdo/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- Environment decides where things live; the JSON preferences file holds the
  user-editable knobs (transparency, pin, store paths).
- Store paths resolve as: CLI flag > environment > preferences > data dir default.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from .tasks.task_store import atomic_write_lines

logger = logging.getLogger(__name__)

ENV_PREFIX = "TDO"

ACTIVE_FILENAME = "active.md"
ARCHIVE_FILENAME = "archive.md"
CONFIG_FILENAME = "config"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


# Never overrides variables already present in the environment.
load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def _env_optional_path(name: str) -> Path | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    log_to_file: bool

    # ---- Local data paths ----
    data_dir: Path
    config_path: Path

    # ---- Store overrides (None -> preferences / defaults) ----
    active_path: Path | None
    archive_path: Path | None

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "tdo") or "tdo"
        log_level = _env(_k("LOG_LEVEL"), "WARNING")
        log_to_file = _env_bool(_k("LOG_TO_FILE"), True)

        data_dir = _env_path(_k("DATA_DIR"), Path("~/.config/tdo").expanduser())
        config_path = _env_path(_k("CONFIG_PATH"), data_dir / CONFIG_FILENAME)

        # TDO_FILE / TDO_ARCHIVE are the historical names for the two store files.
        active_path = _env_optional_path(_k("FILE"))
        archive_path = _env_optional_path(_k("ARCHIVE"))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            log_to_file=log_to_file,
            data_dir=data_dir,
            config_path=config_path,
            active_path=active_path,
            archive_path=archive_path,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS


@dataclass(slots=True)
class Preferences:
    """User-editable preferences persisted as JSON next to the task files."""

    transparency: int = 100
    active: str | None = None
    archive: str | None = None
    pin: bool = False
    extra: dict[str, object] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> Preferences:
        known = {"transparency", "active", "archive", "pin"}
        transparency = data.get("transparency", 100)
        active = data.get("active")
        archive = data.get("archive")
        return cls(
            transparency=int(transparency) if isinstance(transparency, (int, float)) else 100,
            active=str(active) if active else None,
            archive=str(archive) if archive else None,
            pin=bool(data.get("pin", False)),
            extra={k: v for k, v in data.items() if k not in known},
        )

    def to_dict(self) -> dict[str, object]:
        data = asdict(self)
        extra = data.pop("extra")
        if data["active"] is None:
            data.pop("active")
        if data["archive"] is None:
            data.pop("archive")
        return {**extra, **data}

    @classmethod
    def load_or_create(cls, path: Path) -> Preferences:
        """
        Read preferences from `path`; write defaults if the file does not exist.

        A file that exists but cannot be parsed is left untouched and defaults are
        used for this run.
        """
        if not path.exists():
            prefs = cls()
            path.parent.mkdir(parents=True, exist_ok=True)
            prefs.save(path)
            logger.info("Created default preferences at %s", path)
            return prefs

        try:
            data = json.loads(path.read_text("utf-8"))
            if not isinstance(data, dict):
                raise ValueError("not a JSON object")
            # NaN / Infinity are valid JSON for the parser but not valid percentages.
            return cls.from_dict(data)
        except (OSError, ValueError, OverflowError) as e:
            logger.warning("Failed to load preferences from %s (%s); using defaults.", path, e)
            return cls()

    def save(self, path: Path) -> None:
        atomic_write_lines(path, [json.dumps(self.to_dict(), ensure_ascii=False, indent=2)])


def resolve_store_paths(
    settings: Settings,
    prefs: Preferences,
    *,
    file_flag: str | Path | None = None,
    archive_flag: str | Path | None = None,
) -> tuple[Path, Path]:
    """Pick the open-list and archive paths: flag > env > preferences > data dir."""

    def pick(flag: str | Path | None, env: Path | None, pref: str | None, name: str) -> Path:
        if flag:
            return Path(flag).expanduser()
        if env is not None:
            return env
        if pref:
            return Path(pref).expanduser()
        return settings.data_dir / name

    active = pick(file_flag, settings.active_path, prefs.active, ACTIVE_FILENAME)
    archive = pick(archive_flag, settings.archive_path, prefs.archive, ARCHIVE_FILENAME)
    return active, archive
