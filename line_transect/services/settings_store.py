from __future__ import annotations

import logging
import sys
from configparser import ConfigParser
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EditorSettings:
    corridor_half_width: float = 25.0
    click_delay_ms: int = 500
    point_snap_distance: float = 50.0
    endpoint_snap_distance: float = 20.0
    overlap_tolerance: float = 0.0
    tick_spacing: float = 100.0


def _default_ini_path() -> Path:
    """
    Resolve the default INI path.

    - Frozen / EXE build: place ini next to the executable
    - Source run: place ini next to this module
    """
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent / "line_transect.ini"

    return Path(__file__).resolve().parent / "line_transect.ini"


class SettingsStore:
    """Editor settings persisted in the ``[line_transect]`` INI section."""

    DEFAULT_PATH = _default_ini_path()
    SECTION = "line_transect"

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or self.DEFAULT_PATH
        self._config = ConfigParser(strict=False, delimiters=("=",))
        self._config.optionxform = str
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> EditorSettings:
        """Read settings; missing keys use defaults, bad values warn and use defaults."""
        defaults = EditorSettings()
        if not self._config.has_section(self.SECTION):
            return defaults

        section = self._config[self.SECTION]
        values: dict[str, object] = {}
        for field in fields(EditorSettings):
            raw = section.get(field.name, "").strip()
            if not raw:
                continue
            parsed = self._parse(field.name, raw, type(getattr(defaults, field.name)))
            if parsed is not None:
                values[field.name] = parsed
        return replace(defaults, **values)

    def save(self, settings: EditorSettings) -> None:
        if not self._config.has_section(self.SECTION):
            self._config.add_section(self.SECTION)
        section = self._config[self.SECTION]
        for key, value in asdict(settings).items():
            section[key] = str(value)
        self._save()

    def set_value(self, key: str, value: float | int) -> None:
        """Persist one setting, ignoring unknown keys and invalid values."""
        current = self.load()
        if key not in asdict(current):
            logger.warning("Ignoring unknown setting %r", key)
            return
        parsed = self._parse(key, str(value), type(getattr(current, key)))
        if parsed is None:
            return
        self.save(replace(current, **{key: parsed}))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _parse(self, key: str, raw: str, kind: type) -> float | int | None:
        try:
            value = kind(float(raw)) if kind is int else kind(raw)
        except ValueError:
            logger.warning("Invalid value %r for setting %s; using default", raw, key)
            return None
        if value < 0:
            logger.warning("Negative value %r for setting %s; using default", raw, key)
            return None
        return value

    def _load(self) -> None:
        if self._path.exists():
            self._config.read(self._path)

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("w", encoding="utf-8") as fp:
            self._config.write(fp)
