"""Helper-Funktionen, um statische und dynamische Konfiguration zu trennen.

Die Engines lesen ``config.ini`` als Basis. Lokale Anpassungen (z. B. kürzere
Debounce-Zeiten beim Entwickeln) gehören in ``config.runtime.ini``, damit die
versionierte Hauptdatei unverändert bleibt. Umgebungsvariablen der Form
``GUIDE_<SECTION>_<OPTION>`` (auch aus einer ``.env``-Datei) überschreiben
beides.
"""

from __future__ import annotations

import configparser
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv

from glossary.coordinator import CoordinatorSettings
from glossary.scanner import ScannerSettings

logger = logging.getLogger(__name__)

CONFIG_MAIN_PATH = Path(__file__).resolve().parent / "config.ini"
CONFIG_RUNTIME_PATH = Path(__file__).resolve().parent / "config.runtime.ini"
ENV_PREFIX = "GUIDE_"


def load_base_config(path: Optional[Path] = None) -> configparser.ConfigParser:
    """Lädt ausschließlich die statische Grundkonfiguration."""
    cfg = configparser.ConfigParser()
    cfg.read(path or CONFIG_MAIN_PATH, encoding="utf-8-sig")
    return cfg


def load_runtime_config(path: Optional[Path] = None) -> configparser.ConfigParser:
    """Lädt nur die dynamische Laufzeitkonfiguration."""
    cfg = configparser.ConfigParser()
    runtime_path = path or CONFIG_RUNTIME_PATH
    if runtime_path.exists():
        cfg.read(runtime_path, encoding="utf-8-sig")
    return cfg


def apply_env_overrides(cfg: configparser.ConfigParser) -> None:
    """Übernimmt ``GUIDE_<SECTION>_<OPTION>``-Variablen für bekannte Sektionen."""
    for section in cfg.sections():
        prefix = f"{ENV_PREFIX}{section.upper()}_"
        for env_name, value in os.environ.items():
            if not env_name.startswith(prefix):
                continue
            option = env_name[len(prefix):].lower()
            if option:
                cfg.set(section, option, value)


def load_merged_config(
    base_path: Optional[Path] = None,
    runtime_path: Optional[Path] = None,
    *,
    use_env: bool = True,
) -> configparser.ConfigParser:
    """Kombiniert statische, dynamische und Umgebungs-Konfiguration."""
    base = load_base_config(base_path)
    runtime = load_runtime_config(runtime_path)
    for section in runtime.sections():
        if not base.has_section(section):
            base.add_section(section)
        for key, value in runtime.items(section):
            base.set(section, key, value)
    if use_env:
        load_dotenv()
        apply_env_overrides(base)
    return base


def _get_float(cfg: configparser.ConfigParser, section: str, option: str, fallback: float) -> float:
    """Liest einen Float und fällt bei ungültigem Wert auf ``fallback`` zurück."""
    if not cfg.has_option(section, option):
        return fallback
    try:
        return cfg.getfloat(section, option)
    except ValueError:
        logger.warning(
            "Ignoriere ungueltigen Wert fuer %s.%s: %s",
            section,
            option,
            cfg.get(section, option, fallback=""),
        )
        return fallback


def _get_int(cfg: configparser.ConfigParser, section: str, option: str, fallback: int) -> int:
    if not cfg.has_option(section, option):
        return fallback
    try:
        return cfg.getint(section, option)
    except ValueError:
        logger.warning(
            "Ignoriere ungueltigen Wert fuer %s.%s: %s",
            section,
            option,
            cfg.get(section, option, fallback=""),
        )
        return fallback


def _get_bool(cfg: configparser.ConfigParser, section: str, option: str, fallback: bool) -> bool:
    if not cfg.has_option(section, option):
        return fallback
    try:
        return cfg.getboolean(section, option)
    except ValueError:
        logger.warning("Ignoriere ungueltigen Schalter %s.%s", section, option)
        return fallback


def _get_checkpoints(cfg: configparser.ConfigParser, fallback: Tuple[float, ...]) -> Tuple[float, ...]:
    raw = cfg.get("COORDINATOR", "warmup_checkpoints_ms", fallback="")
    if not raw.strip():
        return fallback
    try:
        return tuple(float(part) / 1000.0 for part in raw.split(",") if part.strip())
    except ValueError:
        logger.warning("Ignoriere ungueltige Warm-up-Zeiten: %s", raw)
        return fallback


@dataclass
class DisplaySettings:
    show_banners: bool = True
    show_cards: bool = True
    show_wiki: bool = True
    show_index_tags: bool = True


@dataclass
class EngineSettings:
    scanner: ScannerSettings = field(default_factory=ScannerSettings)
    coordinator: CoordinatorSettings = field(default_factory=CoordinatorSettings)
    display: DisplaySettings = field(default_factory=DisplaySettings)
    default_priority: float = 0.0
    card_default_priority: float = 50.0
    max_index_tags: int = 3
    index_cache_path: Optional[Path] = None


def load_engine_settings(cfg: Optional[configparser.ConfigParser] = None) -> EngineSettings:
    """Übersetzt die Konfiguration in typisierte Einstellungen für die Engines."""
    if cfg is None:
        cfg = load_merged_config()

    defaults_scanner = ScannerSettings()
    scanner = ScannerSettings(
        min_length=_get_int(cfg, "SCANNER", "min_length", defaults_scanner.min_length),
        max_length=_get_int(cfg, "SCANNER", "max_length", defaults_scanner.max_length),
        max_container_chars=_get_int(
            cfg, "SCANNER", "max_container_chars", defaults_scanner.max_container_chars
        ),
    )

    defaults_coord = CoordinatorSettings()
    coordinator = CoordinatorSettings(
        debounce=_get_float(cfg, "COORDINATOR", "debounce_ms", defaults_coord.debounce * 1000) / 1000.0,
        min_interval=_get_float(
            cfg, "COORDINATOR", "min_interval_ms", defaults_coord.min_interval * 1000
        ) / 1000.0,
        warmup_checkpoints=_get_checkpoints(cfg, defaults_coord.warmup_checkpoints),
        scroll_debounce=_get_float(
            cfg, "COORDINATOR", "scroll_debounce_ms", defaults_coord.scroll_debounce * 1000
        ) / 1000.0,
    )

    display = DisplaySettings(
        show_banners=_get_bool(cfg, "DISPLAY", "show_banners", True),
        show_cards=_get_bool(cfg, "DISPLAY", "show_cards", True),
        show_wiki=_get_bool(cfg, "DISPLAY", "show_wiki", True),
        show_index_tags=_get_bool(cfg, "DISPLAY", "show_index_tags", True),
    )

    cache_path_raw = cfg.get("SCANNER", "index_cache_path", fallback="").strip()

    return EngineSettings(
        scanner=scanner,
        coordinator=coordinator,
        display=display,
        default_priority=_get_float(cfg, "RULES", "default_priority", 0.0),
        card_default_priority=_get_float(cfg, "RULES", "card_default_priority", 50.0),
        max_index_tags=max(0, _get_int(cfg, "RULES", "max_index_tags", 3)),
        index_cache_path=Path(cache_path_raw) if cache_path_raw else None,
    )
