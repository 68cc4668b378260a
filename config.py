"""
Configuration, constants, logging and settings persistence.
"""

import os
import json
import logging
from pathlib import Path
from typing import Dict, Optional

from dotenv import load_dotenv

# --- LOAD ENV ---
load_dotenv()

# --- LOGGING ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger("waypoint")


def log_event(level: int, message: str, **data):
    """Lightweight structured logging helper."""
    try:
        serialized = " | ".join(f"{k}={v}" for k, v in data.items())
        logger.log(level, f"{message}{' | ' + serialized if serialized else ''}")
    except Exception:
        logger.log(level, message)


# --- MARKERS ---
WAYPOINT_FLAG = "%% Waypoint %%"
BEGIN_WAYPOINT = "%% Begin Waypoint %%"
END_WAYPOINT = "%% End Waypoint %%"

# --- PATHS ---
VAULT_DIR = Path(os.getenv("WAYPOINT_VAULT_DIR", "vault")).expanduser()
NOTE_EXTENSION = ".md"

# --- CONSTANTS ---
DEBOUNCE_SECONDS = int(os.getenv("WAYPOINT_DEBOUNCE_MS", "500")) / 1000.0
WATCH_ENABLED = os.getenv("WAYPOINT_WATCH", "1").strip().lower() not in ("0", "false", "no", "off")
PORT = int(os.getenv("PORT", 5050))

# --- SETTINGS ---
DEFAULT_SETTINGS: Dict[str, str] = {
    "my_setting": "default",
}


def get_settings_path(vault_dir: Optional[Path] = None) -> Path:
    """Settings file location, overridable through WAYPOINT_SETTINGS_FILE."""
    override = os.getenv("WAYPOINT_SETTINGS_FILE")
    if override:
        return Path(override).expanduser()
    return Path(vault_dir or VAULT_DIR) / ".waypoint" / "settings.json"


def load_settings(path: Path) -> Dict[str, str]:
    """Load settings from disk, merged over the defaults."""
    settings = dict(DEFAULT_SETTINGS)
    if not path.exists():
        return settings
    try:
        stored = json.loads(path.read_text(encoding='utf-8'))
    except (OSError, ValueError) as e:
        log_event(logging.WARNING, "settings_load_failed", path=str(path), error=str(e))
        return settings
    if isinstance(stored, dict):
        settings.update({k: str(v) for k, v in stored.items() if k in DEFAULT_SETTINGS})
    log_event(logging.DEBUG, "settings_loaded", path=str(path))
    return settings


def save_settings(settings: Dict[str, str], path: Path) -> bool:
    """Persist settings. Returns True on success."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(settings, indent=2), encoding='utf-8')
        log_event(logging.INFO, "settings_saved", path=str(path))
        return True
    except OSError as e:
        log_event(logging.ERROR, "settings_save_failed", path=str(path), error=str(e))
        return False
