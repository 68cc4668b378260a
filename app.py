"""
Waypoint - keeps folder indexes embedded in markdown notes up to date.

Run with `python app.py`; the vault directory comes from WAYPOINT_VAULT_DIR.
"""

import atexit
import logging
from pathlib import Path
from typing import Optional

from flask import Flask
from flask_cors import CORS

from config import (
    log_event,
    get_settings_path,
    load_settings,
    VAULT_DIR,
    DEBOUNCE_SECONDS,
    WATCH_ENABLED,
    PORT,
)
from routes import api
from services.sync import WaypointEngine
from services.vault import Vault
from services.watcher import VaultWatcher


def create_app(vault_dir: Optional[Path] = None, watch: Optional[bool] = None,
               debounce_seconds: float = DEBOUNCE_SECONDS) -> Flask:
    """Build the vault, the sync engine and (optionally) the watcher behind a Flask app."""
    vault_dir = Path(vault_dir or VAULT_DIR)
    watch = WATCH_ENABLED if watch is None else watch

    vault = Vault(vault_dir)
    engine = WaypointEngine(vault, debounce_seconds=debounce_seconds)
    # Subscribes once the initial scan is done, so startup files are not seen as new
    engine.start()
    vault.load()

    watcher = VaultWatcher(vault) if watch else None
    if watcher is not None:
        watcher.start()

    settings_path = get_settings_path(vault.root_dir)

    app = Flask(__name__)
    CORS(app)
    app.extensions["waypoint"] = {
        "engine": engine,
        "watcher": watcher,
        "settings": load_settings(settings_path),
        "settings_path": settings_path,
    }
    app.register_blueprint(api)
    return app


def shutdown(app: Flask):
    state = app.extensions["waypoint"]
    if state["watcher"] is not None:
        state["watcher"].stop()
    state["engine"].stop()


if __name__ == '__main__':
    app = create_app()
    atexit.register(shutdown, app)
    state = app.extensions["waypoint"]
    log_event(
        logging.INFO,
        "server_startup",
        vault=str(state["engine"].vault.root_dir),
        watcher_ready=bool(state["watcher"] and state["watcher"].running),
        port=PORT,
    )

    print(f"""
    ╔═══════════════════════════════════════════════════╗
    ║              WAYPOINT - Folder Indexes            ║
    ╠═══════════════════════════════════════════════════╣
    ║   Vault:    {str(state["engine"].vault.root_dir)[-36:]:<36}  ║
    ║   Watcher:  {'✅ Running' if state["watcher"] and state["watcher"].running else '❌ Disabled':<36} ║
    ╠═══════════════════════════════════════════════════╣
    ║   Server: http://localhost:{PORT:<5}                  ║
    ╚═══════════════════════════════════════════════════╝
    """)
    # Reloader would start a second watcher
    app.run(debug=False, port=PORT, threaded=True)
