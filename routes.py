"""
Flask routes for the Waypoint API.
"""

import json
import queue
import logging

from flask import Blueprint, Response, current_app, request, jsonify, stream_with_context

from config import log_event, save_settings, DEFAULT_SETTINGS
from services.markdown import contains_waypoint
from services.tree import render_tree

# Create blueprint
api = Blueprint('api', __name__)


def _state():
    return current_app.extensions["waypoint"]


# --- STATUS ---

@api.route('/health')
def health():
    """Health check endpoint."""
    state = _state()
    engine = state["engine"]
    watcher = state.get("watcher")
    return jsonify({
        "status": "ok",
        "vault": str(engine.vault.root_dir),
        "engine_running": engine.running,
        "watcher_running": bool(watcher and watcher.running),
        "pending_changes": engine.pending_count,
        "debounce": engine.aggregator.debouncer.state,
    })


# --- API ROUTES ---

@api.route('/api/tree')
def get_tree():
    """Preview the index a waypoint in this folder would contain."""
    engine = _state()["engine"]
    path = request.args.get("path", "")
    folder = engine.vault.get_by_path(path)
    if folder is None or not folder.is_container:
        return jsonify({"error": f"Folder not found: {path}"}), 404
    return jsonify({
        "path": folder.path,
        "tree": render_tree(engine.vault, folder, 0, top_level=True),
    })


@api.route('/api/waypoints')
def list_waypoints():
    """List documents currently holding a waypoint or a flag."""
    vault = _state()["engine"].vault
    waypoints = []
    for document in vault.documents():
        try:
            if contains_waypoint(vault.cached_read(document)):
                waypoints.append(document.path)
        except OSError as e:
            log_event(logging.DEBUG, "api_waypoint_scan_skipped", path=document.path, error=str(e))
    return jsonify({"waypoints": sorted(waypoints)})


@api.route('/api/waypoints/rebuild', methods=['POST'])
def rebuild_waypoint():
    """Rebuild the waypoint of one document."""
    engine = _state()["engine"]
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "Expected a JSON object"}), 400
    path = data.get("path")
    path = path.strip() if isinstance(path, str) else ""
    if not path:
        return jsonify({"error": "No path provided"}), 400

    document = engine.vault.get_by_path(path)
    if document is None or not document.is_document:
        return jsonify({"error": f"Document not found: {path}"}), 404

    log_event(logging.INFO, "api_rebuild_waypoint", path=path)
    result = engine.update_waypoint(document)
    return jsonify({
        "status": result.status,
        "path": result.path,
        "line_start": result.line_start,
        "line_end": result.line_end,
    }), (200 if result.ok else 409)


@api.route('/api/flush', methods=['POST'])
def flush_changes():
    """Process pending folder changes without waiting for the debounce window."""
    engine = _state()["engine"]
    pending = engine.pending_count
    flushed = engine.flush()
    log_event(logging.INFO, "api_flush", pending=pending, flushed=flushed)
    return jsonify({"flushed": flushed, "folders": pending})


@api.route('/api/settings', methods=['GET'])
def get_settings():
    return jsonify(_state()["settings"])


@api.route('/api/settings', methods=['POST'])
def update_settings():
    state = _state()
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "Expected a JSON object"}), 400
    unknown = [k for k in data if k not in DEFAULT_SETTINGS]
    if unknown:
        return jsonify({"error": f"Unknown settings: {', '.join(unknown)}"}), 400

    state["settings"].update({k: str(v) for k, v in data.items()})
    if not save_settings(state["settings"], state["settings_path"]):
        return jsonify({"error": "Failed to save settings"}), 500
    return jsonify(state["settings"])


@api.route('/api/stream')
def stream():
    """SSE endpoint for waypoint rebuild results."""
    engine = _state()["engine"]
    client_queue = queue.Queue()
    engine.add_listener(client_queue.put)

    def event_stream():
        yield f"data: {json.dumps({'type': 'init', 'pending_changes': engine.pending_count})}\n\n"
        try:
            while True:
                try:
                    data = client_queue.get(timeout=2.0)
                    yield f"data: {json.dumps(data)}\n\n"
                except queue.Empty:
                    yield f"data: {json.dumps({'type': 'heartbeat'})}\n\n"
        except GeneratorExit:
            pass
        finally:
            engine.remove_listener(client_queue.put)

    return Response(
        stream_with_context(event_stream()),
        mimetype="text/event-stream",
        headers={
            'Cache-Control': 'no-cache',
            'Connection': 'keep-alive',
            'X-Accel-Buffering': 'no'
        }
    )
