"""
Read-only HTTP status endpoint for a running sync engine.

    GET /api/status  -> coordinator state, collection sizes, version

Bind it to 127.0.0.1 unless the network in front of it is trusted;
there is no authentication.
"""
import logging

from flask import Flask, jsonify

from version import __version__
from netdisco_sync.sync.records import collection_counts

log = logging.getLogger("status")

_SECURITY_HEADERS = {
    "Content-Security-Policy": "default-src 'self'",
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
}


def create_app(coordinator, local_store):
    """Build the Flask app serving *coordinator*'s status."""
    app = Flask(__name__)

    @app.after_request
    def _add_security_headers(response):
        for header, value in _SECURITY_HEADERS.items():
            response.headers[header] = value
        return response

    @app.route("/api/status")
    def status():
        payload = coordinator.status()
        payload["collections"] = collection_counts(local_store)
        payload["version"] = __version__
        return jsonify(payload)

    return app


def serve(coordinator, local_store, host="127.0.0.1", port=8765):
    """Run the status app in the current thread (blocks)."""
    if host == "0.0.0.0":
        log.warning("Status endpoint binding to all interfaces (0.0.0.0). "
                    "No authentication is enabled. Restrict to 127.0.0.1 in production.")
    log.info("Starting status endpoint on %s:%s...", host, port)
    create_app(coordinator, local_store).run(host=host, port=port, use_reloader=False)
