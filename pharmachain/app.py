"""
PharmaChain Dashboard - Flask Application

JSON API and realtime push channel over the supply chain store.
"""

import logging
import os
import random

from flask import Flask, jsonify
from flask_socketio import SocketIO

from .config import get_config
from .services.supply_chain import SupplyChainStore
from .services.supply_chain.alert_sync import AlertSyncBridge, BackgroundAlertSync

logger = logging.getLogger(__name__)

socketio = SocketIO()

STORE_EXTENSION = "supply_chain_store"
SYNC_EXTENSION = "alert_sync"


def create_app(config_name=None, store=None):
    """Application factory."""

    app = Flask(__name__)

    # Load configuration
    app.config.from_object(get_config(config_name))

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # One store per application
    if store is None:
        seed = app.config["RANDOM_SEED"]
        store = SupplyChainStore(
            rng=random.Random(seed),
            seed_data=app.config["SEED_DATA"],
            blockchain_enabled=app.config["BLOCKCHAIN_ENABLED"],
        )
    app.extensions[STORE_EXTENSION] = store

    # Initialize extensions
    socketio.init_app(
        app,
        cors_allowed_origins="*",
        async_mode="threading",
        ping_interval=app.config["WEBSOCKET_PING_INTERVAL"],
        ping_timeout=app.config["WEBSOCKET_PING_TIMEOUT"],
    )

    # Register blueprints
    from .routes.api import api_bp

    app.register_blueprint(api_bp, url_prefix="/api")

    # Register WebSocket events
    from .websocket import register_events

    register_events(socketio, store)

    if app.config["ALERT_SYNC_ENABLED"]:
        sync = BackgroundAlertSync(AlertSyncBridge(
            store,
            redis_url=app.config["REDIS_URL"],
            channel=app.config["ALERT_SYNC_CHANNEL"],
        ))
        sync.start()
        app.extensions[SYNC_EXTENSION] = sync
        logger.info(f"Tamper alert sync starting against {app.config['REDIS_URL']}")

    # Error handlers
    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(500)
    def server_error(e):
        logger.error(f"Unhandled error: {e}")
        return jsonify({"error": "Internal server error"}), 500

    return app


def main():
    app = create_app()
    socketio.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", 5000)), debug=app.config["DEBUG"],
                 allow_unsafe_werkzeug=True)


if __name__ == "__main__":
    main()
