"""
WebSocket Events

Pushes store changes to connected dashboard views.
"""

import logging
import time

from flask import request
from flask_socketio import emit, join_room, leave_room

logger = logging.getLogger(__name__)

# Track connected clients
connected_clients = set()


def serialize(record):
    return record.to_dict() if hasattr(record, "to_dict") else record


def register_events(socketio, store):
    """Register WebSocket handlers and forward store mutations as ``store_updated``."""

    @socketio.on("connect")
    def handle_connect():
        """Handle client connection."""
        connected_clients.add(request.sid)
        emit(
            "connected",
            {
                "client_id": request.sid,
                "overview": store.overview(),
                "timestamp": time.time(),
            },
        )

    @socketio.on("disconnect")
    def handle_disconnect():
        """Handle client disconnection."""
        connected_clients.discard(request.sid)

    @socketio.on("subscribe")
    def handle_subscribe(data):
        """Subscribe to one collection's updates."""
        room = (data or {}).get("room")
        if room:
            join_room(room)
            emit("subscribed", {"room": room})

    @socketio.on("unsubscribe")
    def handle_unsubscribe(data):
        """Unsubscribe from a collection."""
        room = (data or {}).get("room")
        if room:
            leave_room(room)
            emit("unsubscribed", {"room": room})

    @socketio.on("ping")
    def handle_ping():
        """Handle ping (keep-alive)."""
        emit("pong", {"timestamp": time.time()})

    def forward(collection, record):
        payload = {
            "collection": collection,
            "record": serialize(record),
            "timestamp": time.time(),
        }
        socketio.emit("store_updated", payload)
        socketio.emit(f"{collection}_updated", payload, to=collection)

    return store.subscribe(forward)
