#!/usr/bin/env python3
"""
Socket.IO connection handlers for the bus position tracker

Pollers push 'new_position' and 'tracking_error' events through the shared
SocketIO instance; these handlers only track clients and send a status
snapshot on connect.
"""

import logging
from flask import request
from flask_socketio import emit

# Import the global instances (will be injected by main app)
context = None

# Connection tracking for Socket.IO clients
active_connections = 0

logger = logging.getLogger(__name__)


def init_websocket_handlers(ctx, socketio_instance):
    """Initialize Socket.IO connection handlers"""
    global context
    context = ctx

    # Register the handlers with the socketio instance
    socketio_instance.on_event('connect', handle_connect)
    socketio_instance.on_event('disconnect', handle_disconnect)


def handle_connect():
    """Handle Socket.IO client connection"""
    global active_connections
    active_connections += 1
    logger.info(f"Socket.IO client connected: {request.sid} (total connections: {active_connections})")

    try:
        emit('status', {
            'totalPositions': context.storage.count_records(),
            'totalErrors': context.storage.count_errors()
        })
    except Exception as e:
        logger.error(f"Could not send status snapshot: {e}")


def handle_disconnect(*args):
    """Handle Socket.IO client disconnection"""
    global active_connections
    active_connections = max(0, active_connections - 1)
    logger.info(f"Socket.IO client disconnected: {request.sid} (total connections: {active_connections})")
