#!/usr/bin/env python3
"""
Bus Position Tracker - Python Flask Server
Polls live bus positions for every jaha.com.py line, stores them and serves reports
"""

import logging

from flask import Flask
from flask_socketio import SocketIO
from flask_cors import CORS

# Import models and services
from bus_tracker.config import Config
from bus_tracker.models.context import ServerContext
from bus_tracker.storage.factory import build_storage
from bus_tracker.services.transit_fetcher import TransitDataFetcher
from bus_tracker.services.line_discovery import LineDiscovery
from bus_tracker.api.routes import api_bp, init_api_routes
from bus_tracker.api.websocket import init_websocket_handlers

# Load configuration (reads .env)
config = Config.from_env()

# Configure logging
logging.basicConfig(level=getattr(logging, config.log_level, logging.INFO),
                    format='%(asctime)s %(levelname)s %(name)s: %(message)s')
logger = logging.getLogger(__name__)

# Flask app configuration
app = Flask(__name__)
app.config['SECRET_KEY'] = config.secret_key
app.config['DEBUG'] = config.debug

# Enable CORS and SocketIO
CORS(app)
socketio = SocketIO(app, cors_allowed_origins="*", async_mode='threading')

# Global instances
context = ServerContext(storage=build_storage(config), config=config)
data_fetcher = TransitDataFetcher(config.jaha_base_url, timeout=config.request_timeout)
line_discovery = LineDiscovery(data_fetcher, context.storage, interval=config.poll_interval, socketio=socketio)

# Initialize API routes and WebSocket handlers with global instances
init_api_routes(context, line_discovery)
init_websocket_handlers(context, socketio)

# Register API blueprints
app.register_blueprint(api_bp)


if __name__ == '__main__':
    # Discover lines and start one poller per line
    line_discovery.start()

    logger.info(f"Server running on http://{config.host}:{config.port}")

    try:
        socketio.run(
            app,
            host=config.host,
            port=config.port,
            debug=config.debug,
            use_reloader=False,  # Disable reloader to prevent double poller creation
            allow_unsafe_werkzeug=True
        )
    finally:
        line_discovery.stop_all()
        context.storage.close()
