#!/usr/bin/env python3
"""
Reporting API routes for the bus position tracker
Read-only endpoints for process status, stored positions, errors and CSV inventory
"""

from flask import Blueprint, jsonify
from datetime import datetime
import logging

from bus_tracker.exceptions import InventoryNotSupported
from bus_tracker.utils.timefmt import humanize_duration

# Import the global instances (will be injected by main app)
context = None
line_discovery = None

RECENT_ERRORS = 10
LIST_LIMIT = 100

logger = logging.getLogger(__name__)

# Create Blueprint for reporting routes
api_bp = Blueprint('api', __name__)

INDEX_HTML = """
<h1>Available Routes</h1>
<ul>
  <li><a href="/status" target="_blank">GET /status</a> - Check server status.</li>
  <li><a href="/positions" target="_blank">GET /positions</a> - Latest 100 stored positions.</li>
  <li><a href="/errors" target="_blank">GET /errors</a> - Latest 100 recorded errors.</li>
  {csv_info}
</ul>
"""

CSV_INFO_ITEM = '<li><a href="/csv-info" target="_blank">GET /csv-info</a> - Check row counts of all CSV files.</li>'


def init_api_routes(ctx, discovery=None):
    """Initialize API routes with global instances"""
    global context, line_discovery
    context = ctx
    line_discovery = discovery


def _failure(what: str, error: Exception):
    """Log and record a reporting failure, then build the 500 response"""
    message = f"Error fetching {what}: {error}"
    logger.error(message)
    try:
        context.storage.append_error(message)
    except Exception as store_error:
        logger.error(f"Could not record reporting error: {store_error}")
    return jsonify({
        'status': 'error',
        'message': f'Unable to fetch {what}.'
    }), 500


@api_bp.route('/')
def index():
    """HTML listing of the available routes"""
    return INDEX_HTML.format(csv_info=CSV_INFO_ITEM if context.storage.has_inventory else '')


@api_bp.route('/status')
def status():
    """Uptime, position counts and the most recent errors"""
    try:
        storage = context.storage
        today = datetime.now().strftime('%Y-%m-%d')
        recent_errors = [record.to_line() for record in reversed(storage.list_errors(RECENT_ERRORS))]

        return jsonify({
            'status': 'running',
            'uptime': humanize_duration(context.uptime_seconds()),
            'date': today,
            'storage': storage.name,
            'totalPositions': storage.count_records(),
            'todayPositions': storage.count_records(day=today),
            'totalErrors': storage.count_errors(),
            'recentErrors': recent_errors,
            'lines': line_discovery.stats() if line_discovery else []
        })
    except Exception as e:
        return _failure('status', e)


@api_bp.route('/csv-info')
def csv_info():
    """Row count, size and first/last entry time of every CSV day file"""
    try:
        entries = context.storage.inventory()
    except InventoryNotSupported as e:
        return jsonify({'status': 'error', 'message': str(e)}), 404
    except Exception as e:
        return _failure('CSV info', e)

    return jsonify({
        'status': 'success',
        'csvInfo': [entry.to_dict() for entry in entries]
    })


@api_bp.route('/positions')
def positions():
    """Latest stored positions, most recent first"""
    try:
        records = context.storage.list_records(LIST_LIMIT)
    except Exception as e:
        return _failure('positions', e)
    return jsonify([record.to_dict() for record in records])


@api_bp.route('/errors')
def errors():
    """Latest recorded errors, most recent first"""
    try:
        records = context.storage.list_errors(LIST_LIMIT)
    except Exception as e:
        return _failure('errors', e)
    return jsonify([record.to_dict() for record in records])
