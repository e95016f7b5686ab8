"""
REST API for the stock order book.

This module provides HTTP endpoints for order submission, book and trade
history queries, snapshot save/load and engine statistics.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from flask import Flask, current_app, jsonify, request
from flask_cors import CORS

from ..config.settings import Settings, get_settings
from ..core.errors import InvalidOrderError
from ..core.matching_engine import MatchingEngine
from ..core.order import Order
from ..storage.snapshot import LoadStatus
from ..utils.logger import log_order_audit
from .validators import (
    validate_depth_request,
    validate_order_request,
    validate_snapshot_request,
)

logger = logging.getLogger(__name__)


def create_app(
    engine: Optional[MatchingEngine] = None,
    settings: Optional[Settings] = None,
    audit_logger: Optional[logging.Logger] = None,
) -> Flask:
    """
    Create and configure the Flask application.

    Args:
        engine: Matching engine serving this app; a fresh one for the
            configured symbol is created when omitted
        settings: Settings to use instead of the global instance
        audit_logger: Optional audit trail for order submissions

    Returns:
        Configured Flask application
    """
    settings = settings or get_settings()

    app = Flask(__name__)
    if settings.enable_cors:
        CORS(app, origins=settings.cors_origins)

    app.config['SETTINGS'] = settings
    app.config['ENGINE'] = engine if engine is not None else MatchingEngine(settings.book_symbol)
    app.config['AUDIT_LOGGER'] = audit_logger

    register_routes(app)

    logger.info("REST API initialized")
    return app


def _engine() -> MatchingEngine:
    return current_app.config['ENGINE']


def _settings() -> Settings:
    return current_app.config['SETTINGS']


def _audit(action: str, order_data: dict) -> None:
    audit_logger = current_app.config.get('AUDIT_LOGGER')
    if audit_logger is not None:
        log_order_audit(audit_logger, action, order_data)


def _snapshot_request():
    """Validate an optional {"path": ...} body against the configured snapshot directory."""
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        return False, 'Request body must be a JSON object', None
    return validate_snapshot_request(data, _settings().snapshot_file)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def register_routes(app: Flask) -> None:
    """Register all API routes."""

    @app.route('/health', methods=['GET'])
    def health_check():
        """Health check endpoint."""
        return jsonify({
            'status': 'healthy',
            'symbol': _engine().symbol,
            'timestamp': _timestamp(),
        })

    @app.route('/orders', methods=['POST'])
    def submit_order():
        """
        Submit a new order to the matching engine.

        Request body:
        {
            "symbol": "AAPL",
            "side": "buy",
            "price": "150.25",
            "quantity": 10
        }
        """
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({'error': 'Request body must be a JSON object'}), 400

        settings = _settings()
        is_valid, error, validated = validate_order_request(
            data,
            max_quantity=settings.max_quantity,
            min_price=settings.min_price,
            max_price=settings.max_price,
        )
        if not is_valid:
            _audit('REJECT', data)
            return jsonify({'error': error}), 400

        try:
            order = Order(
                symbol=validated['symbol'],
                side=validated['side'],
                price=validated['price'],
                quantity=validated['quantity'],
            )
            _audit('SUBMIT', order.to_dict())
            result = _engine().submit_order(order)
        except InvalidOrderError as e:
            _audit('REJECT', data)
            return jsonify({'error': str(e)}), 400

        response_data = result.to_dict()
        response_data['timestamp'] = _timestamp()
        return jsonify(response_data), 200

    @app.route('/orderbook', methods=['GET'])
    def get_order_book():
        """
        Get the resting orders, best first on each side.

        Query parameters:
        - depth: Number of price levels in the aggregated view (default: 10)
        """
        is_valid, error, depth = validate_depth_request(
            request.args.get('depth'), _settings().max_book_depth
        )
        if not is_valid:
            return jsonify({'error': error}), 400

        engine = _engine()
        bids, asks = engine.view_book()
        best_bid, best_ask = engine.get_bbo()

        return jsonify({
            'symbol': engine.symbol,
            'timestamp': _timestamp(),
            'best_bid': str(best_bid) if best_bid is not None else None,
            'best_ask': str(best_ask) if best_ask is not None else None,
            'spread': str(best_ask - best_bid) if best_bid is not None and best_ask is not None else None,
            'bids': [order.to_dict() for order in bids],
            'asks': [order.to_dict() for order in asks],
            'depth': engine.get_depth(depth),
        }), 200

    @app.route('/trades', methods=['GET'])
    def get_trades():
        """Get the trade history in execution order."""
        trades = _engine().trade_history()
        return jsonify({
            'symbol': _engine().symbol,
            'count': len(trades),
            'trades': [trade.to_dict() for trade in trades],
        }), 200

    @app.route('/snapshot/save', methods=['POST'])
    def save_snapshot():
        """
        Save the book to a snapshot file.

        Request body (optional):
        {
            "path": "data/stock_orders.json"
        }
        """
        is_valid, error, path = _snapshot_request()
        if not is_valid:
            return jsonify({'error': error}), 400

        saved, persist_error = _engine().save_snapshot(path)
        if not saved:
            return jsonify({'error': persist_error.message, 'kind': persist_error.kind.value, 'path': path}), 500

        return jsonify({'status': 'saved', 'path': path}), 200

    @app.route('/snapshot/load', methods=['POST'])
    def load_snapshot():
        """
        Replace the book with a stored snapshot.

        A missing snapshot yields an empty book; a corrupt one also yields
        an empty book and reports the corruption.
        """
        is_valid, error, path = _snapshot_request()
        if not is_valid:
            return jsonify({'error': error}), 400

        status, persist_error = _engine().load_snapshot(path)
        if status is LoadStatus.FAILED:
            return jsonify({'status': status.value, 'error': persist_error.message, 'kind': persist_error.kind.value}), 500

        response_data = {'status': status.value, 'path': path, 'book': _engine().book.get_statistics()}
        if persist_error is not None:
            response_data['error'] = persist_error.message
            response_data['kind'] = persist_error.kind.value
        return jsonify(response_data), 200

    @app.route('/statistics', methods=['GET'])
    def get_statistics():
        """Get engine statistics."""
        return jsonify(_engine().get_statistics()), 200

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'Endpoint not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'error': 'Method not allowed'}), 405

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 errors."""
        logger.error(f"Internal server error: {str(error)}")
        return jsonify({'error': 'Internal server error'}), 500


def run_server(engine: Optional[MatchingEngine] = None, settings: Optional[Settings] = None,
               audit_logger: Optional[logging.Logger] = None) -> None:
    """
    Run the REST API server.

    Args:
        engine: Matching engine to serve
        settings: Settings providing host, port and debug flags
        audit_logger: Optional audit trail for order submissions
    """
    settings = settings or get_settings()
    app = create_app(engine, settings, audit_logger)
    logger.info(f"Starting REST API server on {settings.rest_host}:{settings.rest_port}")
    app.run(host=settings.rest_host, port=settings.rest_port, debug=settings.debug, use_reloader=False)
