from __future__ import annotations
from datetime import datetime, timezone
from typing import Optional
import threading

from flask import Flask, jsonify, request
from loguru import logger

from holdings_service.api.facade import HoldingsFacade, build_default_facade
from holdings_service.config.env import get_server_config
from holdings_service.config.logging import configure_logging
from holdings_service.errors import NoDataAvailableError
from holdings_service.ranking.models import format_timestamp

app = Flask(__name__)

_facade: Optional[HoldingsFacade] = None
_facade_lock = threading.Lock()


# Facade lookup (overridable via app.config in tests)

def _get_facade() -> HoldingsFacade:
    global _facade
    override = app.config.get('HOLDINGS_FACADE')
    if override is not None:
        return override
    with _facade_lock:
        if _facade is None:
            _facade = build_default_facade()
        return _facade


@app.before_request
def _log_request():
    logger.info("{} - {} {}", format_timestamp(datetime.now(timezone.utc)), request.method, request.path)


@app.after_request
def _cors(resp):
    resp.headers['Access-Control-Allow-Origin'] = '*'
    resp.headers['Access-Control-Allow-Methods'] = 'GET, OPTIONS'
    resp.headers['Access-Control-Allow-Headers'] = 'Content-Type'
    return resp


def _holdings_response():
    try:
        snapshot = _get_facade().get_holdings()
    except NoDataAvailableError as e:
        logger.error("Error in holdings endpoint: {}", e)
        return jsonify({'error': 'Failed to fetch holdings data', 'message': e.message}), 500
    return jsonify(snapshot.to_dict())


def _health_response():
    return jsonify({
        'status': 'OK',
        'timestamp': format_timestamp(datetime.now(timezone.utc)),
        'cache': _get_facade().cache.state().value,
    })


@app.get('/holdings')
def get_holdings():
    return _holdings_response()


@app.get('/health')
def get_health():
    return _health_response()


# Also serve under /api/* for serverless-style deployments
@app.get('/api/holdings')
def get_api_holdings():
    return _holdings_response()


@app.get('/api/health')
def get_api_health():
    return _health_response()


def start_warm_up(facade: HoldingsFacade) -> threading.Thread:
    t = threading.Thread(target=facade.cache.warm_up, name='holdings-warm-up', daemon=True)
    t.start()
    return t


def main():  # pragma: no cover
    cfg = get_server_config()
    configure_logging(cfg.log_level)
    facade = _get_facade()
    if cfg.warm_up:
        start_warm_up(facade)
    logger.info("Local development server running at http://localhost:{}", cfg.port)
    logger.info("- Holdings endpoint: http://localhost:{}/holdings", cfg.port)
    logger.info("- Health endpoint: http://localhost:{}/health", cfg.port)
    app.run(host='0.0.0.0', port=cfg.port)


if __name__ == '__main__':
    main()
