import logging
import os
from typing import Optional

import requests
from docker.errors import APIError
from flask import Flask, jsonify, request

from .config import RoomConfig, config
from .errors import (
    CorruptMetadataError,
    InvalidRequestError,
    NotFoundError,
    PortExhaustionError,
)
from .models import RoomSettings
from .room_manager import RoomManager

logger = logging.getLogger(__name__)


def create_app(config_name: Optional[str] = None, engine=None) -> Flask:
    """
    Application factory for the room orchestrator API.

    Without an engine the Docker daemon is contacted right away and
    EngineConnectionError propagates to the caller.
    """
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config[config_name])

    room_config = RoomConfig.from_mapping(app.config)
    if engine is None:
        app.rooms = RoomManager.from_config(room_config)
    else:
        app.rooms = RoomManager(room_config, engine)

    register_error_handlers(app)
    register_api_routes(app)

    return app


def register_error_handlers(app: Flask):

    @app.errorhandler(InvalidRequestError)
    def invalid_request(e):
        return jsonify({'error': str(e)}), 400

    @app.errorhandler(NotFoundError)
    def not_found(e):
        return jsonify({'error': str(e)}), 404

    @app.errorhandler(PortExhaustionError)
    def port_exhaustion(e):
        return jsonify({'error': str(e)}), 409

    @app.errorhandler(CorruptMetadataError)
    def corrupt_metadata(e):
        logger.error(str(e))
        return jsonify({'error': str(e)}), 500

    @app.errorhandler(APIError)
    @app.errorhandler(requests.exceptions.RequestException)
    def engine_error(e):
        logger.error(f"Container engine error: {e}")
        return jsonify({'error': f'Container engine error: {e}'}), 502


def register_api_routes(app: Flask):
    """Register API routes."""

    # ==================== Rooms ====================

    @app.route('/api/rooms', methods=['GET'])
    def list_rooms():
        """List all rooms."""
        rooms = app.rooms.list_rooms()
        return jsonify([room.to_dict() for room in rooms])

    @app.route('/api/rooms', methods=['POST'])
    def create_room():
        """Create and start a new room."""
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({'error': 'JSON object with room settings is required'}), 400

        settings = RoomSettings.from_dict(data)
        room_id, identity = app.rooms.create_room(settings)

        return jsonify({
            'id': room_id,
            'name': identity.name,
            'url': identity.url,
        }), 201

    @app.route('/api/rooms/<room_id>', methods=['GET'])
    def get_room(room_id: str):
        """Get room settings."""
        identity, settings = app.rooms.get_room(room_id)
        data = settings.to_dict()
        data['url'] = identity.url
        return jsonify(data)

    @app.route('/api/rooms/<room_id>', methods=['DELETE'])
    def remove_room(room_id: str):
        """Stop and remove a room."""
        app.rooms.remove_room(room_id)
        return jsonify({'message': 'Room removed'})

    @app.route('/api/rooms/<room_id>/start', methods=['POST'])
    def start_room(room_id: str):
        app.rooms.start_room(room_id)
        return jsonify({'message': 'Room started'})

    @app.route('/api/rooms/<room_id>/stop', methods=['POST'])
    def stop_room(room_id: str):
        app.rooms.stop_room(room_id)
        return jsonify({'message': 'Room stopped'})

    @app.route('/api/rooms/<room_id>/restart', methods=['POST'])
    def restart_room(room_id: str):
        app.rooms.restart_room(room_id)
        return jsonify({'message': 'Room restarted'})

    # ==================== Health Check ====================

    @app.route('/health')
    def health_check():
        """Health check endpoint."""
        try:
            engine_ok = app.rooms.engine.ping()
        except (APIError, requests.exceptions.RequestException):
            engine_ok = False

        status = 'healthy' if engine_ok else 'unhealthy'
        code = 200 if engine_ok else 503

        return jsonify({
            'status': status,
            'engine': 'connected' if engine_ok else 'disconnected'
        }), code
