"""Flask server exposing the room relay over HTTP and Server-Sent Events."""
import logging
import os
import threading
from datetime import datetime
from typing import Dict, Optional

from flask import Flask, Response, jsonify, request, send_from_directory
from flask_cors import CORS

from sweeper.codec import ProtocolError, decode_message, encode_message
from sweeper.config import ServerConfig
from sweeper.relay import MailboxParticipant, RelayService

logger = logging.getLogger(__name__)


def format_event(event: str, payload) -> str:
    return f"event: {event}\ndata: {encode_message(event, payload)}\n\n"


def create_app(config: Optional[ServerConfig] = None,
               relay: Optional[RelayService] = None) -> Flask:
    """Build the Flask app around a relay instance."""
    config = config or ServerConfig.from_env()
    relay = relay or RelayService()
    participants: Dict[str, MailboxParticipant] = {}
    participants_lock = threading.Lock()

    app = Flask(__name__, static_folder=config.static_dir, static_url_path=None)
    app.config['SWEEPER'] = config
    app.extensions['relay'] = relay
    CORS(app)

    def lookup(participant_id: str) -> Optional[MailboxParticipant]:
        with participants_lock:
            return participants.get(participant_id)

    def drop(participant: MailboxParticipant) -> None:
        with participants_lock:
            participants.pop(participant.id, None)
        relay.disconnect(participant)

    @app.route('/api/participants', methods=['POST'])
    def connect():
        """Register a new connection."""
        participant = MailboxParticipant(maxsize=config.mailbox_size, on_overflow=drop)
        with participants_lock:
            participants[participant.id] = participant
        logger.info(f"Participant connected: {participant.id}")
        return jsonify({'participantId': participant.id}), 201

    @app.route('/api/participants/<participant_id>/events', methods=['GET'])
    def events(participant_id):
        """Stream relay deliveries to one participant."""
        participant = lookup(participant_id)
        if participant is None:
            return jsonify({'error': 'Participant not found'}), 404

        def stream():
            try:
                while True:
                    message = participant.next_message(timeout=config.heartbeat_seconds)
                    if message is None:
                        if participant.overflowed:
                            return
                        yield ": keep-alive\n\n"
                        continue
                    event, payload = message
                    yield format_event(event, payload)
            finally:
                logger.info(f"Event stream closed for {participant.id}")
                drop(participant)

        return Response(stream(), mimetype='text/event-stream',
                        headers={'Cache-Control': 'no-cache'})

    @app.route('/api/participants/<participant_id>/messages', methods=['POST'])
    def send_message(participant_id):
        """Hand one client event to the relay."""
        participant = lookup(participant_id)
        if participant is None:
            return jsonify({'error': 'Participant not found'}), 404

        try:
            event, payload = decode_message(request.get_data(as_text=True))
        except ProtocolError as error:
            logger.warning(f"Rejected message from {participant.id}: {error}")
            return jsonify({'error': 'Invalid message'}), 400

        if not relay.dispatch(participant, event, payload):
            return jsonify({'error': 'Message dropped'}), 400
        return jsonify({'accepted': True}), 202

    @app.route('/api/participants/<participant_id>', methods=['DELETE'])
    def disconnect(participant_id):
        """Leave every room."""
        participant = lookup(participant_id)
        if participant is None:
            return jsonify({'error': 'Participant not found'}), 404
        drop(participant)
        return '', 204

    @app.route('/api/health', methods=['GET'])
    def health_check():
        """Health check endpoint."""
        return jsonify({
            'status': 'OK',
            'timestamp': datetime.now().isoformat(),
            'rooms': relay.room_count(),
        })

    if config.production:
        @app.route('/', defaults={'path': ''})
        @app.route('/<path:path>')
        def serve_static(path):
            """Serve built assets, falling back to the single-page entry point."""
            if path and os.path.isfile(os.path.join(app.static_folder, path)):
                return send_from_directory(app.static_folder, path)
            return send_from_directory(app.static_folder, 'index.html')

    return app


def main():
    """Start the relay server."""
    logging.basicConfig(level=logging.INFO)
    try:
        config = ServerConfig.from_env()
        app = create_app(config)

        mode = 'production' if config.production else 'development'
        logger.info(f"Minesweeper relay running on http://localhost:{config.port} ({mode})")

        app.run(host=config.host, port=config.port, debug=not config.production,
                threaded=True)

    except Exception as error:
        logger.error(f"Failed to start server: {error}")
        exit(1)


if __name__ == "__main__":
    main()
