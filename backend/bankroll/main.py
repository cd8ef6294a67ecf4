from flask import Blueprint, current_app, jsonify

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the Bankroll dice server!'})


@main.route('/api/rooms')
def list_rooms():
    registry = current_app.extensions['bankroll']
    return jsonify([
        {'code': room.code, 'state': room.state.value, 'players': len(room.players)}
        for room in registry.rooms()
    ])


@main.route('/api/rooms/<string:code>')
def get_room_state(code):
    """
    Returns a read-only snapshot of a room's state.
    """
    room = current_app.extensions['bankroll'].lookup(code)
    if room is None:
        return jsonify({'error': 'Room not found'}), 404
    return jsonify(room.to_dict()), 200
