def test_index(client):
    res = client.get('/')
    assert res.status_code == 200
    assert 'message' in res.get_json()


def test_room_state_snapshot(flask_app, client):
    registry = flask_app.extensions['bankroll']
    room = registry.create_room('abcd', 'host-sid', 3)
    registry.join('ann-sid', 'ABCD', 'Ann')

    res = client.get('/api/rooms/abcd')
    assert res.status_code == 200
    state = res.get_json()
    assert state['code'] == room.code == 'ABCD'
    assert state['state'] == 'waiting'
    assert state['phase'] == 'idle'
    assert state['players'] == ['Ann']
    assert state['leaderboard'] == {'Ann': 0}
    assert state['maxRounds'] == 3
    assert state['rollTime'] is None
    assert state['powerups']['Ann']['streak_bonus'] == {'active': False, 'used': False, 'rollsSurvived': 0}


def test_room_list_and_missing_room(flask_app, client):
    flask_app.extensions['bankroll'].create_room('WXYZ', 'host-sid', 2)
    rooms = client.get('/api/rooms').get_json()
    assert rooms == [{'code': 'WXYZ', 'state': 'waiting', 'players': 0}]
    res = client.get('/api/rooms/NOPE')
    assert res.status_code == 404
