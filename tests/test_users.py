def register(client, username='alice', password='s3cret'):
    return client.post('/users', json={'username': username, 'password': password})


def test_register_returns_username(client):
    response = register(client)
    assert response.status_code == 201
    assert response.get_json() == {'username': 'alice'}


def test_register_requires_both_fields(client):
    for body in ({'username': 'alice'}, {'password': 'x'}, {'username': '', 'password': 'x'}, {}):
        response = client.post('/users', json=body)
        assert response.status_code == 400
        assert response.get_json() == {'error': 'Username and password are required.'}


def test_register_without_json_body(client):
    response = client.post('/users', data='not json')
    assert response.status_code == 400


def test_duplicate_username_is_a_store_error(client):
    register(client)
    response = register(client, password='other')
    assert response.status_code == 500
    body = response.get_json()
    assert body['error'] == 'Error registering user'
    assert 'UNIQUE' in body['details']


def test_password_is_stored_hashed(client, store):
    register(client)
    user = store.get_user('alice')
    assert user['password'] != 's3cret'
    assert 's3cret' not in user['password']


def test_list_users_hides_passwords(client):
    register(client, 'bob')
    register(client, 'alice')
    response = client.get('/users')
    assert response.status_code == 200
    assert response.get_json() == [{'username': 'alice'}, {'username': 'bob'}]


def test_login_success(client):
    register(client)
    response = client.post('/login', json={'username': 'alice', 'password': 's3cret'})
    assert response.status_code == 200
    assert response.get_json() == {'username': 'alice'}


def test_login_wrong_password(client):
    register(client)
    response = client.post('/login', json={'username': 'alice', 'password': 'S3cret'})
    assert response.status_code == 401
    assert response.get_json() == {'error': 'Invalid password'}


def test_login_unknown_user(client):
    response = client.post('/login', json={'username': 'nobody', 'password': 'x'})
    assert response.status_code == 404
    assert response.get_json() == {'error': 'User not found'}


def test_login_requires_fields(client):
    response = client.post('/login', json={'username': 'alice'})
    assert response.status_code == 400
