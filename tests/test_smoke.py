"""
Smoke test: a visitor signs in from the landing page.
"""

import re

EMAIL = '25100173@lums.edu.pk'
PASSWORD = '12345678'


def test_sign_in_from_landing_page(client, make_user):
    make_user(username='lums', email=EMAIL, password=PASSWORD)

    landing = client.get('/')
    assert landing.status_code == 200
    links = re.findall(r'<a href="([^"]+)">Sign In</a>', landing.get_data(as_text=True))
    assert len(links) == 1

    login_page = client.get(links[0])
    html = login_page.get_data(as_text=True)
    assert login_page.status_code == 200
    assert 'name="email"' in html
    assert 'name="password"' in html
    assert 'type="submit"' in html

    resp = client.post(links[0], data={'email': EMAIL, 'password': PASSWORD})
    assert resp.status_code == 302
    assert resp.headers['Location'].endswith('/dashboard')

    dashboard = client.get('/dashboard')
    assert dashboard.status_code == 200
    assert 'Welcome, lums' in dashboard.get_data(as_text=True)


def test_wrong_password_shows_error(client, make_user):
    make_user(username='lums', email=EMAIL, password=PASSWORD)

    resp = client.post('/login', data={'email': EMAIL, 'password': 'wrong'})
    assert resp.status_code == 401
    assert 'Invalid email or password' in resp.get_data(as_text=True)


def test_register_then_me(client):
    resp = client.post('/register', json={'username': 'newbie', 'email': 'New@Example.com', 'password': 'secret1'})
    assert resp.status_code == 201

    me = client.get('/auth/me').get_json()['user']
    assert me['email'] == 'new@example.com'
    assert me['points'] == 0

    assert client.post('/register', json={
        'username': 'newbie', 'email': 'other@example.com', 'password': 'secret1',
    }).status_code == 409


def test_logout(auth_client):
    auth_client.post('/logout')
    assert auth_client.get('/auth/me').status_code == 302
