import os
import sys
from contextlib import contextmanager

import pytest
from flask_login import login_user

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from config import Config
from studysync import create_app
from studysync.extensions import db
from studysync.models.user import User


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret-key'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ENGINE_OPTIONS = {
        'connect_args': {'check_same_thread': False}
    }
    OPENROUTER_API_KEY = 'test-key'
    LOG_DIR = None


@pytest.fixture
def app():
    app = create_app(TestConfig)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    """Create a user and return its id."""
    counter = {'n': 0}

    def _make_user(username=None, email=None, password='password', points=0):
        counter['n'] += 1
        username = username or f'user{counter["n"]}'
        email = email or f'{username}@example.com'
        with app.app_context():
            user = User(username=username, email=email, points=points)
            user.set_password(password)
            db.session.add(user)
            db.session.commit()
            return user.id

    return _make_user


@pytest.fixture
def user_id(make_user):
    return make_user(username='student', email='student@example.com')


@pytest.fixture
def login_as(app):
    """Run code inside a request with the given user signed in."""

    @contextmanager
    def _login_as(uid):
        with app.test_request_context():
            user = db.session.get(User, uid)
            login_user(user)
            yield user

    return _login_as


@pytest.fixture
def auth_client(client, user_id):
    resp = client.post('/login', json={'email': 'student@example.com', 'password': 'password'})
    assert resp.status_code == 200
    return client


def call_action(client, name, **arguments):
    return client.post(f'/actions/{name}', json=arguments)
