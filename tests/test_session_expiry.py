from datetime import datetime, timedelta, timezone

import mongomock
import pytest

from fooddelivery.app import create_app
from fooddelivery.config import TestingConfig
from fooddelivery.sessions import MongoSessionStore


@pytest.fixture(params=['memory', 'mongo'])
def app(request, monkeypatch):
    monkeypatch.setattr(TestingConfig, 'SESSION_BACKEND', request.param)
    return create_app('testing', mongo_client=mongomock.MongoClient())


def only_token(app):
    store = app.session_interface.store
    if isinstance(store, MongoSessionStore):
        return store.collection.find_one()['_id']
    return next(iter(store._records))


def stored_expiry(app, token):
    store = app.session_interface.store
    if isinstance(store, MongoSessionStore):
        expires_at = store.collection.find_one({'_id': token})['expiresAt']
    else:
        expires_at = store._records[token][1]
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at


def set_stored_expiry(app, token, expires_at):
    store = app.session_interface.store
    if isinstance(store, MongoSessionStore):
        store.collection.update_one({'_id': token}, {'$set': {'expiresAt': expires_at}})
    else:
        record, _ = store._records[token]
        store._records[token] = (record, expires_at)


def test_backend_follows_config(app):
    store = app.session_interface.store
    assert isinstance(store, MongoSessionStore) == (app.config['SESSION_BACKEND'] == 'mongo')


def test_each_request_pushes_expiry_forward(app, login_as):
    customer = login_as('cathy', 'customer')
    token = only_token(app)
    set_stored_expiry(app, token, datetime.now(timezone.utc) + timedelta(minutes=1))

    assert customer.get('/customer-home').status_code == 200

    lifetime = app.permanent_session_lifetime
    expected = datetime.now(timezone.utc) + lifetime
    assert abs(stored_expiry(app, token) - expected) < timedelta(minutes=1)


def test_expired_session_redirects_to_login(app, login_as):
    customer = login_as('cathy', 'customer')
    token = only_token(app)
    set_stored_expiry(app, token, datetime.now(timezone.utc) - timedelta(seconds=1))

    response = customer.get('/customer-home')
    assert response.status_code == 302
    assert response.headers['Location'].endswith('/login')
    assert customer.get('/check-session').get_data(as_text=True) == 'No user logged in'
