"""
Server-side sessions.

The cookie holds only a signed, opaque token. The session record itself
(``{"userId": ..., "role": ...}``) lives in a :class:`SessionStore`:

- MemorySessionStore: process-local dict, for tests and local development
- MongoSessionStore: ``Sessions`` collection with a TTL index on expiresAt

Records expire ``PERMANENT_SESSION_LIFETIME`` after the last write. Permanent
sessions are rewritten on each request (Flask's SESSION_REFRESH_EACH_REQUEST),
so the lifetime slides while the user stays active.
"""

import logging
import secrets
import threading
from datetime import datetime, timezone

from flask.sessions import SessionInterface, SessionMixin
from itsdangerous import BadSignature, Signer
from werkzeug.datastructures import CallbackDict

from fooddelivery.database import SESSIONS

logger = logging.getLogger(__name__)


def _utcnow():
    return datetime.now(timezone.utc)


def _as_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SessionStore:
    def get(self, token):
        raise NotImplementedError

    def set(self, token, record, expires_at):
        raise NotImplementedError

    def destroy(self, token):
        raise NotImplementedError


class MemorySessionStore(SessionStore):
    def __init__(self):
        self._records = {}
        self._lock = threading.Lock()

    def get(self, token):
        with self._lock:
            entry = self._records.get(token)
            if entry is None:
                return None
            record, expires_at = entry
            if expires_at <= _utcnow():
                del self._records[token]
                return None
            return dict(record)

    def set(self, token, record, expires_at):
        with self._lock:
            self._sweep()
            self._records[token] = (dict(record), _as_aware(expires_at))

    def _sweep(self):
        now = _utcnow()
        expired = [token for token, (_, expires_at) in self._records.items() if expires_at <= now]
        for token in expired:
            del self._records[token]

    def destroy(self, token):
        with self._lock:
            self._records.pop(token, None)

    def __len__(self):
        with self._lock:
            return len(self._records)


class MongoSessionStore(SessionStore):
    def __init__(self, collection):
        self.collection = collection

    def get(self, token):
        doc = self.collection.find_one({'_id': token})
        if doc is None:
            return None
        # The TTL monitor only runs about once a minute
        if _as_aware(doc['expiresAt']) <= _utcnow():
            self.destroy(token)
            return None
        return doc.get('data') or {}

    def set(self, token, record, expires_at):
        self.collection.update_one(
            {'_id': token},
            {'$set': {'data': dict(record), 'expiresAt': expires_at}},
            upsert=True,
        )

    def destroy(self, token):
        self.collection.delete_one({'_id': token})


class ServerSession(CallbackDict, SessionMixin):
    def __init__(self, initial=None, token=None, new=False):
        def on_update(self):
            self.modified = True

        super().__init__(initial, on_update)
        self.token = token or secrets.token_urlsafe(32)
        self.new = new
        self.modified = False
        self.stale_token = None

    def regenerate(self):
        """Issue a fresh token, retiring the current one on save."""
        if not self.new:
            self.stale_token = self.token
        self.token = secrets.token_urlsafe(32)
        self.new = True
        self.modified = True


class ServerSideSessionInterface(SessionInterface):
    session_class = ServerSession
    salt = 'fooddelivery-session'

    def __init__(self, store: SessionStore):
        self.store = store

    def _signer(self, app):
        return Signer(app.secret_key, salt=self.salt)

    def open_session(self, app, request):
        cookie = request.cookies.get(self.get_cookie_name(app))
        if not cookie:
            return self.session_class(new=True)
        try:
            token = self._signer(app).unsign(cookie).decode('utf-8')
        except BadSignature:
            logger.warning("Rejected session cookie with a bad signature from %s", request.remote_addr)
            return self.session_class(new=True)
        record = self.store.get(token)
        if record is None:
            return self.session_class(new=True)
        return self.session_class(record, token=token)

    def save_session(self, app, session, response):
        name = self.get_cookie_name(app)
        domain = self.get_cookie_domain(app)
        path = self.get_cookie_path(app)

        if session.accessed:
            response.vary.add('Cookie')

        if session.stale_token:
            self.store.destroy(session.stale_token)
            session.stale_token = None

        if not session:
            if session.modified:
                self.store.destroy(session.token)
                response.delete_cookie(name, domain=domain, path=path)
            return

        if not self.should_set_cookie(app, session):
            return

        self.store.set(session.token, dict(session), _utcnow() + app.permanent_session_lifetime)
        response.set_cookie(
            name,
            self._signer(app).sign(session.token).decode('utf-8'),
            expires=self.get_expiration_time(app, session),
            httponly=self.get_cookie_httponly(app),
            domain=domain,
            path=path,
            secure=self.get_cookie_secure(app),
            samesite=self.get_cookie_samesite(app),
        )


def make_session_store(app) -> SessionStore:
    backend = app.config['SESSION_BACKEND']
    if backend == 'memory':
        return MemorySessionStore()
    if backend == 'mongo':
        return MongoSessionStore(app.extensions['mongo_db'][SESSIONS])
    raise ValueError(f"Unknown SESSION_BACKEND: {backend!r}")
