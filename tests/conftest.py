import mongomock
import pytest

from fooddelivery.app import create_app


def user_form(name, role, password='secret', **fields):
    data = {
        'name': name,
        'password': password,
        'role': role,
        'email': f'{name}@example.com',
        'phone': '555-0100',
        'street': '1 Main St',
        'city': 'Springfield',
        'state': 'IL',
        'pincode': '62701',
    }
    data.update(fields)
    return data


@pytest.fixture
def app():
    return create_app('testing', mongo_client=mongomock.MongoClient())


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db(app):
    return app.extensions['mongo_db']


@pytest.fixture
def register(client):
    def _register(name, role, password='secret', **fields):
        return client.post('/register', data=user_form(name, role, password, **fields))
    return _register


@pytest.fixture
def login_as(app):
    """Register a user and return a test client logged in as them."""
    def _login_as(name, role, password='secret'):
        user_client = app.test_client()
        user_client.post('/register', data=user_form(name, role, password))
        response = user_client.post('/login', data={'name': name, 'password': password})
        assert response.status_code == 302
        return user_client
    return _login_as


@pytest.fixture
def restaurant(login_as, db):
    """An owner with a restaurant and two menu items; returns (owner_client, restaurant, items_by_name)."""
    owner = login_as('olive', 'restaurant_owner')
    owner.post('/details', data={
        'name': 'Olive Kitchen', 'street': '5 Elm St', 'city': 'Springfield', 'state': 'IL', 'pincode': '62702',
    })
    owner.post('/menu', data={'name': 'Pizza', 'price': '9.50', 'category': 'Mains', 'availability': 'true'})
    owner.post('/menu', data={'name': 'Salad', 'price': '4.25', 'category': 'Sides', 'availability': 'true'})
    rest = db['Restaurant'].find_one({'name': 'Olive Kitchen'})
    items = {item['name']: item for item in db['Menu'].find({'restaurantId': rest['_id']})}
    return owner, rest, items
