import logging
import math
import os
from datetime import datetime, timezone

from flask import Flask, abort, redirect, render_template, request, session, url_for
from pymongo.errors import PyMongoError
from werkzeug.exceptions import HTTPException

from fooddelivery import database
from fooddelivery.auth import (
    ROLE_HOMES,
    Role,
    current_role,
    current_user_id,
    hash_password,
    login_required,
    role_required,
    verify_password,
)
from fooddelivery.config import config
from fooddelivery.database import MENU, ORDERS, RESTAURANTS, USERS, to_object_id
from fooddelivery.init_db import init_database
from fooddelivery.sessions import ServerSideSessionInterface, make_session_store

logger = logging.getLogger(__name__)

ORDER_STATUS_PENDING = 'Pending'
ADDRESS_FIELDS = ('street', 'city', 'state', 'pincode')

# Body of the 500 response when a store operation fails, per endpoint and method
STORE_ERROR_MESSAGES = {
    ('register', 'POST'): 'Error registering user',
    ('login', 'POST'): 'Internal server error',
    ('customer_home', 'GET'): 'Error loading customer home',
    ('restaurant_owner_home', 'GET'): 'Error loading restaurant owner home',
    ('orders', 'GET'): 'Error fetching orders',
    ('place_order', 'POST'): 'Error placing order',
    ('menu', 'GET'): 'Error loading menu',
    ('menu', 'POST'): 'Error adding menu item.',
    ('driver_home', 'GET'): 'Error loading driver home',
    ('details', 'GET'): 'Error loading restaurant details.',
    ('details', 'POST'): 'Error saving restaurant details.',
    ('restaurant_menu', 'GET'): 'Error fetching menu.',
}

TEXT_PLAIN = {'Content-Type': 'text/plain; charset=utf-8'}


def configure_logging(app: Flask) -> None:
    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )
    logging.getLogger('fooddelivery').setLevel(app.config['LOG_LEVEL'])


def parse_quantity(value) -> int:
    if value is None or not str(value).strip():
        return 1
    try:
        quantity = int(value)
    except (TypeError, ValueError):
        abort(400, description='Quantity must be a whole number.')
    if quantity < 1:
        abort(400, description='Quantity must be at least 1.')
    return quantity


def parse_price(value) -> float:
    try:
        price = float(value)
    except (TypeError, ValueError):
        abort(400, description='Price must be a number.')
    if not math.isfinite(price) or price < 0:
        abort(400, description='Price must be a non-negative number.')
    return price


def address_from_form(form) -> dict:
    return {field: form.get(field) for field in ADDRESS_FIELDS}


def default_config_name() -> str:
    # Production cookies are Secure-only, so plain-HTTP debug runs need development
    if 'FLASK_CONFIG' in os.environ:
        return os.environ['FLASK_CONFIG']
    if os.environ.get('FLASK_DEBUG', '0').lower() in ('1', 'true', 'yes'):
        return 'development'
    return 'default'


def create_app(config_name=None, mongo_client=None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config[config_name or default_config_name()])
    configure_logging(app)

    db = database.init_app(app, mongo_client)
    init_database(db)
    app.session_interface = ServerSideSessionInterface(make_session_store(app))

    # --------------------
    # Error handling
    # --------------------
    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        response = error.get_response()
        response.set_data(error.description or '')
        response.content_type = TEXT_PLAIN['Content-Type']
        return response

    @app.errorhandler(PyMongoError)
    def handle_store_error(error):
        message = STORE_ERROR_MESSAGES.get((request.endpoint, request.method), 'Internal server error')
        logger.error("%s on %s %s", message, request.method, request.path, exc_info=error)
        if app.config['EXPOSE_STORE_ERRORS']:
            message = f"{message}: {error}"
        return message, 500, TEXT_PLAIN

    # --------------------
    # Accounts & sessions
    # --------------------
    @app.route('/')
    def index():
        role = current_role()
        if current_user_id() is None or role is None:
            return redirect(url_for('login'))
        return redirect(url_for(ROLE_HOMES[role]))

    @app.route('/register', methods=['GET', 'POST'])
    def register():
        if request.method == 'GET':
            return render_template('register.html', roles=list(Role))

        form = request.form
        name = form.get('name', '').strip()
        password = form.get('password', '')
        role = Role.parse(form.get('role'))
        if not name or not password:
            abort(400, description='Name and password are required.')
        if role is None:
            abort(400, description='Role must be one of: ' + ', '.join(r.value for r in Role))

        user_id = database.create_document(USERS, {
            'name': name,
            'email': form.get('email'),
            'phone': form.get('phone'),
            'passwordHash': hash_password(password),
            'role': role.value,
            'address': address_from_form(form),
        })
        logger.info("Registered user %s with role %s", user_id, role.value)
        return redirect(url_for('login'))

    @app.route('/login', methods=['GET', 'POST'])
    def login():
        if request.method == 'GET':
            return render_template('login.html')

        name = request.form.get('name', '')
        password = request.form.get('password', '')

        # Names are not unique; the first match wins
        user = database.get_document(USERS, {'name': name})
        if user is None:
            logger.info("Login failed: user not found")
            abort(401, description='Invalid credentials')
        if not verify_password(user.get('passwordHash'), password):
            logger.info("Login failed: password mismatch for user %s", user['_id'])
            abort(401, description='Invalid credentials')

        role = Role.parse(user.get('role'))
        if role is None:
            logger.warning("Login refused: user %s has unsupported role %r", user['_id'], user.get('role'))
            abort(403, description='Unsupported role')

        session.clear()
        session.regenerate()
        session.permanent = True
        session['userId'] = str(user['_id'])
        session['role'] = role.value
        logger.info("User %s logged in as %s", user['_id'], role.value)
        return redirect(url_for(ROLE_HOMES[role]))

    @app.route('/logout')
    def logout():
        session.clear()
        return redirect(url_for('login'))

    @app.route('/check-session')
    def check_session():
        if 'userId' not in session:
            return 'No user logged in', 200, TEXT_PLAIN
        return f"Logged in as {session['userId']} with role {session.get('role')}", 200, TEXT_PLAIN

    # --------------------
    # Role home pages
    # --------------------
    @app.route('/customer-home')
    @role_required(Role.CUSTOMER)
    def customer_home():
        restaurants = database.get_documents(RESTAURANTS)
        return render_template('customer_home.html', restaurants=restaurants)

    @app.route('/restaurant-owner-home')
    @role_required(Role.RESTAURANT_OWNER)
    def restaurant_owner_home():
        user = database.get_document(USERS, {'_id': current_user_id()})
        restaurant = None
        if user is not None:
            restaurant = database.get_document(RESTAURANTS, {'ownerId': user['_id']})
        return render_template('restaurant_owner_home.html', restaurant=restaurant)

    @app.route('/driver-home')
    @role_required(Role.DELIVERY_PERSON)
    def driver_home():
        orders = database.get_documents(ORDERS, {'deliveryPersonId': current_user_id()})
        return render_template('driver_home.html', orders=orders)

    # --------------------
    # Orders
    # --------------------
    @app.route('/orders')
    @login_required
    def orders():
        return render_template('orders.html', orders=database.get_orders_with_details())

    @app.route('/order', methods=['POST'])
    @role_required(Role.CUSTOMER)
    def place_order():
        selected = request.form.getlist('menuItems')
        if not selected:
            abort(400, description='No menu items selected.')

        restaurant_id = to_object_id(request.form.get('restaurantId'))
        restaurant = database.get_document(RESTAURANTS, {'_id': restaurant_id}) if restaurant_id else None
        if restaurant is None:
            abort(404, description='Restaurant not found')

        customer_id = current_user_id()
        created_at = datetime.now(timezone.utc)
        new_orders = []
        # Every item is resolved before anything is written
        for raw_id in selected:
            quantity = parse_quantity(request.form.get(f'quantity[{raw_id}]'))
            menu_item_id = to_object_id(raw_id)
            menu_item = None
            if menu_item_id is not None:
                menu_item = database.get_document(MENU, {'_id': menu_item_id, 'restaurantId': restaurant['_id']})
            if menu_item is None:
                abort(404, description='Menu item not found')

            new_orders.append({
                'customerId': customer_id,
                'restaurantId': restaurant['_id'],
                'menuItemId': menu_item['_id'],
                'quantity': quantity,
                'totalPrice': menu_item['price'] * quantity,
                'status': ORDER_STATUS_PENDING,
                'createdAt': created_at,
            })

        order_ids = database.create_documents(ORDERS, new_orders)
        logger.info("Customer %s placed %d order(s) at restaurant %s", customer_id, len(order_ids), restaurant['_id'])
        return redirect(url_for('orders'))

    # --------------------
    # Restaurant management
    # --------------------
    @app.route('/menu', methods=['GET', 'POST'])
    @role_required(Role.RESTAURANT_OWNER)
    def menu():
        restaurant = database.get_document(RESTAURANTS, {'ownerId': current_user_id()})

        if request.method == 'POST':
            if restaurant is None:
                abort(400, description='No restaurant found for the logged-in owner.')
            form = request.form
            name = form.get('name', '').strip()
            if not name:
                abort(400, description='Menu item name is required.')
            item = {
                'name': name,
                'description': form.get('description'),
                'price': parse_price(form.get('price')),
                'category': form.get('category'),
                'availability': form.get('availability') == 'true',
                'restaurantId': restaurant['_id'],
            }
            item_id = database.create_document(MENU, item)
            logger.info("Added menu item %s to restaurant %s", item_id, restaurant['_id'])
            return redirect(url_for('restaurant_owner_home'))

        if restaurant is None:
            abort(400, description='No restaurant found for the logged-in user')
        menu_items = database.get_documents(MENU, {'restaurantId': restaurant['_id']})
        return render_template('menu.html', menu_items=menu_items, restaurant=restaurant)

    @app.route('/details', methods=['GET', 'POST'])
    @role_required(Role.RESTAURANT_OWNER)
    def details():
        owner_id = current_user_id()

        if request.method == 'POST':
            name = request.form.get('name', '').strip()
            if not name:
                abort(400, description='Restaurant name is required.')
            database.upsert_document(RESTAURANTS, {'ownerId': owner_id}, {
                'name': name,
                'address': address_from_form(request.form),
            })
            logger.info("Saved restaurant details for owner %s", owner_id)
            return redirect(url_for('restaurant_owner_home'))

        restaurant = database.get_document(RESTAURANTS, {'ownerId': owner_id})
        return render_template('details.html', restaurant=restaurant or {})

    # --------------------
    # Public pages
    # --------------------
    @app.route('/restaurant/<restaurant_id>')
    def restaurant_menu(restaurant_id):
        oid = to_object_id(restaurant_id)
        restaurant = None
        menu_items = []
        if oid is not None:
            restaurant = database.get_document(RESTAURANTS, {'_id': oid})
            menu_items = database.get_documents(MENU, {'restaurantId': oid})
        return render_template('restaurant_menu.html', restaurant=restaurant, menu=menu_items)

    return app
