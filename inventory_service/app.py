import logging
import time

from flask import Blueprint, Flask, current_app, g, jsonify, request
from flask_cors import CORS
from flask_migrate import Migrate
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from pydantic import ValidationError
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from werkzeug.security import check_password_hash, generate_password_hash

from .config import Settings
from .logging_config import SERVICE_NAME, setup_logging
from .model import db
from .schemas import ProductIn, SaleRequest, StockAdjustment, UserCredentials
from .store import Store

logger = logging.getLogger(SERVICE_NAME)

# Prometheus metrics
REQUEST_COUNT = Counter('inventory_service_requests_total', 'Total requests', ['method', 'endpoint', 'status'])
REQUEST_DURATION = Histogram('inventory_service_request_duration_seconds', 'Request duration')
PRODUCT_OPERATIONS = Counter('inventory_service_product_operations_total', 'Product writes', ['operation'])
LOGIN_ATTEMPTS = Counter('inventory_service_login_attempts_total', 'Login attempts', ['status'])

api = Blueprint('api', __name__)


def _store() -> Store:
    return current_app.extensions['store']


def _parse(schema):
    data = request.get_json(silent=True)
    return schema.model_validate(data if isinstance(data, dict) else {})


def _error_details(error):
    # DBAPI errors carry the driver's own message on .orig
    return str(getattr(error, 'orig', None) or error)


def _store_error(message, error, endpoint, **extra):
    logger.error(message, extra={'endpoint': endpoint, 'status_code': 500, 'error': _error_details(error), **extra})
    return jsonify({"error": message, "details": _error_details(error)}), 500


@api.before_app_request
def log_request():
    g.start_time = time.time()
    logger.info(f"{request.method} {request.full_path.rstrip('?')}", extra={'method': request.method, 'path': request.path})


@api.after_app_request
def record_metrics(response):
    endpoint = request.url_rule.rule if request.url_rule else 'unmatched'
    REQUEST_COUNT.labels(request.method, endpoint, str(response.status_code)).inc()
    if 'start_time' in g:
        REQUEST_DURATION.observe(time.time() - g.start_time)
    return response


@api.app_errorhandler(404)
def not_found(error):
    if request.path.startswith('/products/'):
        return jsonify({"error": "Product not found"}), 404
    return jsonify({"error": "Not found"}), 404


@api.route('/')
def index():
    return 'Hello World!'


# health check
@api.route('/health')
def health():
    return 'OK', 200


# Prometheus metrics endpoint
@api.route('/metrics')
def metrics():
    return generate_latest(), 200, {'Content-Type': CONTENT_TYPE_LATEST}


# register a user
@api.route('/users', methods=['POST'])
def register():
    try:
        credentials = _parse(UserCredentials)
    except ValidationError:
        logger.warning("Registration failed - missing username or password", extra={'endpoint': '/users', 'status_code': 400})
        return jsonify({"error": "Username and password are required."}), 400

    try:
        _store().create_user(credentials.username, generate_password_hash(credentials.password))
    except SQLAlchemyError as e:
        return _store_error("Error registering user", e, '/users', username=credentials.username)

    logger.info("User registered successfully", extra={'endpoint': '/users', 'username': credentials.username, 'status_code': 201})
    return jsonify({"username": credentials.username}), 201


@api.route('/login', methods=['POST'])
def login():
    try:
        credentials = _parse(UserCredentials)
    except ValidationError:
        LOGIN_ATTEMPTS.labels('invalid').inc()
        return jsonify({"error": "Username and password are required."}), 400

    try:
        user = _store().get_user(credentials.username)
    except SQLAlchemyError as e:
        LOGIN_ATTEMPTS.labels('error').inc()
        return _store_error("Error logging in", e, '/login', username=credentials.username)

    if user is None:
        LOGIN_ATTEMPTS.labels('unknown_user').inc()
        logger.warning("Login failed - user not found", extra={'endpoint': '/login', 'username': credentials.username, 'status_code': 404})
        return jsonify({"error": "User not found"}), 404

    if not check_password_hash(user['password'], credentials.password):
        LOGIN_ATTEMPTS.labels('failed').inc()
        logger.warning("Invalid login credentials", extra={'endpoint': '/login', 'username': credentials.username, 'status_code': 401})
        return jsonify({"error": "Invalid password"}), 401

    LOGIN_ATTEMPTS.labels('success').inc()
    logger.info("Successful login", extra={'endpoint': '/login', 'username': user['username'], 'status_code': 200})
    return jsonify({"username": user['username']}), 200


@api.route('/users', methods=['GET'])
def get_users():
    try:
        users = _store().list_users()
    except SQLAlchemyError as e:
        return _store_error("Error fetching users", e, '/users')
    return jsonify(users)


# get all products
@api.route('/products', methods=['GET'])
def get_products():
    try:
        products = _store().list_products()
    except SQLAlchemyError as e:
        return _store_error("Error fetching products", e, '/products')
    logger.info(f"Retrieved {len(products)} products", extra={'endpoint': '/products', 'status_code': 200})
    return jsonify(products)


# create products
@api.route('/products', methods=['POST'])
def create_product():
    try:
        product_in = _parse(ProductIn)
    except ValidationError:
        logger.warning("Missing required fields for product creation", extra={'endpoint': '/products', 'status_code': 400})
        return jsonify({"error": "All fields are required."}), 400

    try:
        product = _store().create_product(product_in.model_dump())
    except SQLAlchemyError as e:
        return _store_error("Error adding product", e, '/products')

    PRODUCT_OPERATIONS.labels('create').inc()
    logger.info("Product created successfully", extra={'endpoint': '/products', 'product_id': product['id'], 'status_code': 201})
    return jsonify(product), 201


# update product
@api.route('/products/<int:product_id>', methods=['PUT'])
def update_product(product_id):
    endpoint = '/products/<int:product_id>'
    try:
        product_in = _parse(ProductIn)
    except ValidationError:
        logger.warning("Missing required fields for product update", extra={'endpoint': endpoint, 'product_id': product_id, 'status_code': 400})
        return jsonify({"error": "All fields are required."}), 400

    try:
        product = _store().update_product(product_id, product_in.model_dump())
    except SQLAlchemyError as e:
        return _store_error("Error updating product", e, endpoint, product_id=product_id)

    if product is None:
        logger.warning("Product not found", extra={'endpoint': endpoint, 'product_id': product_id, 'status_code': 404})
        return jsonify({"error": "Product not found"}), 404

    PRODUCT_OPERATIONS.labels('update').inc()
    logger.info("Product updated successfully", extra={'endpoint': endpoint, 'product_id': product_id, 'status_code': 200})
    return jsonify({"message": "Product updated successfully", "product": product}), 200


# delete product
@api.route('/products/<int:product_id>', methods=['DELETE'])
def delete_product(product_id):
    endpoint = '/products/<int:product_id>'
    try:
        deleted = _store().delete_product(product_id)
    except SQLAlchemyError as e:
        return _store_error("Error deleting product", e, endpoint, product_id=product_id)

    if not deleted:
        logger.warning("Product not found", extra={'endpoint': endpoint, 'product_id': product_id, 'status_code': 404})
        return jsonify({"error": "Product not found"}), 404

    PRODUCT_OPERATIONS.labels('delete').inc()
    logger.info("Product deleted successfully", extra={'endpoint': endpoint, 'product_id': product_id, 'status_code': 204})
    return '', 204


def _adjust_stock(schema, operation, error_message):
    endpoint = '/' + operation
    try:
        adjustment = _parse(schema)
    except ValidationError:
        logger.warning("Missing productId or quantity", extra={'endpoint': endpoint, 'status_code': 400})
        return jsonify({"error": "productId and quantity are required."}), 400

    try:
        product = _store().adjust_quantity(adjustment.product_id, adjustment.delta)
    except SQLAlchemyError as e:
        return _store_error(error_message, e, endpoint, product_id=adjustment.product_id)

    if product is None:
        logger.warning("Product not found", extra={'endpoint': endpoint, 'product_id': adjustment.product_id, 'status_code': 404})
        return jsonify({"error": "Product not found"}), 404

    PRODUCT_OPERATIONS.labels(operation).inc()
    logger.info(f"Quantity changed by {adjustment.delta}, now {product['quantity']}", extra={'endpoint': endpoint, 'product_id': product['id'], 'status_code': 200})
    return jsonify({"success": True, "product": product}), 200


@api.route('/stock', methods=['POST'])
def update_stock():
    return _adjust_stock(StockAdjustment, 'stock', "Error updating stock")


@api.route('/sell', methods=['POST'])
def sell():
    return _adjust_stock(SaleRequest, 'sell', "Error processing sale")


def create_app(overrides=None):
    settings = Settings.from_env()
    setup_logging(settings.log_level)

    app = Flask(__name__)
    app.config['SQLALCHEMY_DATABASE_URI'] = settings.database_url
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['PORT'] = settings.port
    if overrides:
        app.config.update(overrides)

    db.init_app(app)
    Migrate(app, db)
    CORS(app)

    with app.app_context():
        app.extensions['store'] = Store(db.engine)

    app.register_blueprint(api)
    return app


def main():
    app = create_app()
    store = app.extensions['store']

    with app.app_context():
        for _ in range(10):
            try:
                db.create_all()
                break
            except OperationalError:
                logger.warning("Database unavailable, retrying in 2 seconds...")
                time.sleep(2)

    logger.info("Starting inventory service", extra={'port': app.config['PORT']})
    try:
        app.run(host='0.0.0.0', port=app.config['PORT'], threaded=True)
    finally:
        store.close()
        logger.info("Inventory service stopped")


if __name__ == "__main__":
    main()
