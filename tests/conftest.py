"""
Test configuration and shared fixtures for marketplace tests.

This file contains:
- Centralized test configuration
- Shared fixtures used across multiple test files
- Common test utilities (session login, catalog/order builders)
"""

import pytest
from marketplace import create_app
from marketplace.models import (
    db, Bank, CardToken, InvoiceSettings, Order, OrderItem, Product, ProductVariant, Store
)
from marketplace.models.utils import generate_card_token
from marketplace.utils.auth_utils import create_profile


# Centralized test configuration
TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SECRET_KEY': 'test-secret-key',
    'BCRYPT_LOG_ROUNDS': 4,
    'MAIL_SERVER': 'localhost',
    'MAIL_PORT': 587,
    'MAIL_USE_TLS': False,
    'MAIL_USE_SSL': False,
    'MAIL_USERNAME': 'test@example.com',
    'MAIL_PASSWORD': 'test-password',
    'MAIL_DEFAULT_SENDER': 'test@example.com',
    'STORAGE_URL': 'http://storage.test',
    'STORAGE_SERVICE_KEY': 'service-key',
    'EINVOICE_API_URL': 'http://einvoice.test/dispatch',
}

PASSWORD = 'TestPass123!'


@pytest.fixture
def app():
    """Create and configure a new app instance for each test."""
    app = create_app(TEST_CONFIG)
    return app


@pytest.fixture
def client(app):
    """Create a test client for the app."""
    return app.test_client()


@pytest.fixture
def app_context(app):
    """Create an application context for database operations."""
    with app.app_context():
        yield


@pytest.fixture
def db_session(app_context):
    """Create a database session and clean up after tests."""
    db.create_all()
    yield db.session
    db.session.remove()
    db.drop_all()


@pytest.fixture
def customer(db_session):
    return create_profile('customer@example.com', PASSWORD, role='customer',
                          first_name='Ayşe', last_name='Yılmaz', address='Kadıköy, İstanbul')


@pytest.fixture
def other_customer(db_session):
    return create_profile('other@example.com', PASSWORD, role='customer')


@pytest.fixture
def seller(db_session):
    return create_profile('seller@example.com', PASSWORD, role='seller', first_name='Mehmet')


@pytest.fixture
def admin(db_session):
    return create_profile('admin@example.com', PASSWORD, role='admin')


@pytest.fixture
def store(db_session, seller):
    store = Store(user_id=seller.id, name='Test Mağaza', slug='test-magaza')
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture
def login(client):
    """Return a helper that puts a profile's id into the session cookie."""
    def _login(profile):
        with client.session_transaction() as sess:
            sess['user_id'] = profile.id
    return _login


@pytest.fixture
def product(db_session, store):
    product = Product(store_id=store.id, name='Kupa', price=100.0, stock=10,
                      image_url='products/kupa.jpg', is_approved=True, is_active=True)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture
def pending_product(db_session, store):
    product = Product(store_id=store.id, name='Yeni Ürün', price=50.0, stock=3)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture
def order(db_session, customer, store, product):
    """Order with three lines: one with a variant, one without a tax rate."""
    variant = ProductVariant(product_id=product.id, name='Kırmızı', price=120.0)
    db_session.add(variant)
    db_session.flush()

    order = Order(user_id=customer.id, store_id=store.id, total_amount=420.0)
    order.items.append(OrderItem(product_id=product.id, variant_id=variant.id, quantity=2, price=120.0, tax_rate=8))
    order.items.append(OrderItem(product_id=product.id, quantity=1, price=100.0))
    order.items.append(OrderItem(product_id=product.id, quantity=1, price=80.0, tax_rate=1))
    db_session.add(order)
    db_session.commit()
    return order


@pytest.fixture
def invoice_settings(db_session, seller):
    settings = InvoiceSettings(seller_id=seller.id, invoice_prefix='MP',
                               company_name='Test Ticaret A.Ş.', address='Ankara',
                               tax_office='Çankaya', tax_number='1234567890')
    db_session.add(settings)
    db_session.commit()
    return settings


@pytest.fixture
def bank(db_session):
    bank = Bank(name='Test Bank', pos_api_endpoint='https://pos.test/api',
                pos_api_key='key', pos_api_secret='secret',
                supported_card_types=['VISA', 'MASTERCARD'])
    db_session.add(bank)
    db_session.commit()
    return bank


def make_card(session, owner, last_four='1111', is_default=False):
    card = CardToken(
        user_id=owner.id,
        card_holder_name='Ayşe Yılmaz',
        last_four_digits=last_four,
        expiry_month='12',
        expiry_year='2099',
        card_type='VISA',
        token_value=generate_card_token(),
        is_default=is_default,
    )
    session.add(card)
    session.commit()
    return card


@pytest.fixture
def card(db_session, customer):
    return make_card(db_session, customer)
