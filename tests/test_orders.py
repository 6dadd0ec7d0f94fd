"""
Order visibility and status changes per role.
"""

import pytest

from marketplace.models import db, Order, OrderItem, Store
from marketplace.utils.auth_utils import create_profile
from conftest import PASSWORD


@pytest.fixture
def foreign_order(db_session, other_customer):
    other_seller = create_profile('seller2@example.com', PASSWORD, role='seller')
    other_store = Store(user_id=other_seller.id, name='Başka Mağaza', slug='baska-magaza')
    db_session.add(other_store)
    db_session.flush()
    order = Order(user_id=other_customer.id, store_id=other_store.id, total_amount=50.0)
    db_session.add(order)
    db_session.commit()
    return order


class TestListOrders:

    def test_customer_sees_own_orders(self, client, order, foreign_order, customer, login):
        login(customer)
        data = client.get('/api/orders').get_json()

        assert data['count'] == 1
        assert [o['id'] for o in data['orders']] == [order.id]
        assert len(data['orders'][0]['order_items']) == 3

    def test_seller_sees_own_store_orders(self, client, order, foreign_order, seller, login):
        login(seller)
        data = client.get('/api/orders').get_json()
        assert [o['id'] for o in data['orders']] == [order.id]

    def test_seller_cannot_filter_foreign_store(self, client, order, foreign_order, seller, login):
        login(seller)
        response = client.get(f'/api/orders?store_id={foreign_order.store_id}')
        assert response.status_code == 404

    def test_admin_sees_all_and_filters(self, client, order, foreign_order, admin, other_customer, login):
        login(admin)
        assert client.get('/api/orders').get_json()['count'] == 2

        data = client.get(f'/api/orders?user_id={other_customer.id}').get_json()
        assert [o['id'] for o in data['orders']] == [foreign_order.id]

    def test_requires_login(self, client, db_session):
        assert client.get('/api/orders').status_code == 401


class TestGetOrder:

    def test_buyer_can_view(self, client, order, customer, login):
        login(customer)
        response = client.get(f'/api/orders/{order.id}')
        assert response.status_code == 200
        assert response.get_json()['order']['total_amount'] == 420.0

    def test_store_owner_can_view(self, client, order, seller, login):
        login(seller)
        assert client.get(f'/api/orders/{order.id}').status_code == 200

    def test_other_customer_is_denied(self, client, order, other_customer, login):
        login(other_customer)
        response = client.get(f'/api/orders/{order.id}')
        assert response.status_code == 403
        assert response.get_json()['error'] == 'Access Denied to this order'

    def test_unknown_order(self, client, customer, login):
        login(customer)
        assert client.get('/api/orders/missing').status_code == 404


class TestUpdateOrder:

    def test_seller_updates_status(self, client, db_session, order, seller, login):
        login(seller)
        response = client.put(f'/api/orders/{order.id}', json={'status': 'shipped'})

        assert response.status_code == 200
        db_session.refresh(order)
        assert order.status == 'shipped'

    def test_buyer_requests_cancellation(self, client, db_session, order, customer, login):
        login(customer)
        response = client.put(f'/api/orders/{order.id}', json={'status': 'cancelled'})

        assert response.status_code == 200
        db_session.refresh(order)
        assert order.status == 'cancellation_requested'

    def test_buyer_cannot_set_other_status(self, client, db_session, order, customer, login):
        login(customer)
        response = client.put(f'/api/orders/{order.id}', json={'status': 'delivered'})
        assert response.status_code == 403

    def test_buyer_cannot_cancel_shipped_order(self, client, db_session, order, customer, login):
        order.status = 'shipped'
        db_session.commit()
        login(customer)

        assert client.put(f'/api/orders/{order.id}', json={'status': 'cancelled'}).status_code == 403

    def test_empty_update(self, client, order, admin, login):
        login(admin)
        assert client.put(f'/api/orders/{order.id}', json={}).status_code == 400


class TestDeleteOrder:

    def test_admin_deletes_order_and_items(self, client, order, admin, login):
        order_id = order.id
        login(admin)

        assert client.delete(f'/api/orders/{order_id}').status_code == 200
        assert db.session.get(Order, order_id) is None
        assert OrderItem.query.filter_by(order_id=order_id).count() == 0

    def test_customer_cannot_delete(self, client, order, customer, login):
        login(customer)
        assert client.delete(f'/api/orders/{order.id}').status_code == 403
