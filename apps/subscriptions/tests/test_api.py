import json
from django.test import TestCase, Client

from apps.identity.jwt_auth import create_access_token
from apps.identity.models import User, UserRole
from apps.orders.models import Order
from apps.payments.models import Payment, PaymentStatus
from apps.subscriptions.models import Subscription, SubscriptionStatus


class SubscriptionAPITest(TestCase):
    """Purchases run through the eager local task backend."""

    def setUp(self):
        self.client = Client()
        self.member = User.objects.create_user(
            username="member@test.com", email="member@test.com", password="pw", role=UserRole.CUSTOMER
        )
        self.other = User.objects.create_user(
            username="other@test.com", email="other@test.com", password="pw", role=UserRole.CUSTOMER
        )

    def login(self, user):
        self.client.cookies['access_token'] = create_access_token(user.id, user.role)

    def purchase(self, **overrides):
        payload = {
            'box_size': 'small',
            'fulfillment_type': 'delivery',
            'payment_interval': 8,
            'payment_method_id': 'pm_card_visa',
        }
        payload.update(overrides)
        return self.client.post(
            '/api/subscriptions/',
            data=json.dumps(payload),
            content_type='application/json',
        )

    def test_purchase_requires_auth(self):
        self.assertEqual(self.purchase().status_code, 401)

    def test_purchase_generates_orders_and_charges(self):
        self.login(self.member)
        response = self.purchase()
        self.assertEqual(response.status_code, 201)

        data = response.json()
        self.assertEqual(data['status'], SubscriptionStatus.ACTIVE)
        self.assertEqual(data['box_price'], '23.75')
        self.assertEqual(data['total_orders'], 8)

        self.assertEqual(Order.objects.filter(subscription_id=data['id']).count(), 8)
        payment = Payment.objects.get(subscription_id=data['id'])
        self.assertEqual(payment.status, PaymentStatus.COMPLETED)

        response = self.client.get(f"/api/subscriptions/{data['id']}/orders")
        self.assertEqual(response.status_code, 200)
        self.assertEqual([o['sequence'] for o in response.json()], list(range(8)))

    def test_declined_card_records_failed_payment(self):
        self.login(self.member)
        response = self.purchase(payment_method_id='pm_card_declined')
        self.assertEqual(response.status_code, 201)

        payment = Payment.objects.get(subscription_id=response.json()['id'])
        self.assertEqual(payment.status, PaymentStatus.FAILED)

    def test_invalid_interval(self):
        self.login(self.member)
        response = self.purchase(payment_interval=5)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['code'], 'validation_failed')

    def test_other_member_cannot_view(self):
        self.login(self.member)
        subscription_id = self.purchase().json()['id']

        self.login(self.other)
        response = self.client.get(f'/api/subscriptions/{subscription_id}')
        self.assertEqual(response.status_code, 403)

    def test_list_and_cancel(self):
        self.login(self.member)
        subscription_id = self.purchase().json()['id']

        response = self.client.get('/api/subscriptions/')
        self.assertEqual(len(response.json()), 1)

        response = self.client.post(f'/api/subscriptions/{subscription_id}/cancel')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['status'], SubscriptionStatus.CANCELLED)

        payment = Payment.objects.get(subscription_id=subscription_id)
        self.assertEqual(payment.status, PaymentStatus.REFUNDED)
        self.assertEqual(
            Subscription.objects.get(id=subscription_id).status, SubscriptionStatus.CANCELLED
        )

        response = self.client.post(f'/api/subscriptions/{subscription_id}/cancel')
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['code'], 'invalid_state')
