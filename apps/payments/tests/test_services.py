"""
Tests for subscription and add-on charges, refunds and the payment gateways.
"""
from datetime import timedelta
from decimal import Decimal
from types import SimpleNamespace
from unittest import mock
from uuid import uuid4
from django.contrib.auth import get_user_model
from django.test import TestCase, SimpleTestCase, Client, override_settings
from django.utils import timezone

from apps.core.actions import RefundPayment, SendPaymentFailed
from apps.core.backends.local_backend import LocalTaskService
from apps.core.errors import InvalidState, NotFound
from apps.core.task_service import TaskRegistry
from apps.identity.jwt_auth import create_access_token
from apps.payments import services
from apps.payments.backends.local_gateway import LocalPaymentGateway
from apps.payments.dtos import ChargeResult
from apps.payments.gateway import get_payment_gateway, to_minor_units
from apps.orders.models import Order, OrderAddon, OrderStatus
from apps.orders.services import cancel_order
from apps.payments.models import Payment, PaymentStatus, PaymentType
from apps.subscriptions.models import Subscription, SubscriptionStatus

User = get_user_model()


class PaymentServiceTest(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(username='member@test.com', email='member@test.com', password='pw')
        now = timezone.now()
        self.subscription = Subscription.objects.create(
            user_id=self.user.id,
            box_size='large',
            fulfillment_type='delivery',
            payment_interval=8,
            box_price=Decimal('38.00'),
            total_orders=8,
            remaining_orders=8,
            period_start=now,
            period_end=now + timedelta(weeks=8),
        )
        self.backend = LocalTaskService(eager=False)
        self.tasks = TaskRegistry(self.backend).open()

    def tearDown(self):
        self.tasks.close()

    def charge(self, payment_method_id='pm_card_visa', gateway=None):
        return services.process_subscription_payment(
            self.subscription.id,
            payment_method_id,
            Decimal('304.00'),
            tasks=self.tasks,
            gateway=gateway,
        )

    def test_successful_charge(self):
        payment = self.charge()
        self.assertEqual(payment.status, PaymentStatus.COMPLETED)
        self.assertEqual(payment.amount, Decimal('304.00'))
        self.assertTrue(payment.transaction_id.startswith('pi_local_'))
        self.assertEqual(self.backend.queued, [])

    def test_subscription_is_charged_once(self):
        first = self.charge()
        second = self.charge()
        self.assertEqual(first.id, second.id)
        self.assertEqual(Payment.objects.count(), 1)

    def test_declined_card(self):
        payment = self.charge('pm_card_declined_insufficient_funds')
        self.assertEqual(payment.status, PaymentStatus.FAILED)
        self.assertEqual(payment.failure_reason, 'Your card was declined.')
        self.assertEqual(self.backend.queued, [SendPaymentFailed(subscription_id=self.subscription.id)])

    def test_retry_after_decline_charges_again(self):
        self.charge('pm_card_declined')
        payment = self.charge('pm_card_visa')
        self.assertEqual(payment.status, PaymentStatus.COMPLETED)
        self.assertEqual(Payment.objects.count(), 2)

    def test_gateway_error_leaves_payment_pending(self):
        gateway = mock.Mock()
        gateway.charge.side_effect = ConnectionError('gateway unreachable')

        with self.assertRaises(ConnectionError):
            self.charge(gateway=gateway)

        payment = Payment.objects.get()
        self.assertEqual(payment.status, PaymentStatus.PENDING)
        self.assertEqual(payment.failure_reason, 'gateway unreachable')
        self.assertEqual(
            gateway.charge.call_args.kwargs['idempotency_key'],
            f'subscription-charge-{payment.id}',
        )

    def test_retry_after_gateway_error_reuses_idempotency_key(self):
        gateway = mock.Mock()
        gateway.charge.side_effect = [
            ConnectionError('gateway unreachable'),
            ChargeResult(success=True, transaction_id='pi_1'),
        ]

        with self.assertRaises(ConnectionError):
            self.charge(gateway=gateway)
        payment = self.charge(gateway=gateway)

        self.assertEqual(payment.status, PaymentStatus.COMPLETED)
        self.assertEqual(payment.transaction_id, 'pi_1')
        self.assertEqual(payment.failure_reason, '')
        self.assertEqual(Payment.objects.count(), 1)
        keys = {c.kwargs['idempotency_key'] for c in gateway.charge.call_args_list}
        self.assertEqual(keys, {f'subscription-charge-{payment.id}'})

    def test_cancelled_subscription_is_not_charged(self):
        self.subscription.status = SubscriptionStatus.CANCELLED
        self.subscription.save()
        gateway = mock.Mock()

        with self.assertRaises(InvalidState):
            self.charge(gateway=gateway)

        gateway.charge.assert_not_called()
        self.assertFalse(Payment.objects.exists())

    def test_unknown_subscription(self):
        with self.assertRaises(NotFound):
            services.process_subscription_payment(self.user.id, 'pm_card_visa', Decimal('1.00'))

    def test_partial_refund(self):
        payment = self.charge()
        refunded = services.process_refund(payment.id, amount=Decimal('114.00'))

        self.assertEqual(refunded.status, PaymentStatus.REFUNDED)
        self.assertEqual(refunded.refunded_amount, Decimal('114.00'))
        self.assertIsNone(services.get_refundable_payment(self.subscription.id))

    def test_refund_is_capped_at_amount_paid(self):
        payment = self.charge()
        refunded = services.process_refund(payment.id, amount=Decimal('500.00'))
        self.assertEqual(refunded.refunded_amount, Decimal('304.00'))

    def test_refund_twice_is_a_no_op(self):
        payment = self.charge()
        gateway = mock.Mock(wraps=LocalPaymentGateway())
        services.process_refund(payment.id, gateway=gateway)
        services.process_refund(payment.id, gateway=gateway)
        self.assertEqual(gateway.refund.call_count, 1)

    def test_cannot_refund_failed_payment(self):
        payment = self.charge('pm_card_declined')
        with self.assertRaises(InvalidState):
            services.process_refund(payment.id)


class AddonPaymentTest(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(username='member@test.com', email='member@test.com', password='pw')
        now = timezone.now()
        self.subscription = Subscription.objects.create(
            user_id=self.user.id,
            box_size='small',
            fulfillment_type='pickup',
            payment_interval=4,
            box_price=Decimal('25.00'),
            total_orders=4,
            remaining_orders=4,
            period_start=now,
            period_end=now + timedelta(weeks=4),
        )
        self.order = Order.objects.create(
            subscription_id=self.subscription.id,
            user_id=self.user.id,
            sequence=0,
            fulfillment_date=(now + timedelta(days=3)).date(),
            fulfillment_time=now.time(),
            cutoff_datetime=now + timedelta(days=2),
            total_amount=Decimal('25.00'),
        )
        self.line = OrderAddon.objects.create(
            order=self.order,
            addon_id='eggs',
            name='Farm Eggs',
            quantity=2,
            unit_price=Decimal('6.00'),
            total_price=Decimal('12.00'),
        )
        self.backend = LocalTaskService(eager=False)
        self.tasks = TaskRegistry(self.backend).open()

    def tearDown(self):
        self.tasks.close()

    def charge(self, payment_method_id='pm_card_visa', gateway=None):
        return services.process_addon_payment(self.line.id, payment_method_id, tasks=self.tasks, gateway=gateway)

    def test_successful_charge(self):
        payment = self.charge()
        self.assertEqual(payment.status, PaymentStatus.COMPLETED)
        self.assertEqual(payment.payment_type, PaymentType.ADDON)
        self.assertEqual(payment.amount, Decimal('12.00'))
        self.assertEqual(payment.order_id, self.order.id)
        self.assertEqual(payment.order_addon_id, self.line.id)
        self.assertEqual(payment.subscription_id, self.subscription.id)

    def test_addon_is_charged_once(self):
        gateway = mock.Mock(wraps=LocalPaymentGateway())
        first = self.charge(gateway=gateway)
        second = self.charge(gateway=gateway)
        self.assertEqual(first.id, second.id)
        self.assertEqual(gateway.charge.call_count, 1)
        self.assertEqual(
            gateway.charge.call_args.kwargs['idempotency_key'],
            f'addon-charge-{first.id}',
        )

    def test_declined_card(self):
        payment = self.charge('pm_card_declined')
        self.assertEqual(payment.status, PaymentStatus.FAILED)
        self.assertEqual(self.backend.queued, [SendPaymentFailed(subscription_id=self.subscription.id)])

    def test_cancelled_order_is_not_charged(self):
        self.order.status = OrderStatus.CANCELLED
        self.order.save()
        gateway = mock.Mock()

        with self.assertRaises(InvalidState):
            self.charge(gateway=gateway)

        gateway.charge.assert_not_called()
        self.assertFalse(Payment.objects.exists())

    def test_unknown_addon_line(self):
        with self.assertRaises(NotFound):
            services.process_addon_payment(uuid4(), 'pm_card_visa')

    def test_completed_addon_payments(self):
        paid = self.charge()
        Payment.objects.create(
            user_id=self.user.id,
            subscription_id=self.subscription.id,
            amount=Decimal('100.00'),
            status=PaymentStatus.COMPLETED,
        )

        payments = services.get_completed_addon_payments([self.order.id])

        self.assertEqual([p.id for p in payments], [paid.id])

    def test_cancelling_order_refunds_paid_addon(self):
        paid = self.charge()
        cancel_order(self.order.id, self.user.id, tasks=self.tasks)

        self.assertEqual(self.backend.queued, [RefundPayment(payment_id=paid.id)])
        self.backend.run_queued()
        self.assertEqual(Payment.objects.get(id=paid.id).status, PaymentStatus.REFUNDED)


class GatewayTest(SimpleTestCase):

    def test_minor_units(self):
        self.assertEqual(to_minor_units(Decimal('23.75')), 2375)
        self.assertEqual(to_minor_units(Decimal('432')), 43200)

    @override_settings(PAYMENT_BACKEND='local')
    def test_local_gateway_selected(self):
        self.assertIsInstance(get_payment_gateway(), LocalPaymentGateway)

    @override_settings(PAYMENT_BACKEND='paypal')
    def test_unknown_gateway(self):
        with self.assertRaises(ValueError):
            get_payment_gateway()


@override_settings(PAYMENT_BACKEND='stripe', STRIPE_SECRET_KEY='sk_test_123', STRIPE_CURRENCY='usd')
class StripeGatewayTest(SimpleTestCase):

    def setUp(self):
        self.gateway = get_payment_gateway()

    def test_successful_charge(self):
        intent = SimpleNamespace(id='pi_123', status='succeeded')
        with mock.patch.object(self.gateway.stripe.PaymentIntent, 'create', return_value=intent) as create:
            result = self.gateway.charge(
                Decimal('100.00'), 'pm_card_visa', customer_id='cus_1', idempotency_key='key-1'
            )

        self.assertEqual(result, ChargeResult(success=True, transaction_id='pi_123'))
        params = create.call_args.kwargs
        self.assertEqual(params['amount'], 10000)
        self.assertEqual(params['customer'], 'cus_1')
        self.assertEqual(params['idempotency_key'], 'key-1')
        self.assertTrue(params['confirm'])
        self.assertTrue(params['off_session'])

    def test_charge_without_customer_is_on_session(self):
        intent = SimpleNamespace(id='pi_124', status='succeeded')
        with mock.patch.object(self.gateway.stripe.PaymentIntent, 'create', return_value=intent) as create:
            self.gateway.charge(Decimal('25.00'), 'pm_card_visa')

        params = create.call_args.kwargs
        self.assertNotIn('customer', params)
        self.assertNotIn('off_session', params)

    def test_incomplete_intent(self):
        intent = SimpleNamespace(id='pi_456', status='requires_action')
        with mock.patch.object(self.gateway.stripe.PaymentIntent, 'create', return_value=intent):
            result = self.gateway.charge(Decimal('25.00'), 'pm_card_visa')

        self.assertFalse(result.success)
        self.assertEqual(result.transaction_id, 'pi_456')

    def test_card_error_is_a_decline(self):
        error = self.gateway.stripe.CardError('Your card was declined.', None, 'card_declined')
        with mock.patch.object(self.gateway.stripe.PaymentIntent, 'create', side_effect=error):
            result = self.gateway.charge(Decimal('25.00'), 'pm_card_declined')

        self.assertFalse(result.success)
        self.assertEqual(result.transaction_id, '')

    def test_partial_refund(self):
        refund = SimpleNamespace(id='re_789')
        with mock.patch.object(self.gateway.stripe.Refund, 'create', return_value=refund) as create:
            refund_id = self.gateway.refund('pi_123', Decimal('50.00'))

        self.assertEqual(refund_id, 're_789')
        create.assert_called_once_with(payment_intent='pi_123', amount=5000)


class PaymentAPITest(TestCase):

    def test_payment_history(self):
        user = User.objects.create_user(username='payer@test.com', email='payer@test.com', password='pw')
        Payment.objects.create(user_id=user.id, amount=Decimal('100.00'), status=PaymentStatus.COMPLETED)
        Payment.objects.create(user_id=uuid4(), amount=Decimal('40.00'))

        client = Client()
        client.cookies['access_token'] = create_access_token(user.id, user.role)
        response = client.get('/api/payments/')

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(len(data), 1)
        self.assertEqual(data[0]['amount'], '100.00')
