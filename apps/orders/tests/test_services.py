"""
Tests for the order lifecycle: lock, fulfill, cancel, edit, add-ons.
"""
from datetime import timedelta
from decimal import Decimal
from uuid import uuid4
from django.contrib.auth import get_user_model
from django.test import TestCase
from django.utils import timezone

from apps.core.actions import AutoEnroll, ChargeAddon, RefundPayment, SendOrderFulfilled, SendOrderLocked
from apps.core.backends.local_backend import LocalTaskService
from apps.core.errors import (
    EditWindowClosed, Forbidden, InvalidState, NotFound, PreconditionFailed, ValidationFailed,
)
from apps.core.task_service import TaskRegistry
from apps.orders import services
from apps.orders.models import Order, OrderAddon, OrderStatus
from apps.payments.models import Payment, PaymentStatus
from apps.subscriptions.models import Subscription, SubscriptionStatus

User = get_user_model()


class OrderLifecycleTestBase(TestCase):

    def setUp(self):
        self.owner = User.objects.create_user(username='owner@test.com', email='owner@test.com', password='pw')
        self.stranger = User.objects.create_user(username='other@test.com', email='other@test.com', password='pw')
        self.backend = LocalTaskService(eager=False)
        self.tasks = TaskRegistry(self.backend).open()

        now = timezone.now()
        self.subscription = Subscription.objects.create(
            user_id=self.owner.id,
            box_size='small',
            fulfillment_type='pickup',
            payment_interval=4,
            box_price=Decimal('25.00'),
            total_orders=4,
            remaining_orders=4,
            period_start=now,
            period_end=now + timedelta(weeks=4),
        )

    def tearDown(self):
        self.tasks.close()

    def make_order(self, status=OrderStatus.PENDING, cutoff_in=timedelta(days=2), sequence=0) -> Order:
        cutoff = timezone.now() + cutoff_in
        return Order.objects.create(
            subscription_id=self.subscription.id,
            user_id=self.owner.id,
            sequence=sequence,
            fulfillment_date=(cutoff + timedelta(days=1)).date(),
            fulfillment_time=cutoff.time(),
            cutoff_datetime=cutoff,
            status=status,
            total_amount=Decimal('25.00'),
        )


class LockOrderTest(OrderLifecycleTestBase):

    def test_lock_pending_order(self):
        order = self.make_order()
        result = services.lock_order(order.id, tasks=self.tasks)

        self.assertEqual(result.status, OrderStatus.LOCKED)
        self.assertIsNotNone(result.locked_at)
        self.assertEqual(self.backend.queued, [SendOrderLocked(order_id=order.id)])

    def test_lock_twice_is_idempotent(self):
        order = self.make_order()
        first = services.lock_order(order.id, tasks=self.tasks)
        second = services.lock_order(order.id, tasks=self.tasks)

        self.assertEqual(first, second)
        self.assertEqual(len(self.backend.queued), 1)

    def test_lock_cancelled_order(self):
        order = self.make_order(status=OrderStatus.CANCELLED)
        with self.assertRaises(InvalidState) as ctx:
            services.lock_order(order.id, tasks=self.tasks)
        self.assertEqual(ctx.exception.current_status, OrderStatus.CANCELLED)

    def test_lock_fulfilled_order(self):
        order = self.make_order(status=OrderStatus.FULFILLED)
        with self.assertRaises(InvalidState):
            services.lock_order(order.id)

    def test_lock_unknown_order(self):
        with self.assertRaises(NotFound):
            services.lock_order(uuid4())


class FulfillOrderTest(OrderLifecycleTestBase):

    def test_fulfill_locked_order_decrements_subscription(self):
        order = self.make_order(status=OrderStatus.LOCKED)
        result = services.fulfill_order(order.id, tasks=self.tasks)

        self.assertEqual(result.status, OrderStatus.FULFILLED)
        self.subscription.refresh_from_db()
        self.assertEqual(self.subscription.remaining_orders, 3)
        self.assertEqual(self.subscription.status, SubscriptionStatus.ACTIVE)
        self.assertEqual(self.backend.queued, [SendOrderFulfilled(order_id=order.id)])

    def test_fulfill_pending_order_fails_and_leaves_it(self):
        order = self.make_order()
        with self.assertRaises(PreconditionFailed):
            services.fulfill_order(order.id, tasks=self.tasks)

        order.refresh_from_db()
        self.assertEqual(order.status, OrderStatus.PENDING)
        self.subscription.refresh_from_db()
        self.assertEqual(self.subscription.remaining_orders, 4)
        self.assertEqual(self.backend.queued, [])

    def test_second_fulfill_does_not_double_decrement(self):
        order = self.make_order(status=OrderStatus.LOCKED)
        services.fulfill_order(order.id, tasks=self.tasks)
        with self.assertRaises(PreconditionFailed):
            services.fulfill_order(order.id, tasks=self.tasks)

        self.subscription.refresh_from_db()
        self.assertEqual(self.subscription.remaining_orders, 3)

    def test_last_fulfillment_completes_subscription(self):
        Subscription.objects.filter(id=self.subscription.id).update(remaining_orders=1)
        order = self.make_order(status=OrderStatus.LOCKED)
        services.fulfill_order(order.id, tasks=self.tasks)

        self.subscription.refresh_from_db()
        self.assertEqual(self.subscription.remaining_orders, 0)
        self.assertEqual(self.subscription.status, SubscriptionStatus.COMPLETED)
        self.assertIn(AutoEnroll(subscription_id=self.subscription.id), self.backend.queued)

    def test_counter_is_floored_at_zero(self):
        Subscription.objects.filter(id=self.subscription.id).update(
            remaining_orders=0, status=SubscriptionStatus.COMPLETED
        )
        order = self.make_order(status=OrderStatus.LOCKED)
        services.fulfill_order(order.id, tasks=self.tasks)

        self.subscription.refresh_from_db()
        self.assertEqual(self.subscription.remaining_orders, 0)
        self.assertNotIn(AutoEnroll(subscription_id=self.subscription.id), self.backend.queued)

    def test_missing_subscription_rolls_back_order(self):
        order = self.make_order(status=OrderStatus.LOCKED)
        Order.objects.filter(id=order.id).update(subscription_id=uuid4())

        with self.assertRaises(NotFound):
            services.fulfill_order(order.id)

        order.refresh_from_db()
        self.assertEqual(order.status, OrderStatus.LOCKED)


class CancelOrderTest(OrderLifecycleTestBase):

    def test_owner_cancels_pending_order(self):
        order = self.make_order()
        result = services.cancel_order(order.id, self.owner.id)
        self.assertEqual(result.status, OrderStatus.CANCELLED)
        self.assertIsNotNone(result.cancelled_at)

    def test_owner_cancels_locked_order(self):
        order = self.make_order(status=OrderStatus.LOCKED)
        self.assertEqual(services.cancel_order(order.id, self.owner.id).status, OrderStatus.CANCELLED)

    def test_stranger_cannot_cancel(self):
        order = self.make_order()
        with self.assertRaises(Forbidden):
            services.cancel_order(order.id, self.stranger.id)
        order.refresh_from_db()
        self.assertEqual(order.status, OrderStatus.PENDING)

    def test_cannot_cancel_fulfilled_order(self):
        order = self.make_order(status=OrderStatus.FULFILLED)
        with self.assertRaises(InvalidState):
            services.cancel_order(order.id, self.owner.id)

    def test_cancelling_twice_returns_same_order(self):
        order = self.make_order()
        first = services.cancel_order(order.id, self.owner.id)
        second = services.cancel_order(order.id, self.owner.id)
        self.assertEqual(first, second)


class UpdateNotesTest(OrderLifecycleTestBase):

    def test_owner_edits_before_cutoff(self):
        order = self.make_order()
        result = services.update_order_notes(order.id, self.owner.id, "No kale please")
        self.assertEqual(result.notes, "No kale please")

    def test_edit_after_cutoff(self):
        order = self.make_order()
        with self.assertRaises(EditWindowClosed):
            services.update_order_notes(
                order.id, self.owner.id, "late", now=order.cutoff_datetime
            )

    def test_edit_after_cutoff_regardless_of_status(self):
        order = self.make_order(status=OrderStatus.FULFILLED, cutoff_in=timedelta(hours=-1))
        with self.assertRaises(EditWindowClosed):
            services.update_order_notes(order.id, self.owner.id, "late")

    def test_edit_locked_order_before_cutoff(self):
        order = self.make_order(status=OrderStatus.LOCKED)
        with self.assertRaises(EditWindowClosed):
            services.update_order_notes(order.id, self.owner.id, "too late")

    def test_stranger_cannot_edit(self):
        order = self.make_order()
        with self.assertRaises(Forbidden):
            services.update_order_notes(order.id, self.stranger.id, "mine now")


class OrderAddonTest(OrderLifecycleTestBase):

    def add(self, order, requester=None, addon_id='eggs', quantity=2, **kwargs):
        return services.add_order_addon(
            order.id,
            (requester or self.owner).id,
            addon_id=addon_id,
            quantity=quantity,
            payment_method_id='pm_card_visa',
            tasks=self.tasks,
            **kwargs,
        )

    def test_add_prices_from_catalog_and_queues_charge(self):
        order = self.make_order()
        line = self.add(order)

        self.assertEqual(line.name, 'Farm Eggs')
        self.assertEqual(line.unit_price, Decimal('6.00'))
        self.assertEqual(line.total_price, Decimal('12.00'))
        self.assertEqual(
            self.backend.queued,
            [ChargeAddon(order_addon_id=line.id, payment_method_id='pm_card_visa')],
        )
        self.assertEqual(services.list_order_addons(order.id, requester_id=self.owner.id), [line])

    def test_queued_charge_bills_the_line(self):
        order = self.make_order()
        line = self.add(order, addon_id='honey', quantity=1)
        self.backend.run_queued()

        payment = Payment.objects.get(order_addon_id=line.id)
        self.assertEqual(payment.status, PaymentStatus.COMPLETED)
        self.assertEqual(payment.amount, Decimal('9.50'))

    def test_add_after_cutoff(self):
        order = self.make_order()
        with self.assertRaises(EditWindowClosed):
            self.add(order, now=order.cutoff_datetime)
        self.assertFalse(OrderAddon.objects.exists())
        self.assertEqual(self.backend.queued, [])

    def test_add_to_locked_order(self):
        order = self.make_order(status=OrderStatus.LOCKED)
        with self.assertRaises(EditWindowClosed):
            self.add(order)

    def test_stranger_cannot_add(self):
        order = self.make_order()
        with self.assertRaises(Forbidden):
            self.add(order, requester=self.stranger)
        with self.assertRaises(Forbidden):
            services.list_order_addons(order.id, requester_id=self.stranger.id)

    def test_unavailable_addon(self):
        order = self.make_order()
        with self.assertRaises(ValidationFailed):
            self.add(order, addon_id='flowers')
        with self.assertRaises(ValidationFailed):
            self.add(order, addon_id='truffles')

    def test_quantity_must_be_positive(self):
        order = self.make_order()
        with self.assertRaises(ValidationFailed):
            self.add(order, quantity=0)

    def test_cancel_refunds_paid_addons_only(self):
        order = self.make_order()
        self.add(order, addon_id='eggs')
        self.add(order, addon_id='bread', quantity=1)
        self.backend.run_queued()
        declined = OrderAddon.objects.get(addon_id='bread')
        Payment.objects.filter(order_addon_id=declined.id).update(status=PaymentStatus.FAILED)
        paid = Payment.objects.get(order_addon_id=OrderAddon.objects.get(addon_id='eggs').id)

        services.cancel_order(order.id, self.owner.id, tasks=self.tasks)

        self.assertEqual(self.backend.queued, [RefundPayment(payment_id=paid.id)])


class DueOrdersTest(OrderLifecycleTestBase):

    def test_due_for_reminder_and_locking(self):
        soon = self.make_order(cutoff_in=timedelta(hours=3), sequence=0)
        later = self.make_order(cutoff_in=timedelta(days=3), sequence=1)
        overdue = self.make_order(cutoff_in=timedelta(hours=-2), sequence=2)
        self.make_order(status=OrderStatus.LOCKED, cutoff_in=timedelta(hours=-5), sequence=3)

        reminder_ids = [o.id for o in services.get_orders_due_for_reminder()]
        locking_ids = [o.id for o in services.get_orders_due_for_locking()]

        self.assertEqual(reminder_ids, [soon.id])
        self.assertEqual(locking_ids, [overdue.id])
        self.assertNotIn(later.id, reminder_ids + locking_ids)
