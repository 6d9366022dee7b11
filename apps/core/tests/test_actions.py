"""
Tests for deferred action payloads.
"""
from decimal import Decimal
from uuid import uuid4
from django.test import SimpleTestCase

from apps.core.actions import (
    ACTION_TYPES, ChargeAddon, ChargeSubscription, LockOrder, Queue, RefundPayment,
    action_from_payload, to_payload,
)


class ActionPayloadTest(SimpleTestCase):

    def test_payload_is_tagged_with_kind(self):
        order_id = uuid4()
        payload = to_payload(LockOrder(order_id=order_id))
        self.assertEqual(payload, {'kind': 'lock_order', 'order_id': str(order_id)})

    def test_payload_restores_field_types(self):
        subscription_id = uuid4()
        action = ChargeSubscription(
            subscription_id=subscription_id,
            payment_method_id='pm_card_visa',
            amount=Decimal('95.00'),
        )
        restored = action_from_payload(to_payload(action))
        self.assertEqual(restored, action)
        self.assertIsInstance(restored.amount, Decimal)

    def test_optional_field_left_empty(self):
        action = RefundPayment(payment_id=uuid4())
        restored = action_from_payload(to_payload(action))
        self.assertIsNone(restored.amount)

    def test_unknown_kind(self):
        with self.assertRaises(ValueError):
            action_from_payload({'kind': 'reticulate_splines'})

    def test_every_kind_is_registered_once(self):
        self.assertEqual(len(ACTION_TYPES), 12)
        self.assertEqual(ACTION_TYPES['lock_order'], LockOrder)

    def test_queues(self):
        self.assertEqual(LockOrder.queue, Queue.ORDERS)
        self.assertEqual(ChargeSubscription.queue, Queue.PAYMENTS)
        self.assertEqual(ChargeAddon.queue, Queue.PAYMENTS)
