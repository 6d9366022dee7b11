from io import StringIO
from unittest import mock
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase

from apps.identity.models import User, UserRole
from apps.orders.models import Order
from apps.payments.models import Payment, PaymentStatus
from apps.subscriptions.models import Subscription


class SeedCommandTest(TestCase):

    def test_seed_creates_users_and_member_subscription(self):
        call_command('seed', stdout=StringIO())

        self.assertEqual(User.objects.get(email='staff@farm.test').role, UserRole.STAFF)
        member = User.objects.get(email='member@farm.test')
        subscription = Subscription.objects.get(user_id=member.id)
        self.assertEqual(Order.objects.filter(subscription_id=subscription.id).count(), 4)
        self.assertEqual(Payment.objects.get(subscription_id=subscription.id).status, PaymentStatus.COMPLETED)

    def test_seed_twice_keeps_one_subscription(self):
        call_command('seed', stdout=StringIO())
        call_command('seed', stdout=StringIO())
        self.assertEqual(Subscription.objects.count(), 1)

    def test_seed_users_only(self):
        call_command('seed', '--users', stdout=StringIO())
        self.assertEqual(User.objects.count(), 3)
        self.assertFalse(Subscription.objects.exists())


class RunWorkerCommandTest(TestCase):

    def test_unknown_queue(self):
        with self.assertRaises(CommandError):
            call_command('run_worker', 'billing', stdout=StringIO())

    def test_worker_uses_configured_concurrency(self):
        with mock.patch('apps.core.management.commands.run_worker.app.worker_main') as worker_main:
            call_command('run_worker', 'notifications', stdout=StringIO())

        argv = worker_main.call_args.kwargs['argv']
        self.assertIn('notifications', argv)
        self.assertEqual(argv[argv.index('--concurrency') + 1], '3')
