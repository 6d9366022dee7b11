from django.core.management import call_command
from django.core.management.base import BaseCommand
from django.contrib.auth import get_user_model

from apps.core.models import ScheduledAction
from apps.core.task_service import get_task_registry
from apps.notifications.models import Notification
from apps.orders.models import Order
from apps.payments.models import Payment
from apps.subscriptions.models import FulfillmentType, Subscription, BoxSize
from apps.subscriptions.services import create_subscription

User = get_user_model()


class Command(BaseCommand):
    help = 'Seeds the database with sample data for testing.'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clean',
            action='store_true',
            help='Delete existing data before seeding',
        )
        parser.add_argument(
            '--users',
            action='store_true',
            help='Seed users only',
        )

    def handle(self, *args, **options):
        if options['clean']:
            self.stdout.write(self.style.WARNING('Cleaning database...'))
            self._clean_database()
            self.stdout.write(self.style.SUCCESS('Database cleaned.'))

        call_command('seed_users', stdout=self.stdout)

        if not options['users']:
            self._seed_subscriptions()

        self.stdout.write(self.style.SUCCESS('Seeding completed successfully.'))

    def _clean_database(self):
        ScheduledAction.objects.all().delete()
        Notification.objects.all().delete()
        Payment.objects.all().delete()
        Order.objects.all().delete()
        Subscription.objects.all().delete()
        User.objects.exclude(is_superuser=True).delete()

    def _seed_subscriptions(self):
        self.stdout.write('Seeding Subscriptions...')

        member = User.objects.filter(email='member@farm.test').first()
        if member is None:
            self.stdout.write(self.style.WARNING(' - No member user, skipping'))
            return

        if Subscription.objects.filter(user_id=member.id).exists():
            self.stdout.write(' - Member already has a subscription')
            return

        subscription = create_subscription(
            user_id=member.id,
            box_size=BoxSize.SMALL,
            fulfillment_type=FulfillmentType.PICKUP,
            payment_interval=4,
            tasks=get_task_registry(),
            payment_method_id='pm_card_visa',
        )
        self.stdout.write(
            f' - Created 4-week small pickup subscription {subscription.id} '
            f'(box price {subscription.box_price})'
        )
