from django.core.management.base import BaseCommand
from apps.identity.models import User, UserRole


class Command(BaseCommand):
    help = 'Seeds the database with RBAC test users'

    def handle(self, *args, **options):
        users = [
            {'email': 'admin@farm.test', 'name': 'Farm Admin', 'role': UserRole.ADMIN},
            {'email': 'staff@farm.test', 'name': 'Packing Staff', 'role': UserRole.STAFF},
            {'email': 'member@farm.test', 'name': 'Casey Member', 'role': UserRole.CUSTOMER, 'phone': '+15555550100'},
        ]

        for u in users:
            user, created = User.objects.get_or_create(
                email=u['email'],
                defaults={'username': u['email']},
            )

            user.name = u['name']
            user.role = u['role']
            user.phone = u.get('phone', '')
            if u['role'] == UserRole.ADMIN:
                user.is_staff = True
                user.is_superuser = True

            if created:
                user.set_password('password123')
                user.save()
                self.stdout.write(self.style.SUCCESS(f'Created user: {u["email"]} (Role: {u["role"]})'))
            else:
                user.save()
                self.stdout.write(self.style.WARNING(f'Updated user: {u["email"]}'))
