from django.core.management.base import BaseCommand
from apps.identity.models import User, UserRole


class Command(BaseCommand):
    help = 'Seeds the database with an admin and a regular user for local development'

    def add_arguments(self, parser):
        parser.add_argument('--password', default='password', help='Password for seeded users')

    def handle(self, *args, **options):
        users = [
            {'email': 'admin@example.com', 'name': 'Admin', 'role': UserRole.ADMIN},
            {'email': 'user@example.com', 'name': 'Regular User', 'role': UserRole.USER},
        ]

        for u in users:
            user, created = User.objects.get_or_create(
                email=u['email'],
                defaults={'username': u['email'], 'name': u['name']},
            )
            user.role = u['role']
            if u['role'] == UserRole.ADMIN:
                user.is_staff = True
                user.is_superuser = True

            if created:
                user.set_password(options['password'])
                user.save()
                self.stdout.write(self.style.SUCCESS(f'Created user: {u["email"]} (Role: {u["role"]})'))
            else:
                user.save()
                self.stdout.write(self.style.WARNING(f'Updated user: {u["email"]}'))
