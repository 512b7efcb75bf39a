import os

from django.core.management.base import BaseCommand, CommandError
from loguru import logger

from accounts.models import User


class Command(BaseCommand):
    help = 'Create the first admin account (skipped when the email already exists)'

    def add_arguments(self, parser):
        parser.add_argument('--email', default=os.getenv('SEED_ADMIN_EMAIL', 'admin@example.com'))
        parser.add_argument('--name', default=os.getenv('SEED_ADMIN_NAME', 'Admin User'))
        parser.add_argument('--password', default=os.getenv('SEED_ADMIN_PASSWORD'))

    def handle(self, *args, **options):
        email = options['email'].lower()
        if not options['password']:
            raise CommandError('Provide --password or set SEED_ADMIN_PASSWORD')

        if User.objects.filter(email=email).exists():
            self.stdout.write(f'Admin {email} already exists')
            return

        User.objects.create_superuser(
            email=email,
            password=options['password'],
            name=options['name'],
        )
        logger.info(f"Seeded admin account {email}")
        self.stdout.write(self.style.SUCCESS(f'Admin created: {email}'))
