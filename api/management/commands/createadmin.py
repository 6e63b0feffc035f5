from django.core.management.base import BaseCommand, CommandError
from mongoengine.errors import ValidationError

from api.models import User


class Command(BaseCommand):
    help = "Create an admin account, or promote an existing user to admin."

    def add_arguments(self, parser):
        parser.add_argument('--email', required=True)
        parser.add_argument('--name', default='Admin')
        parser.add_argument('--password')

    def handle(self, *args, **options):
        email = options['email'].strip().lower()
        user = User.objects(email=email).first()
        created = user is None
        if created:
            if not options['password']:
                raise CommandError("--password is required for a new admin")
            user = User(email=email, name=options['name'])

        user.role = 'admin'
        user.status = 'approved'
        user.is_active = True
        try:
            if options['password']:
                user.set_password(options['password'])
            user.save()
        except ValidationError as e:
            raise CommandError(str(e))

        action = "Created" if created else "Promoted"
        self.stdout.write(self.style.SUCCESS(f"{action} admin {user.email}"))
