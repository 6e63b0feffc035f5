from django.core.management.base import BaseCommand

from api.models import Course, User

COURSE_DEFAULTS = {
    'total_enrollments': 0,
    'status': 'Draft',
    'ratings_average': 0,
    'ratings_quantity': 0,
}
USER_DEFAULTS = {
    'activity_history': [],
    'preferred_categories': [],
    'preferred_levels': [],
}


class Command(BaseCommand):
    help = "Set defaults on courses and users stored before the counters, status and preference fields existed."

    def _backfill(self, model, defaults, label):
        for field, default in defaults.items():
            updated = model.objects(__raw__={field: {'$exists': False}}).update(**{f'set__{field}': default})
            self.stdout.write(f"{field}: {updated} {label} updated")

    def handle(self, *args, **options):
        self._backfill(Course, COURSE_DEFAULTS, 'courses')
        self._backfill(User, USER_DEFAULTS, 'users')
        self.stdout.write(self.style.SUCCESS("Backfill complete"))
