from django.core.management.base import BaseCommand

from api.models import Course, Enrollment, User


class Command(BaseCommand):
    help = "Report enrollments whose student or course no longer exists, optionally deleting them."

    def add_arguments(self, parser):
        parser.add_argument('--delete', action='store_true', help="Delete the broken enrollments")

    def handle(self, *args, **options):
        enrollments = list(Enrollment.objects.as_pymongo())
        user_ids = {u['_id'] for u in User.objects(
            id__in=[e.get('student') for e in enrollments if e.get('student')]).only('id').as_pymongo()}
        course_ids = {c['_id'] for c in Course.objects(
            id__in=[e.get('course') for e in enrollments if e.get('course')]).only('id').as_pymongo()}

        broken = []
        for e in enrollments:
            problems = []
            if e.get('student') not in user_ids:
                problems.append('missing student' if e.get('student') is None else 'dangling student')
            if e.get('course') not in course_ids:
                problems.append('missing course' if e.get('course') is None else 'dangling course')
            if problems:
                broken.append(e['_id'])
                self.stdout.write(f"{e['_id']}: {', '.join(problems)}")

        self.stdout.write(f"Checked {len(enrollments)} enrollments, {len(broken)} broken")
        if broken and options['delete']:
            deleted = Enrollment.objects(id__in=broken).delete()
            self.stdout.write(self.style.SUCCESS(f"Deleted {deleted} enrollments"))
