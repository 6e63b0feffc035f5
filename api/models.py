from mongoengine import (
    Document, EmbeddedDocument, StringField, IntField, FloatField, ListField, ReferenceField,
    DateTimeField, BooleanField, EmailField, ObjectIdField,
    EmbeddedDocumentListField, CASCADE, DENY, ValidationError, signals,
)
from bson import ObjectId
from django.conf import settings
from django.contrib.auth.hashers import make_password, check_password
import datetime
import hashlib
import logging
import math
import secrets

logger = logging.getLogger(__name__)

ROLES = ('student', 'educator', 'admin')
USER_STATUSES = ('pending', 'approved', 'rejected')
LEVEL_PREFERENCES = ('Beginner', 'Intermediate', 'Advanced')
COURSE_CATEGORIES = (
    'programming', 'design', 'business', 'marketing', 'data-science',
    'photography', 'music', 'language', 'health', 'other',
)
COURSE_LEVELS = ('beginner', 'intermediate', 'advanced')
COURSE_STATUSES = ('Draft', 'Pending Review', 'Published')
MOODS = ('very_happy', 'happy', 'neutral', 'sad', 'very_sad')
MIN_PASSWORD_LENGTH = 8


def utcnow():
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


class TimestampedDocument(Document):
    created_at = DateTimeField(default=utcnow)
    updated_at = DateTimeField(default=utcnow)

    meta = {'abstract': True}

    def save(self, *args, **kwargs):
        self.updated_at = utcnow()
        return super().save(*args, **kwargs)


class UserActivity(EmbeddedDocument):
    action = StringField(required=True)  # Register, Login, Logout, Onboarding...
    description = StringField()
    date = DateTimeField(default=utcnow)


class User(TimestampedDocument):
    name = StringField(required=True)
    email = EmailField(required=True, unique=True)
    password = StringField()
    role = StringField(choices=ROLES, default='student')
    status = StringField(choices=USER_STATUSES, default='approved')
    is_active = BooleanField(default=True)
    onboarding_completed = BooleanField(default=False)
    password_reset_token = StringField()
    password_reset_expires = DateTimeField()
    activity_history = EmbeddedDocumentListField(UserActivity, default=list)
    preferred_categories = ListField(StringField(), default=list)
    preferred_levels = ListField(StringField(choices=LEVEL_PREFERENCES), default=list)

    meta = {'collection': 'user', 'indexes': ['role']}

    def clean(self):
        if self.email:
            self.email = self.email.strip().lower()

    def set_password(self, raw_password):
        if not raw_password or len(raw_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters')
        self.password = make_password(raw_password)

    def match_password(self, raw_password):
        if not self.password or not raw_password:
            return False
        return check_password(raw_password, self.password)

    def create_password_reset_token(self):
        """Store a hashed reset token and return the raw one for the email link."""
        reset_token = secrets.token_hex(32)
        self.password_reset_token = hash_reset_token(reset_token)
        self.password_reset_expires = utcnow() + datetime.timedelta(
            minutes=settings.PASSWORD_RESET_TIMEOUT_MINUTES)
        return reset_token


def hash_reset_token(token):
    return hashlib.sha256(token.encode()).hexdigest()


class Lecture(EmbeddedDocument):
    lecture_id = ObjectIdField(default=ObjectId)
    title = StringField(required=True)
    video_url = StringField()
    duration = IntField(min_value=0, default=0)  # minutes
    is_preview_free = BooleanField(default=False)


class Chapter(EmbeddedDocument):
    title = StringField(required=True)
    lectures = EmbeddedDocumentListField(Lecture, default=list)


class Course(TimestampedDocument):
    title = StringField(required=True)
    description = StringField(required=True)
    # An educator who still owns courses cannot be deleted
    educator = ReferenceField(User, required=True, reverse_delete_rule=DENY)
    instructor_name = StringField()
    subject = StringField(required=True)
    category = StringField(choices=COURSE_CATEGORIES, default='other')
    level = StringField(choices=COURSE_LEVELS, default='beginner')
    price = FloatField(min_value=0, default=0)
    duration = IntField(min_value=0, default=0)  # minutes
    thumbnail = StringField()
    tags = ListField(StringField(), default=list)
    content_links = ListField(StringField(), default=list)
    chapters = EmbeddedDocumentListField(Chapter, default=list)
    status = StringField(choices=COURSE_STATUSES, default='Draft')
    is_featured = BooleanField(default=False)
    total_enrollments = IntField(min_value=0, default=0)
    ratings_average = FloatField(default=0)
    ratings_quantity = IntField(default=0)

    meta = {'collection': 'course', 'indexes': ['educator', 'status', 'category']}

    def clean(self):
        for attr in ('title', 'description', 'subject'):
            value = getattr(self, attr)
            if isinstance(value, str):
                setattr(self, attr, value.strip())

    def total_lectures(self):
        return sum(len(chapter.lectures) for chapter in self.chapters)

    def has_lecture(self, lecture_id):
        return any(str(lecture.lecture_id) == str(lecture_id)
                   for chapter in self.chapters for lecture in chapter.lectures)


class Enrollment(TimestampedDocument):
    student = ReferenceField(User, required=True, reverse_delete_rule=CASCADE)
    course = ReferenceField(Course, required=True, reverse_delete_rule=CASCADE)
    progress = FloatField(min_value=0, max_value=100, default=0)
    completed_lectures = ListField(ObjectIdField(), default=list)
    is_completed = BooleanField(default=False)
    completion_date = DateTimeField()
    enrolled_at = DateTimeField(default=utcnow)

    meta = {
        'collection': 'enrollment',
        'indexes': [{'fields': ('student', 'course'), 'unique': True}],
    }


class Review(TimestampedDocument):
    course = ReferenceField(Course, required=True, reverse_delete_rule=CASCADE)
    user = ReferenceField(User, required=True, reverse_delete_rule=CASCADE)
    rating = FloatField(required=True, min_value=1, max_value=5)
    comment = StringField(max_length=500)

    meta = {
        'collection': 'review',
        'indexes': [{'fields': ('course', 'user'), 'unique': True}],
    }

    def clean(self):
        if isinstance(self.rating, (int, float)) and not isinstance(self.rating, bool):
            # Half-up rounding to one decimal place
            self.rating = math.floor(self.rating * 10 + 0.5) / 10
        if isinstance(self.comment, str):
            self.comment = self.comment.strip()

    @classmethod
    def calc_average_ratings(cls, course_id):
        reviews = cls.objects(course=course_id)
        quantity = reviews.count()
        average = reviews.average('rating') if quantity else 0
        Course.objects(id=course_id).update_one(
            set__ratings_average=round(average or 0, 2),
            set__ratings_quantity=quantity,
        )
        logger.debug("Recomputed ratings for course %s: %s over %s reviews", course_id, average, quantity)

    @classmethod
    def post_save(cls, sender, document, **kwargs):
        cls.calc_average_ratings(document.to_mongo().get('course'))

    @classmethod
    def post_delete(cls, sender, document, **kwargs):
        cls.calc_average_ratings(document.to_mongo().get('course'))


signals.post_save.connect(Review.post_save, sender=Review)
signals.post_delete.connect(Review.post_delete, sender=Review)


class MoodEntry(TimestampedDocument):
    user = ReferenceField(User, required=True, reverse_delete_rule=CASCADE)
    mood = StringField(required=True, choices=MOODS, default='neutral')
    notes = StringField(max_length=500)
    date = StringField(required=True, regex=r'^\d{4}-\d{2}-\d{2}$')  # YYYY-MM-DD

    # One entry per user per day
    meta = {
        'collection': 'mood_entry',
        'indexes': [{'fields': ('user', 'date'), 'unique': True}],
    }


class CourseActivity(EmbeddedDocument):
    course = ReferenceField(Course)
    action = StringField(choices=('viewed', 'enrolled', 'completed', 'rated'))
    timestamp = DateTimeField(default=utcnow)
    rating = FloatField(min_value=1, max_value=5)


class StudentProfile(TimestampedDocument):
    user = ReferenceField(User, required=True, unique=True, reverse_delete_rule=CASCADE)
    university = StringField(required=True)
    major = StringField(required=True)
    semester = StringField(required=True, choices=('1', '2', '3', '4'))
    study_style = StringField(required=True, choices=('individual', 'group', 'mixed'))
    study_time = StringField(required=True, choices=(
        'early_morning', 'morning', 'afternoon', 'evening', 'night', 'late_night'))
    learning_styles = ListField(StringField(choices=('visual', 'auditory', 'reading', 'kinesthetic')), default=list)
    goals = ListField(StringField(choices=('grades', 'understanding', 'time_mgmt', 'exam_prep')), default=list)
    disciplines = ListField(StringField(), default=list)
    activity_history = EmbeddedDocumentListField(CourseActivity, default=list)
    preferred_categories = ListField(StringField(), default=list)
    preferred_levels = ListField(StringField(choices=LEVEL_PREFERENCES), default=list)

    meta = {'collection': 'student_profile'}


class EducatorProfile(TimestampedDocument):
    user = ReferenceField(User, required=True, unique=True, reverse_delete_rule=CASCADE)
    expertise = StringField(required=True)
    institution = StringField(required=True)
    experience = StringField(required=True, choices=('<1', '1-3', '3-5', '5+'))
    teaching_mode = StringField(required=True, choices=('Online', 'In-person', 'Hybrid'))
    availability = StringField(required=True, choices=('Morning', 'Afternoon', 'Evening', 'Flexible'))
    group_size = StringField(required=True, choices=('1-5', '6-15', '15+'))
    platforms = ListField(StringField(choices=('Zoom', 'Google Meet', 'LMS', 'Blackboard')), default=list)
    sample_link = StringField()
    has_digital_experience = BooleanField(default=False)
    motivation = StringField()
    subjects = StringField()
    value_proposition = StringField()
    credentials_file = StringField()

    meta = {'collection': 'educator_profile'}


class Comment(EmbeddedDocument):
    text = StringField(required=True)
    user = ReferenceField(User, required=True)
    created_at = DateTimeField(default=utcnow)


class Discussion(Document):
    title = StringField(required=True, max_length=100)
    content = StringField(required=True)
    user = ReferenceField(User, required=True, reverse_delete_rule=CASCADE)
    course = ReferenceField(Course, required=True, reverse_delete_rule=CASCADE)
    created_at = DateTimeField(default=utcnow)
    comments = EmbeddedDocumentListField(Comment, default=list)

    meta = {'collection': 'discussion', 'indexes': [('course', '-created_at')]}


def today_key():
    """Today's date as stored on mood entries (YYYY-MM-DD)."""
    return datetime.date.today().isoformat()
