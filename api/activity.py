import logging

from mongoengine.errors import OperationError, ValidationError
from pymongo.errors import PyMongoError

from .models import User, UserActivity, StudentProfile, CourseActivity, utcnow

logger = logging.getLogger(__name__)


def log_activity(user_id, action, description=None):
    """Append a general activity to the user's history. Never fails the request."""
    try:
        User.objects(id=user_id).update_one(
            push__activity_history=UserActivity(action=action, description=description, date=utcnow()))
    except (OperationError, ValidationError, PyMongoError) as e:
        logger.error("Failed to log activity %s for user %s: %s", action, user_id, e)


def record_course_activity(user, course, action, rating=None):
    """Track viewed/enrolled/completed/rated events on the student's profile, if one exists."""
    try:
        StudentProfile.objects(user=user).update_one(
            push__activity_history=CourseActivity(course=course, action=action, rating=rating, timestamp=utcnow()))
    except (OperationError, ValidationError, PyMongoError) as e:
        logger.error("Failed to record %s activity for user %s: %s", action, user.id, e)
