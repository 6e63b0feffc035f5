import logging

from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from ..activity import log_activity, record_course_activity
from ..authentication import student_only
from ..errors import ApiError
from ..models import Course, Enrollment, MoodEntry, StudentProfile, today_key, utcnow
from ..serializers import get_payload, json_response, to_dict, to_object_id

logger = logging.getLogger(__name__)

PROFILE_FIELDS = (
    'university', 'major', 'semester', 'study_style', 'study_time', 'learning_styles',
    'goals', 'disciplines', 'preferred_categories', 'preferred_levels',
)


def _profile_or_404(user):
    profile = StudentProfile.objects(user=user).first()
    if profile is None:
        raise ApiError('Student profile not found', 404)
    return profile


def _profile_dict(profile):
    return to_dict(profile, exclude=('activity_history',))


def enrollments_with_courses(enrollments):
    """Enrollment dicts with the full course embedded; courses that no longer exist come back as None."""
    items = [to_dict(e) for e in enrollments]
    courses = {c.id: to_dict(c) for c in Course.objects(id__in=[i['course'] for i in items])}
    for item in items:
        item['course'] = courses.get(item['course'])
    return items


@csrf_exempt
@require_http_methods(["GET", "PUT"])
@student_only
def profile_view(request):
    profile = _profile_or_404(request.user_doc)
    if request.method == 'PUT':
        data = get_payload(request)
        for field in PROFILE_FIELDS:
            if field in data:
                setattr(profile, field, data[field])
        profile.save()
        log_activity(request.user_doc.id, 'Profile Update', 'Updated student profile')
    return json_response(_profile_dict(profile))


@csrf_exempt
@require_http_methods(["POST"])
@student_only
def onboarding_view(request):
    user = request.user_doc
    if StudentProfile.objects(user=user).first():
        raise ApiError('Profile already exists', 400)

    data = get_payload(request)
    profile = StudentProfile(user=user, **{f: data[f] for f in PROFILE_FIELDS if f in data})
    profile.save()

    user.onboarding_completed = True
    if profile.preferred_categories:
        user.preferred_categories = profile.preferred_categories
    if profile.preferred_levels:
        user.preferred_levels = profile.preferred_levels
    user.save()
    log_activity(user.id, 'Onboarding', 'Completed student onboarding')
    return json_response(_profile_dict(profile), status=201)


@require_http_methods(["GET"])
@student_only
def my_courses_view(request):
    enrollments = Enrollment.objects(student=request.user_doc).order_by('-enrolled_at')
    return json_response(enrollments_with_courses(enrollments))


@csrf_exempt
@require_http_methods(["POST"])
@student_only
def enroll_view(request, course_id=None):
    if course_id is None:
        course_id = get_payload(request).get('course_id')
        if not course_id:
            raise ApiError('course_id is required', 400)
    course = Course.objects(id=to_object_id(course_id, 'course id')).first()
    if course is None:
        raise ApiError('Course not found', 404)

    user = request.user_doc
    if Enrollment.objects(student=user, course=course).first():
        raise ApiError('Already enrolled in this course', 400)

    enrollment = Enrollment(student=user, course=course)
    enrollment.save()
    Course.objects(id=course.id).update_one(inc__total_enrollments=1)
    record_course_activity(user, course, 'enrolled')
    log_activity(user.id, 'Enroll', f'Enrolled in {course.title}')
    logger.info("Student %s enrolled in course %s", user.id, course.id)
    return json_response(to_dict(enrollment), status=201)


@require_http_methods(["GET"])
@student_only
def progress_view(request, course_id):
    enrollment = Enrollment.objects(
        student=request.user_doc, course=to_object_id(course_id, 'course id')).first()
    if enrollment is None:
        raise ApiError('Not enrolled in this course', 404)
    return json_response({
        'progress': enrollment.progress,
        'completed_lectures': enrollment.completed_lectures,
        'is_completed': enrollment.is_completed,
    })


@csrf_exempt
@require_http_methods(["PUT"])
@student_only
def complete_lecture_view(request, enrollment_id):
    lecture_id = get_payload(request).get('lecture_id')
    if not lecture_id:
        raise ApiError('lecture_id is required', 400)

    enrollment = Enrollment.objects(id=to_object_id(enrollment_id, 'enrollment id')).first()
    if enrollment is None:
        raise ApiError('Enrollment not found', 404)
    user = request.user_doc
    if enrollment.to_mongo().get('student') != user.id:
        raise ApiError('Not authorized to update this enrollment', 401)

    course = Course.objects(id=enrollment.to_mongo().get('course')).first()
    if course is None:
        raise ApiError('Course not found', 404)
    if not course.has_lecture(lecture_id):
        raise ApiError('Lecture not found in this course', 404)
    if any(str(done) == str(lecture_id) for done in enrollment.completed_lectures):
        raise ApiError('Lecture already completed', 400)

    enrollment.completed_lectures.append(to_object_id(lecture_id, 'lecture id'))
    total = course.total_lectures()
    done = len(enrollment.completed_lectures)
    enrollment.progress = min(100, round(done / total * 100, 2)) if total else 0
    if total and done >= total and not enrollment.is_completed:
        enrollment.is_completed = True
        enrollment.completion_date = utcnow()
        record_course_activity(user, course, 'completed')
        log_activity(user.id, 'Course Completed', f'Completed {course.title}')
    enrollment.save()
    return json_response(to_dict(enrollment))


@require_http_methods(["GET"])
@student_only
def dashboard_view(request):
    user = request.user_doc
    enrollments = list(Enrollment.objects(student=user).order_by('-enrolled_at'))
    completed = sum(1 for e in enrollments if e.is_completed)
    average_progress = (
        round(sum(e.progress for e in enrollments) / len(enrollments), 2) if enrollments else 0
    )
    todays_mood = MoodEntry.objects(user=user, date=today_key()).first()
    return json_response({
        'enrollments': enrollments_with_courses(enrollments),
        'stats': {
            'enrolled_courses': len(enrollments),
            'completed_courses': completed,
            'in_progress_courses': len(enrollments) - completed,
            'average_progress': average_progress,
        },
        'todays_mood': to_dict(todays_mood),
    })
