import json
import logging
from collections import defaultdict

from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from ..activity import log_activity
from ..authentication import educator_only
from ..errors import ApiError
from ..models import Chapter, Course, EducatorProfile, Enrollment, Lecture
from ..serializers import get_payload, json_response, to_dict, to_object_id
from ..uploads import save_document, save_image

logger = logging.getLogger(__name__)

PROFILE_FIELDS = (
    'expertise', 'institution', 'experience', 'teaching_mode', 'availability', 'group_size',
    'platforms', 'sample_link', 'has_digital_experience', 'motivation', 'subjects', 'value_proposition',
)
COURSE_FIELDS = (
    'title', 'description', 'instructor_name', 'subject', 'category', 'level', 'price', 'duration',
    'tags', 'content_links', 'thumbnail',
)
EDUCATOR_COURSE_STATUSES = ('Draft', 'Pending Review')


def _to_bool(value):
    if isinstance(value, str):
        return value.strip().lower() in ('true', '1', 'yes', 'on')
    return bool(value)


def _as_list(value):
    # Form posts send lists either as repeated keys or a comma separated string
    if isinstance(value, str):
        return [v.strip() for v in value.split(',') if v.strip()]
    return list(value or [])


def _profile_or_404(user):
    profile = EducatorProfile.objects(user=user).first()
    if profile is None:
        raise ApiError('Educator profile not found', 404)
    return profile


def _apply_profile_fields(profile, data):
    for field in PROFILE_FIELDS:
        if field not in data:
            continue
        value = data[field]
        if field == 'has_digital_experience':
            value = _to_bool(value)
        elif field == 'platforms':
            value = _as_list(value)
        setattr(profile, field, value)


@csrf_exempt
@require_http_methods(["GET", "PUT"])
@educator_only
def profile_view(request):
    profile = _profile_or_404(request.user_doc)
    if request.method == 'PUT':
        _apply_profile_fields(profile, get_payload(request))
        profile.save()
        log_activity(request.user_doc.id, 'Profile Update', 'Updated educator profile')
    return json_response(to_dict(profile))


@csrf_exempt
@require_http_methods(["POST"])
@educator_only
def onboarding_view(request):
    user = request.user_doc
    if EducatorProfile.objects(user=user).first():
        raise ApiError('Profile already exists', 400)

    profile = EducatorProfile(user=user)
    _apply_profile_fields(profile, get_payload(request))
    if 'credentials' in request.FILES:
        profile.credentials_file = save_document(request.FILES['credentials'], 'credentials')
    profile.save()

    user.onboarding_completed = True
    user.save()
    log_activity(user.id, 'Onboarding', 'Completed educator onboarding')
    return json_response(to_dict(profile), status=201)


@csrf_exempt
@require_http_methods(["POST"])
@educator_only
def upload_sample_view(request):
    sample_link = get_payload(request).get('sample_link')
    if not sample_link:
        raise ApiError('sample_link is required', 400)
    profile = _profile_or_404(request.user_doc)
    profile.sample_link = sample_link
    profile.save()
    return json_response({'message': 'Sample uploaded', 'sample_link': profile.sample_link})


@require_http_methods(["GET"])
@educator_only
def tools_view(request):
    profile = _profile_or_404(request.user_doc)
    return json_response({
        'platforms': profile.platforms,
        'has_digital_experience': profile.has_digital_experience,
    })


def build_chapters(raw):
    """Chapter documents from a list of {title, lectures: [...]} dicts (or its JSON string)."""
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            raise ApiError('chapters must be valid JSON', 400)
    if not isinstance(raw, list):
        raise ApiError('chapters must be a list', 400)
    chapters = []
    for item in raw:
        if not isinstance(item, dict):
            raise ApiError('Each chapter must be an object', 400)
        lectures = []
        for lecture in item.get('lectures') or []:
            if not isinstance(lecture, dict):
                raise ApiError('Each lecture must be an object', 400)
            fields = {k: lecture[k] for k in ('title', 'video_url', 'duration', 'is_preview_free') if k in lecture}
            if lecture.get('lecture_id'):
                fields['lecture_id'] = to_object_id(lecture['lecture_id'], 'lecture id')
            lectures.append(Lecture(**fields))
        chapters.append(Chapter(title=item.get('title'), lectures=lectures))
    return chapters


def _apply_course_fields(course, data):
    for field in COURSE_FIELDS:
        if field not in data:
            continue
        value = data[field]
        if field in ('tags', 'content_links'):
            value = _as_list(value)
        elif field in ('price', 'duration') and isinstance(value, str):
            try:
                value = float(value) if field == 'price' else int(value)
            except ValueError:
                raise ApiError(f'{field} must be a number', 400)
        setattr(course, field, value)
    if 'chapters' in data:
        course.chapters = build_chapters(data['chapters'])
    if 'status' in data:
        if data['status'] not in EDUCATOR_COURSE_STATUSES:
            raise ApiError(f"Status must be one of: {', '.join(EDUCATOR_COURSE_STATUSES)}", 400)
        course.status = data['status']


@csrf_exempt
@require_http_methods(["POST"])
@educator_only
def create_course_view(request):
    user = request.user_doc
    data = get_payload(request)
    course = Course(educator=user)
    _apply_course_fields(course, data)
    if not course.instructor_name:
        course.instructor_name = user.name
    if 'thumbnail' in request.FILES:
        course.thumbnail = save_image(request.FILES['thumbnail'], 'thumbnail')
    course.save()
    log_activity(user.id, 'Course Created', f'Created course {course.title}')
    logger.info("Educator %s created course %s", user.id, course.id)
    return json_response(to_dict(course), status=201)


@csrf_exempt
@require_http_methods(["PUT"])
@educator_only
def update_course_view(request, course_id):
    course = Course.objects(id=to_object_id(course_id, 'course id'), educator=request.user_doc).first()
    if course is None:
        raise ApiError('Course not found or not owned by you', 404)
    _apply_course_fields(course, get_payload(request))
    if 'thumbnail' in request.FILES:
        course.thumbnail = save_image(request.FILES['thumbnail'], 'thumbnail')
    course.save()
    log_activity(request.user_doc.id, 'Course Updated', f'Updated course {course.title}')
    return json_response(to_dict(course))


@require_http_methods(["GET"])
@educator_only
def my_courses_view(request):
    courses = Course.objects(educator=request.user_doc).order_by('-created_at')
    return json_response([to_dict(c) for c in courses])


def _course_enrollments(courses):
    ids = [c.id for c in courses]
    if not ids:
        return []
    return list(Enrollment.objects(course__in=ids).as_pymongo())


@require_http_methods(["GET"])
@educator_only
def dashboard_stats_view(request):
    courses = list(Course.objects(educator=request.user_doc))
    prices = {c.id: c.price or 0 for c in courses}
    enrollments = _course_enrollments(courses)
    rated = [c.ratings_average for c in courses if c.ratings_quantity]

    return json_response({
        'total_courses': len(courses),
        'published_courses': sum(1 for c in courses if c.status == 'Published'),
        'total_students': len({e['student'] for e in enrollments}),
        'total_enrollments': len(enrollments),
        'completed_count': sum(1 for e in enrollments if e.get('is_completed')),
        'avg_progress': (
            round(sum(e.get('progress', 0) for e in enrollments) / len(enrollments), 2) if enrollments else 0
        ),
        'total_revenue': round(sum(prices.get(e['course'], 0) for e in enrollments), 2),
        'avg_rating': round(sum(rated) / len(rated), 2) if rated else 0,
    })


@require_http_methods(["GET"])
@educator_only
def analytics_view(request):
    courses = list(Course.objects(educator=request.user_doc).order_by('-created_at'))
    by_course = defaultdict(list)
    monthly_revenue = defaultdict(float)
    prices = {c.id: c.price or 0 for c in courses}
    for e in _course_enrollments(courses):
        by_course[e['course']].append(e)
        if e.get('enrolled_at'):
            monthly_revenue[e['enrolled_at'].strftime('%Y-%m')] += prices.get(e['course'], 0)

    rows = []
    for course in courses:
        enrolled = by_course[course.id]
        rows.append({
            'course': {'_id': course.id, 'title': course.title, 'status': course.status},
            'enrollments': len(enrolled),
            'completed': sum(1 for e in enrolled if e.get('is_completed')),
            'avg_progress': (
                round(sum(e.get('progress', 0) for e in enrolled) / len(enrolled), 2) if enrolled else 0
            ),
            'revenue': round(len(enrolled) * prices[course.id], 2),
            'rating': course.ratings_average,
        })
    return json_response({
        'courses': rows,
        'monthly_revenue': {month: round(amount, 2) for month, amount in sorted(monthly_revenue.items())},
    })


@csrf_exempt
@require_http_methods(["POST"])
@educator_only
def request_approval_view(request):
    user = request.user_doc
    if user.status == 'rejected':
        user.status = 'pending'
        user.save()
        log_activity(user.id, 'Approval Requested', 'Requested educator approval again')
        logger.info("Educator %s requested approval again", user.id)
    messages = {
        'pending': 'Your approval request is pending review',
        'approved': 'Your account is already approved',
    }
    return json_response({'status': user.status, 'message': messages.get(user.status, user.status)})
