import logging
import math
import re

from django.views.decorators.http import require_http_methods

from .. import ai_service
from ..activity import record_course_activity
from ..authentication import get_request_user
from ..errors import ApiError
from ..models import Course, Enrollment, StudentProfile, COURSE_CATEGORIES, COURSE_LEVELS
from ..serializers import int_param, json_response, to_dict, to_object_id

logger = logging.getLogger(__name__)


def _published(category=None):
    query = Course.objects(status='Published')
    if category and category != 'all':
        query = query.filter(category=category)
    return query


@require_http_methods(["GET"])
def list_courses_view(request):
    category = request.GET.get('category')
    search = request.GET.get('search', '').strip()
    page = int_param(request, 'page', 1, maximum=10000)
    limit = int_param(request, 'limit', 10)

    query = _published(category)
    if search:
        pattern = re.compile(re.escape(search), re.IGNORECASE)
        query = query.filter(__raw__={'$or': [{'title': pattern}, {'instructor_name': pattern}]})

    total = query.count()
    courses = query.order_by('-created_at').skip((page - 1) * limit).limit(limit)
    return json_response({
        'courses': [to_dict(c) for c in courses],
        'page': page,
        'pages': math.ceil(total / limit),
        'total_courses': total,
    })


@require_http_methods(["GET"])
def featured_courses_view(request):
    limit = int_param(request, 'limit', 3)
    courses = _published().filter(is_featured=True).order_by('-created_at').limit(limit)
    return json_response([to_dict(c) for c in courses])


def popular_courses(category, limit):
    return list(_published(category).order_by('-total_enrollments', '-ratings_average').limit(limit))


def personalized_courses(user, category, limit):
    """
    Courses picked for a student from an AI reading of their profile.

    Returns None when the user has no student profile; raises on any AI or query failure.
    """
    profile = StudentProfile.objects(user=user).first()
    if profile is None:
        return None

    recent_ids = [a.to_mongo().get('course') for a in profile.activity_history[-10:]]
    recent_titles = [c.title for c in Course.objects(id__in=[i for i in recent_ids if i]).only('title')]
    filters = ai_service.recommendation_filters(profile, recent_titles, COURSE_CATEGORIES)

    categories = [c for c in filters['categories'] if c in COURSE_CATEGORIES]
    if category and category != 'all':
        categories = [category]
    keywords = [re.compile(re.escape(k), re.IGNORECASE) for k in filters['keywords']]
    levels = [l for l in filters['levels'] if l in COURSE_LEVELS]

    clauses = []
    if categories:
        clauses.append({'category': {'$in': categories}})
    for pattern in keywords:
        clauses.extend([{'title': pattern}, {'description': pattern}, {'subject': pattern}, {'tags': pattern}])
    if not clauses:
        return []

    raw = {'$or': clauses}
    if levels:
        raw = {'$and': [raw, {'level': {'$in': levels}}]}
    enrolled = [e['course'] for e in Enrollment.objects(student=user).only('course').as_pymongo()]
    query = _published(category).filter(__raw__=raw)
    if enrolled:
        query = query.filter(id__nin=enrolled)
    return list(query.order_by('-ratings_average').limit(limit))


@require_http_methods(["GET"])
def recommended_courses_view(request):
    limit = int_param(request, 'limit', 3)
    category = request.GET.get('category')
    user = get_request_user(request)

    courses = None
    if user is not None and user.role == 'student':
        try:
            courses = personalized_courses(user, category, limit)
        except Exception as e:
            logger.warning("Personalized recommendations failed for %s, using popular courses: %s", user.id, e)
            courses = None
    if not courses:
        courses = popular_courses(category, limit)
    return json_response([to_dict(c) for c in courses])


@require_http_methods(["GET"])
def course_detail_view(request, course_id):
    course = Course.objects(id=to_object_id(course_id, 'course id')).first()
    if course is None:
        raise ApiError('Course not found', 404)
    user = get_request_user(request)
    if user is not None and user.role == 'student':
        record_course_activity(user, course, 'viewed')
    return json_response(to_dict(course))
