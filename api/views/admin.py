import logging

from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from ..activity import log_activity
from ..authentication import admin_only
from ..errors import ApiError
from ..models import Course, User, ROLES, USER_STATUSES, COURSE_STATUSES
from ..serializers import get_payload, json_response, to_dict, to_object_id, user_to_dict, populate, USER_PUBLIC_FIELDS

logger = logging.getLogger(__name__)

# Lowercased status -> stored form
COURSE_STATUS_LOOKUP = {status.lower(): status for status in COURSE_STATUSES}


def _user_or_404(user_id):
    user = User.objects(id=to_object_id(user_id, 'user id')).first()
    if user is None:
        raise ApiError('User not found', 404)
    return user


def _educator_or_404(user_id):
    user = _user_or_404(user_id)
    if user.role != 'educator':
        raise ApiError('Educator not found', 404)
    return user


def _course_or_404(course_id):
    course = Course.objects(id=to_object_id(course_id, 'course id')).first()
    if course is None:
        raise ApiError('Course not found', 404)
    return course


@csrf_exempt
@require_http_methods(["GET", "PUT"])
@admin_only
def profile_view(request):
    user = request.user_doc
    if request.method == 'PUT':
        data = get_payload(request)
        if data.get('name'):
            user.name = data['name']
        if data.get('email'):
            email = data['email'].strip().lower()
            if email != user.email and User.objects(email=email).first():
                raise ApiError('Email already in use', 400)
            user.email = email
        if data.get('password'):
            user.set_password(data['password'])
        user.save()
        log_activity(user.id, 'Profile Update', 'Updated admin profile')
    return json_response(user_to_dict(user))


@require_http_methods(["GET"])
@admin_only
def dashboard_stats_view(request):
    return json_response({
        'total_users': User.objects.count(),
        'students': User.objects(role='student').count(),
        'educators': User.objects(role='educator').count(),
        'pending_educators': User.objects(role='educator', status='pending').count(),
        'total_courses': Course.objects.count(),
    })


def _set_educator_status(request, user_id, status):
    educator = _educator_or_404(user_id)
    educator.status = status
    educator.save()
    log_activity(educator.id, 'Status Change', f'Educator account {status}')
    logger.info("Admin %s set educator %s to %s", request.user_doc.id, educator.id, status)
    return json_response({'message': f'Educator {status}', 'user': user_to_dict(educator)})


@csrf_exempt
@require_http_methods(["POST"])
@admin_only
def approve_educator_view(request, user_id):
    return _set_educator_status(request, user_id, 'approved')


@csrf_exempt
@require_http_methods(["POST"])
@admin_only
def reject_educator_view(request, user_id):
    return _set_educator_status(request, user_id, 'rejected')


@csrf_exempt
@require_http_methods(["PUT"])
@admin_only
def educator_status_view(request, user_id):
    status = get_payload(request).get('status')
    if status not in USER_STATUSES:
        raise ApiError(f"Status must be one of: {', '.join(USER_STATUSES)}", 400)
    return _set_educator_status(request, user_id, status)


@require_http_methods(["GET"])
@admin_only
def users_view(request):
    query = User.objects.order_by('-created_at')
    role = request.GET.get('role')
    if role:
        query = query.filter(role=role)
    return json_response([user_to_dict(u) for u in query])


@csrf_exempt
@require_http_methods(["GET", "DELETE"])
@admin_only
def user_detail_view(request, user_id):
    user = _user_or_404(user_id)
    if request.method == 'DELETE':
        if user.id == request.user_doc.id:
            raise ApiError('You cannot delete your own account', 400)
        if Course.objects(educator=user).count():
            raise ApiError("Delete this educator's courses before deleting the account", 400)
        user.delete()
        logger.info("Admin %s deleted user %s", request.user_doc.id, user.id)
        return json_response({'message': 'User removed'})
    return json_response(user_to_dict(user))


@csrf_exempt
@require_http_methods(["PUT"])
@admin_only
def user_role_view(request, user_id):
    role = get_payload(request).get('role')
    if role not in ROLES:
        raise ApiError(f"Role must be one of: {', '.join(ROLES)}", 400)
    user = _user_or_404(user_id)
    user.role = role
    user.save()
    log_activity(user.id, 'Role Change', f'Role changed to {role}')
    return json_response(user_to_dict(user))


@require_http_methods(["GET"])
@admin_only
def courses_view(request):
    courses = Course.objects(status__in=('Pending Review', 'Published')).order_by('-created_at')
    items = populate([to_dict(c) for c in courses], 'educator', User, USER_PUBLIC_FIELDS)
    return json_response(items)


@csrf_exempt
@require_http_methods(["PUT"])
@admin_only
def course_status_view(request, course_id):
    status = COURSE_STATUS_LOOKUP.get(str(get_payload(request).get('status', '')).strip().lower())
    if status is None:
        raise ApiError(f"Status must be one of: {', '.join(COURSE_STATUSES)}", 400)
    course = _course_or_404(course_id)
    course.status = status
    course.save()
    logger.info("Admin %s set course %s to %s", request.user_doc.id, course.id, status)
    return json_response(to_dict(course))


@csrf_exempt
@require_http_methods(["DELETE"])
@admin_only
def course_delete_view(request, course_id):
    course = _course_or_404(course_id)
    course.delete()
    logger.info("Admin %s deleted course %s", request.user_doc.id, course.id)
    return json_response({'message': 'Course removed'})
