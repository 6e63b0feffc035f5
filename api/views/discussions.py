import logging

from django.http import HttpResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from ..authentication import protect
from ..errors import ApiError
from ..models import Comment, Course, Discussion, User
from ..serializers import get_payload, int_param, json_response, lookup, to_dict, to_object_id

logger = logging.getLogger(__name__)

SORT_FIELDS = ('created_at', '-created_at', 'title', '-title')
AUTHOR_FIELDS = ('name', 'role')


def discussions_to_dicts(discussions):
    """Discussion dicts with the author of the thread and of every comment populated."""
    items = [to_dict(d) for d in discussions]
    user_ids = [i['user'] for i in items]
    user_ids += [c['user'] for i in items for c in i.get('comments', [])]
    users = lookup(User, user_ids, AUTHOR_FIELDS)
    for item in items:
        item['user'] = users.get(item['user'], item['user'])
        for comment in item.get('comments', []):
            comment['user'] = users.get(comment['user'], comment['user'])
    return items


def _discussion_or_404(discussion_id):
    discussion = Discussion.objects(id=to_object_id(discussion_id, 'discussion id')).first()
    if discussion is None:
        raise ApiError('No discussion found with that ID', 404)
    return discussion


def _check_owner(request, discussion):
    user = request.user_doc
    if discussion.to_mongo().get('user') != user.id and user.role != 'admin':
        raise ApiError('You do not have permission to perform this action', 403)


@protect
def list_discussions(request):
    query = Discussion.objects
    course_id = request.GET.get('course_id')
    if course_id:
        query = query.filter(course=to_object_id(course_id, 'course id'))
    sort = request.GET.get('sort', '-created_at')
    if sort not in SORT_FIELDS:
        sort = '-created_at'
    page = int_param(request, 'page', 1, maximum=10000)
    limit = int_param(request, 'limit', 20)

    discussions = discussions_to_dicts(query.order_by(sort).skip((page - 1) * limit).limit(limit))
    return json_response({
        'status': 'success',
        'results': len(discussions),
        'data': {'discussions': discussions},
    })


@protect
def create_discussion(request):
    data = get_payload(request)
    if not data.get('course'):
        raise ApiError('A discussion must belong to a course', 400)
    course = Course.objects(id=to_object_id(data['course'], 'course id')).first()
    if course is None:
        raise ApiError('Course not found', 404)

    discussion = Discussion(
        title=data.get('title'),
        content=data.get('content'),
        course=course,
        user=request.user_doc,
    )
    discussion.save()
    logger.info("User %s started discussion %s on course %s", request.user_doc.id, discussion.id, course.id)
    return json_response({'status': 'success', 'data': {'discussion': discussions_to_dicts([discussion])[0]}},
                         status=201)


@csrf_exempt
@require_http_methods(["GET", "POST"])
def discussions_view(request):
    if request.method == 'POST':
        return create_discussion(request)
    return list_discussions(request)


@csrf_exempt
@require_http_methods(["GET", "PATCH", "DELETE"])
@protect
def discussion_detail_view(request, discussion_id):
    discussion = _discussion_or_404(discussion_id)

    if request.method == 'DELETE':
        _check_owner(request, discussion)
        discussion.delete()
        return HttpResponse(status=204)

    if request.method == 'PATCH':
        _check_owner(request, discussion)
        data = get_payload(request)
        for field in ('title', 'content'):
            if field in data:
                setattr(discussion, field, data[field])
        discussion.save()

    return json_response({'status': 'success', 'data': {'discussion': discussions_to_dicts([discussion])[0]}})


@csrf_exempt
@require_http_methods(["POST"])
@protect
def add_comment_view(request, discussion_id):
    text = (get_payload(request).get('text') or '').strip()
    if not text:
        raise ApiError('Comment text is required', 400)
    discussion = _discussion_or_404(discussion_id)
    discussion.comments.append(Comment(text=text, user=request.user_doc))
    discussion.save()
    return json_response({'status': 'success', 'data': {'discussion': discussions_to_dicts([discussion])[0]}},
                         status=201)
