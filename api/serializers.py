import json

from bson import ObjectId
from bson.errors import InvalidId
from django.core.serializers.json import DjangoJSONEncoder
from django.http import JsonResponse

from .errors import ApiError

USER_PRIVATE_FIELDS = ('password', 'password_reset_token', 'password_reset_expires')
USER_PUBLIC_FIELDS = ('name', 'email', 'role')


class MongoJSONEncoder(DjangoJSONEncoder):
    def default(self, o):
        if isinstance(o, ObjectId):
            return str(o)
        return super().default(o)


def json_response(data, status=200):
    return JsonResponse(data, status=status, safe=False, encoder=MongoJSONEncoder)


def get_payload(request):
    """Request body as a dict: JSON bodies are decoded, form posts are flattened."""
    if request.content_type in ('multipart/form-data', 'application/x-www-form-urlencoded'):
        payload = {}
        for key in request.POST:
            values = request.POST.getlist(key)
            if key.endswith('[]'):
                payload[key[:-2]] = values
            else:
                payload[key] = values if len(values) > 1 else values[0]
        return payload
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ApiError('Invalid JSON body', 400)
    if not isinstance(data, dict):
        raise ApiError('JSON body must be an object', 400)
    return data


def to_object_id(value, label='id'):
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise ApiError(f'Invalid {label} format', 400)


def to_dict(doc, exclude=()):
    if doc is None:
        return None
    data = doc.to_mongo().to_dict()
    for key in exclude:
        data.pop(key, None)
    return data


def user_to_dict(user):
    return to_dict(user, exclude=USER_PRIVATE_FIELDS)


def lookup(model, ids, fields):
    """Map of id -> partial document dict for the given ids, used to populate references."""
    ids = {i for i in ids if i is not None}
    if not ids:
        return {}
    found = {}
    for doc in model.objects(id__in=list(ids)).only(*fields):
        item = {'_id': doc.id}
        item.update({f: getattr(doc, f) for f in fields})
        found[doc.id] = item
    return found


def populate(items, field, model, fields):
    """Replace the reference id stored under ``field`` with a partial document."""
    found = lookup(model, [item.get(field) for item in items], fields)
    for item in items:
        ref = item.get(field)
        if ref is not None:
            item[field] = found.get(ref, ref)
    return items


def int_param(request, name, default, minimum=1, maximum=100):
    """Integer query parameter clamped to [minimum, maximum]."""
    try:
        value = int(request.GET.get(name, default))
    except (TypeError, ValueError):
        raise ApiError(f'{name} must be an integer', 400)
    return max(minimum, min(value, maximum))
