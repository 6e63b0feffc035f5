from functools import wraps

from django.conf import settings
from django.core import signing
from mongoengine.errors import ValidationError as MongoValidationError
from bson.errors import InvalidId

from .errors import ApiError
from .models import User

TOKEN_SALT = 'lecturemate.auth'


def generate_token(user_id):
    return signing.dumps({'id': str(user_id)}, salt=TOKEN_SALT)


def read_token(token):
    """User id held by a token, or None when it is invalid or expired."""
    try:
        data = signing.loads(token, salt=TOKEN_SALT, max_age=settings.AUTH_TOKEN_MAX_AGE)
    except signing.BadSignature:  # also covers SignatureExpired
        return None
    return data.get('id')


def set_auth_cookie(response, user_id):
    response.set_cookie(
        settings.AUTH_COOKIE_NAME,
        generate_token(user_id),
        max_age=settings.AUTH_TOKEN_MAX_AGE,
        httponly=True,
        secure=settings.AUTH_COOKIE_SECURE,
        samesite='Strict' if settings.AUTH_COOKIE_SECURE else 'Lax',
    )
    return response


def clear_auth_cookie(response):
    response.delete_cookie(settings.AUTH_COOKIE_NAME)
    return response


def _token_from_request(request):
    token = request.COOKIES.get(settings.AUTH_COOKIE_NAME)
    if token:
        return token
    header = request.headers.get('Authorization', '')
    if header.startswith('Bearer '):
        return header[len('Bearer '):].strip()
    return None


def get_request_user(request):
    """Authenticated, active user for the request, or None."""
    token = _token_from_request(request)
    if not token:
        return None
    user_id = read_token(token)
    if not user_id:
        return None
    try:
        user = User.objects(id=user_id).first()
    except (MongoValidationError, InvalidId):
        return None
    if user is None or not user.is_active:
        return None
    return user


def protect(view):
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        if not _token_from_request(request):
            raise ApiError('Not authorized, no token', 401)
        user = get_request_user(request)
        if user is None:
            raise ApiError('Not authorized, token failed', 401)
        request.user_doc = user
        return view(request, *args, **kwargs)
    return wrapper


def authorize_roles(*roles):
    def decorator(view):
        @wraps(view)
        @protect
        def wrapper(request, *args, **kwargs):
            if request.user_doc.role not in roles:
                raise ApiError(f'Role ({request.user_doc.role}) is not allowed to access this resource', 403)
            return view(request, *args, **kwargs)
        return wrapper
    return decorator


admin_only = authorize_roles('admin')
student_only = authorize_roles('student')
educator_only = authorize_roles('educator')
