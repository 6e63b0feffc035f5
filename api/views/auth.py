import logging

from django.conf import settings
from django.core.mail import send_mail
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from ..activity import log_activity
from ..authentication import protect, set_auth_cookie, clear_auth_cookie, get_request_user
from ..errors import ApiError
from ..models import User, MIN_PASSWORD_LENGTH, hash_reset_token, utcnow
from ..serializers import get_payload, json_response, user_to_dict

logger = logging.getLogger(__name__)

REGISTRATION_ROLES = ('student', 'educator')


def _text(data, field):
    """String field from the request body; '' when absent, 400 when it is not a string."""
    value = data.get(field)
    if value is None:
        return ''
    if not isinstance(value, str):
        raise ApiError(f'{field} must be a string', 400)
    return value


@csrf_exempt
@require_http_methods(["POST"])
def register_view(request):
    data = get_payload(request)
    name = _text(data, 'name').strip()
    email = _text(data, 'email').strip().lower()
    password = _text(data, 'password')
    role = _text(data, 'role')

    if not name or not email or not password or not role:
        raise ApiError('Please fill in all required fields', 400)
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ApiError(f'Password must not be less than {MIN_PASSWORD_LENGTH} characters', 400)
    if role not in REGISTRATION_ROLES:
        raise ApiError('Role must be student or educator', 400)
    if User.objects(email=email).first():
        raise ApiError('User already exists', 400)

    user = User(
        name=name,
        email=email,
        role=role,
        # Educators wait for admin approval
        status='pending' if role == 'educator' else 'approved',
    )
    user.set_password(password)
    user.save()
    logger.info("Registered %s %s", role, user.id)
    log_activity(user.id, 'Register', f'Registered as {role}')

    response = json_response(user_to_dict(user.reload()), status=201)
    return set_auth_cookie(response, user.id)


@csrf_exempt
@require_http_methods(["POST"])
def login_view(request):
    data = get_payload(request)
    email = _text(data, 'email').strip().lower()
    password = _text(data, 'password')
    if not email or not password:
        raise ApiError('Please fill in all required fields', 400)

    user = User.objects(email=email).first()
    if user is None or not user.match_password(password):
        raise ApiError('Invalid email or password', 401)
    if not user.is_active:
        raise ApiError('Account is deactivated', 403)

    log_activity(user.id, 'Login', 'Logged in')
    response = json_response(user_to_dict(user.reload()))
    return set_auth_cookie(response, user.id)


@csrf_exempt
@require_http_methods(["POST"])
def logout_view(request):
    user = get_request_user(request)
    if user is not None:
        log_activity(user.id, 'Logout', 'Logged out')
    response = json_response({'message': 'Logged out Successfully'})
    return clear_auth_cookie(response)


@csrf_exempt
@require_http_methods(["POST"])
def forgot_password_view(request):
    data = get_payload(request)
    email = _text(data, 'email').strip().lower()
    user = User.objects(email=email).first() if email else None
    if user is None:
        raise ApiError('User not found', 404)

    reset_token = user.create_password_reset_token()
    user.save()

    reset_url = f"{settings.FRONTEND_URL}/set-password/{reset_token}"
    message = (
        f"Hello {user.name}\n\n"
        "Please use the link below to reset your password.\n"
        f"The reset link is valid for {settings.PASSWORD_RESET_TIMEOUT_MINUTES} minutes.\n\n"
        f"{reset_url}\n\n"
        "Regards...\nLecture Mate"
    )
    try:
        send_mail("FORGOT PASSWORD", message, settings.DEFAULT_FROM_EMAIL, [user.email])
    except OSError as e:
        logger.error("Reset email to %s failed: %s", user.email, e)
        raise ApiError('Email not sent, please try again', 500)
    return json_response({'message': 'Reset link sent to email'})


@csrf_exempt
@require_http_methods(["PUT"])
def reset_password_view(request, reset_token):
    user = User.objects(
        password_reset_token=hash_reset_token(reset_token),
        password_reset_expires__gt=utcnow(),
    ).first()
    if user is None:
        raise ApiError('Invalid or expired Token', 404)

    data = get_payload(request)
    password = _text(data, 'password')
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ApiError(f'Password must not be less than {MIN_PASSWORD_LENGTH} characters', 400)

    user.set_password(password)
    user.password_reset_token = None
    user.password_reset_expires = None
    user.save()
    log_activity(user.id, 'Password Reset', 'Password changed through reset link')
    return json_response({'status': 'Success', 'message': 'Password Reset Successful'})


@require_http_methods(["GET"])
@protect
def me_view(request):
    return json_response(user_to_dict(request.user_doc))


@csrf_exempt
@require_http_methods(["PUT"])
@protect
def complete_onboarding_view(request):
    user = request.user_doc
    user.onboarding_completed = True
    user.save()
    log_activity(user.id, 'Onboarding', 'Completed onboarding')
    return json_response(user_to_dict(user.reload()))
