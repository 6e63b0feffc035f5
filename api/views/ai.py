import logging

from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from .. import ai_service
from ..authentication import educator_only, student_only
from ..errors import ApiError
from ..models import MoodEntry, today_key
from ..serializers import get_payload, json_response
from ..uploads import extract_text

logger = logging.getLogger(__name__)

CHAT_ROLES = ('user', 'assistant')
MAX_QUIZ_QUESTIONS = 50


def _required(data, field):
    value = data.get(field)
    if isinstance(value, str):
        value = value.strip()
    if not value:
        raise ApiError(f'{field} is required', 400)
    return value


def _validate_chat_history(chat_history):
    if not isinstance(chat_history, list) or not chat_history:
        raise ApiError('chat_history must be a non-empty list of messages', 400)
    for message in chat_history:
        if (not isinstance(message, dict) or message.get('role') not in CHAT_ROLES
                or not isinstance(message.get('content'), str) or not message['content'].strip()):
            raise ApiError('Each message needs a role (user or assistant) and text content', 400)
    return chat_history


def _outline_response(outline):
    return {
        'title': outline['title'],
        'description': outline['description'],
        'outline': outline['chapters'],
    }


# --- Student wellness ---

@csrf_exempt
@require_http_methods(["POST"])
@student_only
def insights_view(request):
    user = request.user_doc
    entries = list(MoodEntry.objects(user=user).order_by('-date'))
    todays_entry = next((e for e in entries if e.date == today_key()), None)
    weekly_average = ai_service.weekly_average_mood_score(entries)
    insight = ai_service.wellness_insight(user.id, entries, todays_entry, weekly_average)
    return json_response({'insight': insight, 'weekly_average': weekly_average})


@csrf_exempt
@require_http_methods(["POST"])
@student_only
def counselor_view(request):
    chat_history = _validate_chat_history(get_payload(request).get('chat_history'))
    reply = ai_service.counselor_reply(chat_history)
    return json_response({'reply': reply})


# --- Educator content tools ---

@csrf_exempt
@require_http_methods(["POST"])
@educator_only
def course_outline_view(request):
    data = get_payload(request)
    outline = ai_service.generate_course_outline(
        topic=_required(data, 'topic'),
        difficulty=data.get('difficulty') or 'beginner',
        duration=data.get('duration'),
        audience=data.get('audience'),
        style_tone=data.get('style_tone'),
        additional_context=data.get('additional_context'),
    )
    return json_response(_outline_response(outline))


@csrf_exempt
@require_http_methods(["POST"])
@educator_only
def outline_from_syllabus_view(request):
    if 'file' not in request.FILES:
        raise ApiError('No file uploaded', 400)
    upload = request.FILES['file']
    text = extract_text(upload)
    if not text.strip():
        raise ApiError('No readable text found in the uploaded file', 400)

    logger.info("Refining syllabus %s for educator %s", upload.name, request.user_doc.id)
    syllabus = ai_service.refine_syllabus(text)
    data = get_payload(request)
    outline = ai_service.generate_course_outline(
        topic=data.get('topic') or upload.name.rsplit('.', 1)[0],
        difficulty=data.get('difficulty') or 'beginner',
        audience=data.get('audience'),
        additional_context=syllabus,
    )
    response = _outline_response(outline)
    response['syllabus'] = syllabus
    return json_response(response)


@csrf_exempt
@require_http_methods(["POST"])
@educator_only
def course_description_view(request):
    data = get_payload(request)
    description = ai_service.write_course_description(
        title=_required(data, 'title'),
        audience=data.get('audience'),
        key_points=data.get('key_points'),
        style_tone=data.get('style_tone'),
    )
    return json_response({'description': description})


@csrf_exempt
@require_http_methods(["POST"])
@educator_only
def thumbnail_idea_view(request):
    data = get_payload(request)
    idea = ai_service.create_thumbnail_idea(
        topic=_required(data, 'topic'),
        style_tone=data.get('style_tone'),
        additional_context=data.get('additional_context'),
    )
    return json_response({'thumbnail_idea': idea})


@csrf_exempt
@require_http_methods(["POST"])
@educator_only
def generate_thumbnail_view(request):
    data = get_payload(request)
    prompt = (data.get('prompt') or '').strip()
    if not prompt:
        topic = (data.get('topic') or '').strip()
        if not topic:
            raise ApiError('prompt or topic is required', 400)
        prompt = f"A clean, modern online course thumbnail about {topic}. No text."
        if data.get('style_tone'):
            prompt += f" Style: {data['style_tone']}."
    image_url = ai_service.generate_image(prompt)
    return json_response({'image_url': image_url})


@csrf_exempt
@require_http_methods(["POST"])
@educator_only
def build_quiz_view(request):
    data = get_payload(request)
    topic = _required(data, 'topic')
    try:
        num_questions = int(data.get('num_questions', 5))
    except (TypeError, ValueError):
        raise ApiError('num_questions must be an integer', 400)
    if not 1 <= num_questions <= MAX_QUIZ_QUESTIONS:
        raise ApiError(f'num_questions must be between 1 and {MAX_QUIZ_QUESTIONS}', 400)

    question_types = data.get('question_types') or list(ai_service.QUESTION_TYPES)
    if isinstance(question_types, str):
        question_types = [question_types]
    unknown = [t for t in question_types if t not in ai_service.QUESTION_TYPES]
    if unknown:
        raise ApiError(f"Unknown question types: {', '.join(map(str, unknown))}", 400)

    quiz = ai_service.build_quiz(
        topic,
        difficulty=data.get('difficulty') or 'beginner',
        num_questions=num_questions,
        question_types=question_types,
        additional_context=data.get('additional_context'),
    )
    return json_response({'quiz': quiz})
