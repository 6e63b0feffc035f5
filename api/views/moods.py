from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from ..authentication import student_only
from ..errors import ApiError
from ..models import MoodEntry, today_key
from ..serializers import get_payload, json_response, to_dict, to_object_id


@student_only
def save_todays_mood(request):
    """Create today's entry, or update it if one already exists."""
    data = get_payload(request)
    mood = data.get('mood')
    if not mood:
        raise ApiError('Mood is required', 400)

    user = request.user_doc
    entry = MoodEntry.objects(user=user, date=today_key()).first()
    if entry is not None:
        entry.mood = mood
        if data.get('notes'):
            entry.notes = data['notes']
        entry.save()
        return json_response(to_dict(entry))

    entry = MoodEntry(user=user, mood=mood, notes=data.get('notes'), date=today_key())
    entry.save()
    return json_response(to_dict(entry), status=201)


@student_only
def list_moods(request):
    entries = MoodEntry.objects(user=request.user_doc).order_by('-date')
    return json_response([to_dict(e) for e in entries])


@csrf_exempt
@require_http_methods(["GET", "POST"])
def moods_view(request):
    if request.method == 'POST':
        return save_todays_mood(request)
    return list_moods(request)


@require_http_methods(["GET"])
@student_only
def todays_mood_view(request):
    entry = MoodEntry.objects(user=request.user_doc, date=today_key()).first()
    return json_response(to_dict(entry))


@csrf_exempt
@require_http_methods(["DELETE"])
@student_only
def mood_detail_view(request, mood_id):
    entry = MoodEntry.objects(id=to_object_id(mood_id, 'mood id')).first()
    if entry is None:
        raise ApiError('Mood entry not found', 404)
    if entry.to_mongo().get('user') != request.user_doc.id:
        raise ApiError('Not authorized to delete this entry', 401)
    entry.delete()
    return json_response({'message': 'Mood entry removed'})
