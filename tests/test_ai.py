import datetime
import json

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile

from api import ai_service
from api.errors import AIServiceError
from api.models import MoodEntry, today_key


class FakeChat:
    """Stands in for the chat completion call, returning canned replies and recording the messages."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = []

    def __call__(self, messages, temperature=0.7, top_p=1, model=None):
        self.calls.append({'messages': messages, 'temperature': temperature})
        return self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]


@pytest.fixture
def fake_chat(monkeypatch):
    def install(*replies):
        chat = FakeChat(*replies)
        monkeypatch.setattr(ai_service, 'get_chat_completion', chat)
        return chat
    return install


# --- reply parsing ---

def test_parse_plain_json():
    assert ai_service.parse_json_reply('{"a": 1}') == {'a': 1}


def test_parse_fenced_json_with_trailing_comma():
    reply = 'Here you go:\n```json\n{"items": [1, 2,],}\n```\nEnjoy!'
    assert ai_service.parse_json_reply(reply) == {'items': [1, 2]}


def test_parse_falls_back_to_outer_span():
    assert ai_service.parse_json_reply('Sure! {"ok": true} Let me know.') == {'ok': True}
    assert ai_service.parse_json_reply('List: ["a", "b"] done') == ['a', 'b']


def test_parse_failure_raises():
    with pytest.raises(AIServiceError) as exc:
        ai_service.parse_json_reply('no json here')
    assert exc.value.status_code == 502


def test_missing_api_key(settings):
    settings.OPENAI_API_KEY = ''
    with pytest.raises(AIServiceError) as exc:
        ai_service.get_chat_completion([{'role': 'user', 'content': 'hi'}])
    assert exc.value.status_code == 503


def test_missing_api_key_returns_503_from_views(settings, student_client):
    settings.OPENAI_API_KEY = ''
    response = student_client.post('/api/ai/counselor', {'chat_history': [{'role': 'user', 'content': 'hi'}]},
                                   content_type='application/json')
    assert response.status_code == 503
    assert response.json()['status'] == 'error'


# --- wellness ---

class Entry:
    def __init__(self, date, mood):
        self.date, self.mood = date, mood


def test_weekly_average_mood_score():
    today = datetime.date(2024, 5, 10)
    entries = [Entry('2024-05-10', 'very_happy'), Entry('2024-05-08', 'sad'), Entry('2024-04-01', 'very_sad')]
    assert ai_service.weekly_average_mood_score(entries, today=today) == 3.5
    assert ai_service.weekly_average_mood_score([], today=today) == 0


def test_weekly_average_covers_today_and_six_days_before():
    today = datetime.date(2024, 5, 10)
    entries = [Entry('2024-05-10', 'very_happy'), Entry('2024-05-04', 'happy'), Entry('2024-05-03', 'very_sad')]
    assert ai_service.weekly_average_mood_score(entries, today=today) == 4.5
    assert ai_service.weekly_average_mood_score([Entry('2024-05-03', 'sad')], today=today) == 0


def test_insights(fake_chat, student, student_client):
    MoodEntry(user=student, mood='happy', notes='Aced the quiz', date=today_key()).save()
    chat = fake_chat('You seem upbeat this week.')
    response = student_client.post('/api/ai/insights')
    assert response.status_code == 200
    assert response.json() == {'insight': 'You seem upbeat this week.', 'weekly_average': 4}
    prompt = chat.calls[0]['messages'][0]['content']
    assert 'Aced the quiz' in prompt
    assert 'Weekly Average Mood Score: 4' in prompt
    assert chat.calls[0]['temperature'] == 0.7


def test_counselor(fake_chat, student_client):
    chat = fake_chat('That sounds stressful.')
    history = [{'role': 'user', 'content': 'Exams are coming'}]
    response = student_client.post('/api/ai/counselor', {'chat_history': history}, content_type='application/json')
    assert response.json() == {'reply': 'That sounds stressful.'}
    messages = chat.calls[0]['messages']
    assert messages[0]['role'] == 'system'
    assert messages[1:] == history
    assert chat.calls[0]['temperature'] == 0.8


@pytest.mark.parametrize('history', [None, [], 'hello', [{'role': 'robot', 'content': 'x'}], [{'role': 'user'}]])
def test_counselor_rejects_bad_history(fake_chat, student_client, history):
    fake_chat('unused')
    response = student_client.post('/api/ai/counselor', {'chat_history': history}, content_type='application/json')
    assert response.status_code == 400


def test_counselor_is_student_only(educator_client):
    response = educator_client.post('/api/ai/counselor', {'chat_history': [{'role': 'user', 'content': 'hi'}]},
                                    content_type='application/json')
    assert response.status_code == 403


# --- educator tools ---

OUTLINE = {
    'title': 'Python for Analysts',
    'description': 'From zero to pandas.',
    'chapters': [
        {'title': 'Basics', 'lessons': ['Variables', {'title': 'Loops'}]},
        {'title': 'Data', 'lessons': ['pandas']},
    ],
}


def test_generate_course_outline(fake_chat, educator_client):
    fake_chat('```json\n' + json.dumps(OUTLINE) + '\n```')
    response = educator_client.post('/api/ai/generate-course-outline', {'topic': 'Python', 'audience': 'analysts'},
                                    content_type='application/json')
    assert response.status_code == 200
    body = response.json()
    assert body['title'] == 'Python for Analysts'
    assert body['outline'][0] == {'title': 'Basics', 'lessons': ['Variables', 'Loops']}


def test_generate_course_outline_requires_topic(educator_client):
    response = educator_client.post('/api/ai/generate-course-outline', {}, content_type='application/json')
    assert response.status_code == 400


def test_unparseable_outline_is_502(fake_chat, educator_client):
    fake_chat('I cannot help with that.')
    response = educator_client.post('/api/ai/generate-course-outline', {'topic': 'Python'},
                                    content_type='application/json')
    assert response.status_code == 502


def test_outline_from_syllabus(fake_chat, educator_client):
    chat = fake_chat('# Course Meta: Python 101', json.dumps(OUTLINE))
    upload = SimpleUploadedFile('syllabus.txt', b'Week 1: variables\nWeek 2: loops', content_type='text/plain')
    response = educator_client.post('/api/ai/outline-from-syllabus', {'file': upload})
    assert response.status_code == 200
    body = response.json()
    assert body['syllabus'] == '# Course Meta: Python 101'
    assert len(body['outline']) == 2
    assert 'Week 1: variables' in chat.calls[0]['messages'][1]['content']
    assert '# Course Meta: Python 101' in chat.calls[1]['messages'][1]['content']


def test_outline_from_syllabus_needs_file(educator_client):
    assert educator_client.post('/api/ai/outline-from-syllabus').status_code == 400


def test_write_course_description(fake_chat, educator_client):
    fake_chat('  A practical course.  ')
    response = educator_client.post('/api/ai/write-course-description',
                                    {'title': 'Python', 'key_points': ['loops', 'functions']},
                                    content_type='application/json')
    assert response.json() == {'description': 'A practical course.'}


def test_create_thumbnail_idea(fake_chat, educator_client):
    fake_chat('A laptop on a desk, warm colors.')
    response = educator_client.post('/api/ai/create-course-thumbnail-idea', {'topic': 'Python'},
                                    content_type='application/json')
    assert response.json() == {'thumbnail_idea': 'A laptop on a desk, warm colors.'}


def test_generate_course_thumbnail(monkeypatch, educator_client):
    prompts = []

    def fake_image(prompt, size='1024x1024'):
        prompts.append(prompt)
        return 'https://images.example/thumb.png'
    monkeypatch.setattr(ai_service, 'generate_image', fake_image)

    response = educator_client.post('/api/ai/generate-course-thumbnail', {'topic': 'Python'},
                                    content_type='application/json')
    assert response.json() == {'image_url': 'https://images.example/thumb.png'}
    assert 'Python' in prompts[0]
    assert educator_client.post('/api/ai/generate-course-thumbnail', {},
                                content_type='application/json').status_code == 400


def test_build_quiz(fake_chat, educator_client):
    fake_chat(json.dumps({
        'multiple_choice': [{'question': 'Q1', 'options': ['a', 'b'], 'correct_answer': 0}],
        'true_false': [{'question': 'Q2', 'correct_answer': True}],
    }))
    response = educator_client.post('/api/ai/build-quiz-assessment',
                                    {'topic': 'Python', 'num_questions': 2,
                                     'question_types': ['multiple_choice', 'true_false']},
                                    content_type='application/json')
    assert response.status_code == 200
    quiz = response.json()['quiz']
    assert len(quiz['multiple_choice']) == 1
    assert len(quiz['true_false']) == 1
    assert quiz['short_answer'] == []


@pytest.mark.parametrize('data', [
    {'num_questions': 3},
    {'topic': 'Python', 'num_questions': 0},
    {'topic': 'Python', 'num_questions': 'many'},
    {'topic': 'Python', 'question_types': ['essay']},
])
def test_build_quiz_validation(educator_client, data):
    response = educator_client.post('/api/ai/build-quiz-assessment', data, content_type='application/json')
    assert response.status_code == 400


def test_educator_tools_are_educator_only(student_client):
    response = student_client.post('/api/ai/generate-course-outline', {'topic': 'Python'},
                                   content_type='application/json')
    assert response.status_code == 403
