import pytest
from mongoengine import NotUniqueError

from api.models import MoodEntry, today_key


def post_mood(client, **data):
    return client.post('/api/moods', data, content_type='application/json')


def test_first_mood_of_the_day_is_created(student_client):
    response = post_mood(student_client, mood='happy', notes='Good lecture')
    assert response.status_code == 201
    body = response.json()
    assert body['date'] == today_key()
    assert body['notes'] == 'Good lecture'


def test_second_mood_updates_today(student, student_client):
    post_mood(student_client, mood='happy', notes='Morning')
    response = post_mood(student_client, mood='sad')
    assert response.status_code == 200
    assert response.json()['mood'] == 'sad'
    assert response.json()['notes'] == 'Morning'
    assert MoodEntry.objects(user=student).count() == 1

    response = post_mood(student_client, mood='neutral', notes='Evening')
    assert response.json()['notes'] == 'Evening'

    for empty in (None, ''):
        response = post_mood(student_client, mood='happy', notes=empty)
        assert response.status_code == 200
        assert response.json()['notes'] == 'Evening'


def test_mood_required(student_client):
    assert post_mood(student_client, notes='no mood').status_code == 400


def test_invalid_mood(student_client):
    assert post_mood(student_client, mood='ecstatic').status_code == 400


def test_list_newest_first(student, student_client):
    MoodEntry(user=student, mood='sad', date='2024-01-01').save()
    MoodEntry(user=student, mood='happy', date='2024-01-03').save()
    MoodEntry(user=student, mood='neutral', date='2024-01-02').save()
    dates = [e['date'] for e in student_client.get('/api/moods').json()]
    assert dates == ['2024-01-03', '2024-01-02', '2024-01-01']


def test_today(student_client):
    assert student_client.get('/api/moods/today').json() is None
    post_mood(student_client, mood='very_happy')
    assert student_client.get('/api/moods/today').json()['mood'] == 'very_happy'


def test_delete(student, student_client):
    entry = MoodEntry(user=student, mood='sad', date='2024-01-01').save()
    assert student_client.delete(f'/api/moods/{entry.id}').status_code == 200
    assert student_client.delete(f'/api/moods/{entry.id}').status_code == 404


def test_delete_someone_elses_entry(student, make_user, client_for):
    entry = MoodEntry(user=student, mood='sad', date='2024-01-01').save()
    other = client_for(make_user('student', email='other@example.com'))
    assert other.delete(f'/api/moods/{entry.id}').status_code == 401


def test_one_entry_per_user_per_day(student):
    MoodEntry(user=student, mood='sad', date='2024-01-01').save()
    with pytest.raises(NotUniqueError):
        MoodEntry(user=student, mood='happy', date='2024-01-01').save()


def test_educator_has_no_mood_journal(educator_client):
    assert educator_client.get('/api/moods').status_code == 403
