import pytest
from django.test import Client

from api.models import Discussion


@pytest.fixture
def course(make_course):
    return make_course()


@pytest.fixture
def discussion(course, student):
    return Discussion(title='Week 1 question', content='What is a list?', course=course, user=student).save()


def test_requires_login():
    assert Client().get('/api/discussions').status_code == 401


def test_create_discussion(course, student, student_client):
    response = student_client.post('/api/discussions', {'title': 'Hi', 'content': 'Hello all', 'course': str(course.id)},
                                   content_type='application/json')
    assert response.status_code == 201
    body = response.json()['data']['discussion']
    assert body['user']['name'] == student.name
    assert body['course'] == str(course.id)


def test_create_discussion_without_course(student_client):
    response = student_client.post('/api/discussions', {'title': 'Hi', 'content': 'Hello'},
                                   content_type='application/json')
    assert response.status_code == 400


def test_list_filtered_by_course(course, make_course, discussion, student, student_client):
    other = make_course('Other')
    Discussion(title='Elsewhere', content='...', course=other, user=student).save()

    body = student_client.get('/api/discussions', {'course_id': str(course.id)}).json()
    assert body['status'] == 'success'
    assert body['results'] == 1
    assert body['data']['discussions'][0]['title'] == 'Week 1 question'

    assert student_client.get('/api/discussions').json()['results'] == 2
    assert student_client.get('/api/discussions', {'course_id': 'bad'}).status_code == 400


def test_get_discussion(discussion, educator_client):
    response = educator_client.get(f'/api/discussions/{discussion.id}')
    assert response.json()['data']['discussion']['content'] == 'What is a list?'


def test_only_owner_or_admin_can_edit(discussion, educator_client, admin_client, student_client):
    assert educator_client.patch(f'/api/discussions/{discussion.id}', {'title': 'Hijacked'},
                                 content_type='application/json').status_code == 403
    assert student_client.patch(f'/api/discussions/{discussion.id}', {'title': 'Edited'},
                                content_type='application/json').json()['data']['discussion']['title'] == 'Edited'
    assert admin_client.patch(f'/api/discussions/{discussion.id}', {'content': 'Moderated'},
                              content_type='application/json').status_code == 200


def test_delete(discussion, educator_client, student_client):
    assert educator_client.delete(f'/api/discussions/{discussion.id}').status_code == 403
    response = student_client.delete(f'/api/discussions/{discussion.id}')
    assert response.status_code == 204
    assert Discussion.objects.count() == 0
    assert student_client.get(f'/api/discussions/{discussion.id}').status_code == 404


def test_add_comment(discussion, educator, educator_client):
    response = educator_client.post(f'/api/discussions/{discussion.id}/comments', {'text': 'A sequence type'},
                                    content_type='application/json')
    assert response.status_code == 201
    comments = response.json()['data']['discussion']['comments']
    assert comments[0]['text'] == 'A sequence type'
    assert comments[0]['user']['name'] == educator.name


def test_empty_comment(discussion, student_client):
    assert student_client.post(f'/api/discussions/{discussion.id}/comments', {'text': '  '},
                               content_type='application/json').status_code == 400
