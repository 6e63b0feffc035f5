import pytest

from api.models import Course, Enrollment, MoodEntry, StudentProfile, User, today_key

PROFILE = {
    'university': 'State University',
    'major': 'Biology',
    'semester': '3',
    'study_style': 'group',
    'study_time': 'morning',
    'learning_styles': ['visual'],
    'goals': ['exam_prep'],
    'preferred_categories': ['health'],
}


@pytest.fixture
def profile(student):
    return StudentProfile(user=student, **{k: v for k, v in PROFILE.items()}).save()


def lecture_ids(course):
    return [str(lecture.lecture_id) for chapter in course.chapters for lecture in chapter.lectures]


def test_onboarding_creates_profile(student, student_client):
    response = student_client.post('/api/student/onboarding', PROFILE, content_type='application/json')
    assert response.status_code == 201
    assert response.json()['major'] == 'Biology'
    student.reload()
    assert student.onboarding_completed is True
    assert student.preferred_categories == ['health']

    again = student_client.post('/api/student/onboarding', PROFILE, content_type='application/json')
    assert again.status_code == 400


def test_onboarding_invalid_choice(student_client):
    response = student_client.post('/api/student/onboarding', dict(PROFILE, study_style='solo'),
                                   content_type='application/json')
    assert response.status_code == 400


def test_profile_get_and_update(profile, student_client):
    assert student_client.get('/api/student/profile').json()['university'] == 'State University'
    response = student_client.put('/api/student/profile', {'major': 'Chemistry'}, content_type='application/json')
    assert response.status_code == 200
    assert response.json()['major'] == 'Chemistry'


def test_profile_missing(student_client):
    assert student_client.get('/api/student/profile').status_code == 404


def test_student_routes_reject_other_roles(educator_client):
    assert educator_client.get('/api/student/profile').status_code == 403


def test_enroll(make_course, profile, student, student_client):
    course = make_course()
    response = student_client.post(f'/api/student/enroll/{course.id}')
    assert response.status_code == 201
    assert Course.objects.get(id=course.id).total_enrollments == 1
    profile.reload()
    assert profile.activity_history[-1].action == 'enrolled'

    duplicate = student_client.post(f'/api/student/enroll/{course.id}')
    assert duplicate.status_code == 400


def test_enroll_with_body(make_course, student_client):
    course = make_course()
    response = student_client.post('/api/student/enroll', {'course_id': str(course.id)},
                                   content_type='application/json')
    assert response.status_code == 201


def test_enroll_unknown_course(student_client):
    assert student_client.post('/api/student/enroll/5f9f1b9b9c9d440000000000').status_code == 404


def test_my_courses_embeds_course(make_course, student, student_client):
    course = make_course()
    Enrollment(student=student, course=course).save()
    body = student_client.get('/api/student/courses').json()
    assert len(body) == 1
    assert body[0]['course']['title'] == course.title


def test_progress(make_course, student, student_client):
    course = make_course()
    Enrollment(student=student, course=course).save()
    body = student_client.get(f'/api/student/progress/{course.id}').json()
    assert body == {'progress': 0, 'completed_lectures': [], 'is_completed': False}


def test_progress_not_enrolled(make_course, student_client):
    course = make_course()
    assert student_client.get(f'/api/student/progress/{course.id}').status_code == 404


def test_complete_lectures_until_course_done(make_course, profile, student, student_client):
    course = make_course(lectures=2)
    enrollment = Enrollment(student=student, course=course).save()
    first, second = lecture_ids(course)
    url = f'/api/student/enrollments/{enrollment.id}/complete-lecture'

    body = student_client.put(url, {'lecture_id': first}, content_type='application/json').json()
    assert body['progress'] == 50
    assert body['is_completed'] is False

    again = student_client.put(url, {'lecture_id': first}, content_type='application/json')
    assert again.status_code == 400

    body = student_client.put(url, {'lecture_id': second}, content_type='application/json').json()
    assert body['progress'] == 100
    assert body['is_completed'] is True
    assert body['completion_date']
    profile.reload()
    assert profile.activity_history[-1].action == 'completed'


def test_complete_lecture_errors(make_course, make_user, student, student_client):
    course = make_course()
    enrollment = Enrollment(student=student, course=course).save()
    url = f'/api/student/enrollments/{enrollment.id}/complete-lecture'

    assert student_client.put(url, {}, content_type='application/json').status_code == 400
    assert student_client.put(url, {'lecture_id': '5f9f1b9b9c9d440000000000'},
                              content_type='application/json').status_code == 404
    missing = '/api/student/enrollments/5f9f1b9b9c9d440000000000/complete-lecture'
    assert student_client.put(missing, {'lecture_id': lecture_ids(course)[0]},
                              content_type='application/json').status_code == 404


def test_complete_lecture_for_someone_else(make_course, make_user, client_for, student):
    course = make_course()
    enrollment = Enrollment(student=student, course=course).save()
    other = client_for(make_user('student', email='other@example.com'))
    response = other.put(f'/api/student/enrollments/{enrollment.id}/complete-lecture',
                         {'lecture_id': lecture_ids(course)[0]}, content_type='application/json')
    assert response.status_code == 401


def test_complete_lecture_on_empty_course(make_course, student, student_client):
    course = make_course(lectures=0)
    enrollment = Enrollment(student=student, course=course).save()
    response = student_client.put(f'/api/student/enrollments/{enrollment.id}/complete-lecture',
                                  {'lecture_id': '5f9f1b9b9c9d440000000000'}, content_type='application/json')
    assert response.status_code == 404
    enrollment.reload()
    assert enrollment.progress == 0


def test_dashboard(make_course, student, student_client):
    done = make_course('Done')
    busy = make_course('Busy')
    Enrollment(student=student, course=done, progress=100, is_completed=True).save()
    Enrollment(student=student, course=busy, progress=50).save()
    MoodEntry(user=student, mood='happy', date=today_key()).save()

    body = student_client.get('/api/student/dashboard').json()
    assert body['stats'] == {
        'enrolled_courses': 2,
        'completed_courses': 1,
        'in_progress_courses': 1,
        'average_progress': 75,
    }
    assert body['todays_mood']['mood'] == 'happy'
    assert {e['course']['title'] for e in body['enrollments']} == {'Done', 'Busy'}


def test_deleting_user_cascades_to_enrollments(make_course, student):
    Enrollment(student=student, course=make_course()).save()
    User.objects.get(id=student.id).delete()
    assert Enrollment.objects.count() == 0
