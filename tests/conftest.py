import mongoengine
import mongomock
import pytest
from django.test import Client

from api.authentication import generate_token
from api.models import Chapter, Course, Lecture, User

TEST_DB = 'lecturemate_test'
PASSWORD = 'password123'


@pytest.fixture(autouse=True)
def mongo(settings, tmp_path):
    settings.PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']
    settings.UPLOAD_DIR = str(tmp_path / 'uploads')
    settings.OPENAI_API_KEY = 'test-key'
    mongoengine.disconnect()
    connection = mongoengine.connect(TEST_DB, host='mongodb://localhost', mongo_client_class=mongomock.MongoClient)
    yield connection
    connection.drop_database(TEST_DB)
    mongoengine.disconnect()


@pytest.fixture
def make_user():
    def _make_user(role='student', email=None, name='Test User', status='approved', **kwargs):
        user = User(name=name, email=email or f'{role}-{User.objects.count()}@example.com',
                    role=role, status=status, **kwargs)
        user.set_password(PASSWORD)
        user.save()
        return user
    return _make_user


@pytest.fixture
def client_for():
    """Test client authenticated as the given user through the auth cookie."""
    def _client_for(user):
        client = Client()
        client.cookies['jwt'] = generate_token(user.id)
        return client
    return _client_for


@pytest.fixture
def student(make_user):
    return make_user('student', email='student@example.com', name='Sam Student')


@pytest.fixture
def educator(make_user):
    return make_user('educator', email='educator@example.com', name='Eve Educator')


@pytest.fixture
def admin(make_user):
    return make_user('admin', email='admin@example.com', name='Ada Admin')


@pytest.fixture
def student_client(client_for, student):
    return client_for(student)


@pytest.fixture
def educator_client(client_for, educator):
    return client_for(educator)


@pytest.fixture
def admin_client(client_for, admin):
    return client_for(admin)


@pytest.fixture
def make_course(educator):
    def _make_course(title='Intro to Python', lectures=2, **kwargs):
        fields = {
            'description': 'Learn the basics',
            'subject': 'Computer Science',
            'category': 'programming',
            'status': 'Published',
            'instructor_name': educator.name,
        }
        fields.update(kwargs)
        chapters = [Chapter(title='Chapter 1', lectures=[Lecture(title=f'Lecture {i + 1}') for i in range(lectures)])]
        course = Course(title=title, educator=fields.pop('educator', educator), chapters=chapters, **fields)
        course.save()
        return course
    return _make_course
