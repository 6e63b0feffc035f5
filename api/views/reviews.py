from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from ..activity import record_course_activity
from ..authentication import student_only
from ..errors import ApiError
from ..models import Course, Enrollment, Review, User
from ..serializers import get_payload, json_response, populate, to_dict, to_object_id


def _course_or_404(course_id):
    course = Course.objects(id=to_object_id(course_id, 'course id')).first()
    if course is None:
        raise ApiError('Course not found', 404)
    return course


def list_reviews(request, course_id):
    course = _course_or_404(course_id)
    reviews = Review.objects(course=course).order_by('-created_at')
    return json_response(populate([to_dict(r) for r in reviews], 'user', User, ('name', 'email')))


@student_only
def create_review(request, course_id):
    course = _course_or_404(course_id)
    user = request.user_doc
    if not Enrollment.objects(student=user, course=course, is_completed=True).first():
        raise ApiError('You can only review courses you have completed', 400)
    if Review.objects(course=course, user=user).first():
        raise ApiError('You have already reviewed this course', 400)

    data = get_payload(request)
    rating = data.get('rating')
    if isinstance(rating, str):
        try:
            rating = float(rating)
        except ValueError:
            rating = None
    if not isinstance(rating, (int, float)) or isinstance(rating, bool) or not 1 <= rating <= 5:
        raise ApiError('Rating must be a number between 1 and 5', 400)

    review = Review(course=course, user=user, rating=rating, comment=data.get('comment'))
    review.save()
    record_course_activity(user, course, 'rated', rating=review.rating)
    return json_response(to_dict(review), status=201)


@csrf_exempt
@require_http_methods(["GET", "POST"])
def reviews_view(request, course_id):
    if request.method == 'POST':
        return create_review(request, course_id)
    return list_reviews(request, course_id)
