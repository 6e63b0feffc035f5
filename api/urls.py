from django.urls import path

from .views import admin, ai, auth, courses, discussions, educator, moods, reviews, student

urlpatterns = [
    # auth
    path('auth/register', auth.register_view, name='register'),
    path('auth/login', auth.login_view, name='login'),
    path('auth/logout', auth.logout_view, name='logout'),
    path('auth/forgot-password', auth.forgot_password_view, name='forgot_password'),
    path('auth/reset-password/<str:reset_token>', auth.reset_password_view, name='reset_password'),
    path('auth/me', auth.me_view, name='me'),
    path('auth/complete-onboarding', auth.complete_onboarding_view, name='complete_onboarding'),

    # courses
    path('courses', courses.list_courses_view, name='courses'),
    path('courses/featured', courses.featured_courses_view, name='featured_courses'),
    path('courses/recommended', courses.recommended_courses_view, name='recommended_courses'),
    path('courses/<str:course_id>', courses.course_detail_view, name='course_detail'),

    # student
    path('student/profile', student.profile_view, name='student_profile'),
    path('student/onboarding', student.onboarding_view, name='student_onboarding'),
    path('student/courses', student.my_courses_view, name='student_courses'),
    path('student/enroll', student.enroll_view, name='student_enroll_body'),
    path('student/enroll/<str:course_id>', student.enroll_view, name='student_enroll'),
    path('student/progress/<str:course_id>', student.progress_view, name='student_progress'),
    path('student/enrollments/<str:enrollment_id>/complete-lecture', student.complete_lecture_view,
         name='complete_lecture'),
    path('student/dashboard', student.dashboard_view, name='student_dashboard'),

    # educator
    path('educator/profile', educator.profile_view, name='educator_profile'),
    path('educator/onboarding', educator.onboarding_view, name='educator_onboarding'),
    path('educator/upload-sample', educator.upload_sample_view, name='educator_upload_sample'),
    path('educator/tools', educator.tools_view, name='educator_tools'),
    path('educator/courses', educator.create_course_view, name='educator_create_course'),
    path('educator/courses/<str:course_id>', educator.update_course_view, name='educator_update_course'),
    path('educator/my-courses', educator.my_courses_view, name='educator_my_courses'),
    path('educator/dashboard-stats', educator.dashboard_stats_view, name='educator_dashboard_stats'),
    path('educator/analytics', educator.analytics_view, name='educator_analytics'),
    path('educator/request-approval', educator.request_approval_view, name='educator_request_approval'),

    # admin
    path('admin/profile', admin.profile_view, name='admin_profile'),
    path('admin/dashboard-stats', admin.dashboard_stats_view, name='admin_dashboard_stats'),
    path('admin/approve-educator/<str:user_id>', admin.approve_educator_view, name='approve_educator'),
    path('admin/reject-educator/<str:user_id>', admin.reject_educator_view, name='reject_educator'),
    path('admin/educators/<str:user_id>/status', admin.educator_status_view, name='educator_status'),
    path('admin/users', admin.users_view, name='admin_users'),
    path('admin/users/<str:user_id>', admin.user_detail_view, name='admin_user_detail'),
    path('admin/users/<str:user_id>/role', admin.user_role_view, name='admin_user_role'),
    path('admin/courses', admin.courses_view, name='admin_courses'),
    path('admin/courses/<str:course_id>/status', admin.course_status_view, name='admin_course_status'),
    path('admin/courses/<str:course_id>', admin.course_delete_view, name='admin_course_delete'),

    # reviews
    path('reviews/<str:course_id>', reviews.reviews_view, name='reviews'),

    # moods
    path('moods', moods.moods_view, name='moods'),
    path('moods/today', moods.todays_mood_view, name='todays_mood'),
    path('moods/<str:mood_id>', moods.mood_detail_view, name='mood_detail'),

    # discussions
    path('discussions', discussions.discussions_view, name='discussions'),
    path('discussions/<str:discussion_id>', discussions.discussion_detail_view, name='discussion_detail'),
    path('discussions/<str:discussion_id>/comments', discussions.add_comment_view, name='discussion_comments'),

    # ai
    path('ai/insights', ai.insights_view, name='ai_insights'),
    path('ai/counselor', ai.counselor_view, name='ai_counselor'),
    path('ai/generate-course-outline', ai.course_outline_view, name='ai_course_outline'),
    path('ai/outline-from-syllabus', ai.outline_from_syllabus_view, name='ai_outline_from_syllabus'),
    path('ai/write-course-description', ai.course_description_view, name='ai_course_description'),
    path('ai/create-course-thumbnail-idea', ai.thumbnail_idea_view, name='ai_thumbnail_idea'),
    path('ai/generate-course-thumbnail', ai.generate_thumbnail_view, name='ai_generate_thumbnail'),
    path('ai/build-quiz-assessment', ai.build_quiz_view, name='ai_build_quiz'),
]
