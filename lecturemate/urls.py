from django.urls import path, include

urlpatterns = [
    path('api/', include('api.urls')),
]

handler404 = 'api.middleware.not_found'
