from django.urls import path
from .views import LoginView, RefreshView, register, logout, user_me

urlpatterns = [
    # Auth endpoints
    path('register/', register, name='register'),
    path('login/', LoginView.as_view(), name='token_obtain_pair'),
    path('refresh/', RefreshView.as_view(), name='token_refresh'),
    path('logout/', logout, name='logout'),
    path('me/', user_me, name='user-me'),
]
