from django.urls import path
from . import views

urlpatterns = [
    path('gym/profile/', views.GymProfileView.as_view(), name='gym_profile'),
    path('gym/auto-renewal/', views.AutoRenewalConfigView.as_view(), name='auto_renewal_config'),
]
