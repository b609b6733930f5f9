from django.urls import path
from . import views

urlpatterns = [
    path("login/", views.user_login, name="login"),
    path("register/", views.register, name="register"),
    path("logout/", views.user_logout, name="logout"),
    path("employer/onboarding/", views.employer_onboarding, name="employer_onboarding"),
    path("dashboard/employer/company/", views.company_profile_update, name="company_profile_update"),
    path("dashboard/candidate/profile/", views.candidate_profile_update, name="candidate_profile_update"),
]
