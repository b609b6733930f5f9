from django.urls import path
from . import views

urlpatterns = [
    path("me/", views.cv_viewer, name="my_cv"),
    path("me/page/<int:page>/", views.cv_page, name="my_cv_page"),
    path("me/download/", views.cv_download, name="my_cv_download"),
    path("application/<int:application_id>/", views.cv_viewer, name="application_cv"),
    path("application/<int:application_id>/page/<int:page>/", views.cv_page, name="application_cv_page"),
    path("application/<int:application_id>/download/", views.cv_download, name="application_cv_download"),
]
