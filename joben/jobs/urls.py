from django.urls import path
from . import views

urlpatterns = [
    path("jobs/", views.job_list, name="job_list"),
    path("jobs/<int:job_id>/", views.job_detail, name="job_detail"),
    path("jobs/<int:job_id>/apply/guest/", views.apply_guest, name="apply_guest"),
    path("jobs/<int:job_id>/apply/", views.apply_candidate, name="apply_candidate"),
    path("jobs/<int:job_id>/save/", views.toggle_saved_job, name="toggle_saved_job"),
    path("company/<int:company_id>/", views.company_profile, name="company_profile"),
    path("dashboard/candidate/", views.candidate_dashboard, name="candidate_dashboard"),
    path("dashboard/employer/", views.employer_dashboard, name="employer_dashboard"),
    path("dashboard/employer/post-job/", views.post_job, name="post_job"),
    path("dashboard/employer/post-job/<int:job_id>/", views.post_job, name="edit_job"),
    path("dashboard/employer/jobs/<int:job_id>/status/", views.job_status_update, name="job_status_update"),
    path("dashboard/employer/jobs/<int:job_id>/delete/", views.job_delete, name="job_delete"),
    path(
        "dashboard/employer/applications/<int:application_id>/status/",
        views.application_status_update,
        name="application_status_update",
    ),
]
