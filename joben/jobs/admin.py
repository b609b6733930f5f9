from django.contrib import admin

from .models import Application, Job, SavedJob


@admin.register(Job)
class JobAdmin(admin.ModelAdmin):
    list_display = ("title", "company_name", "location", "job_type", "seniority", "status", "created_at", "expires_at")
    list_filter = ("status", "job_type", "seniority", "location")
    search_fields = ("title", "company_name", "description")


@admin.register(Application)
class ApplicationAdmin(admin.ModelAdmin):
    list_display = ("job", "candidate", "guest_email", "status", "created_at", "viewed_at")
    list_filter = ("status",)
    search_fields = ("guest_email", "guest_name", "candidate__email", "job__title")


admin.site.register(SavedJob)
