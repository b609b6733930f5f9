# Generated manually (jobs, applications, saved jobs)
from django.db import migrations, models
import django.db.models.deletion

import cvs.storage
import jobs.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Job",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=200)),
                ("company_name", models.CharField(max_length=200)),
                ("description", models.TextField()),
                ("requirements", models.TextField(blank=True)),
                ("location", models.CharField(max_length=100)),
                ("job_type", models.CharField(choices=[("remote", "Remote"), ("hybrid", "Hybrid"), ("onsite", "On-site")], default="onsite", max_length=20)),
                ("seniority", models.CharField(choices=[("junior", "Junior"), ("mid", "Mid"), ("senior", "Senior"), ("lead", "Lead")], default="mid", max_length=20)),
                ("salary_min", models.PositiveIntegerField(blank=True, null=True)),
                ("salary_max", models.PositiveIntegerField(blank=True, null=True)),
                ("salary_public", models.BooleanField(default=False)),
                ("tech_stack", models.TextField(blank=True)),
                ("status", models.CharField(choices=[("active", "Active"), ("paused", "Paused"), ("closed", "Closed")], default="active", max_length=20)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("expires_at", models.DateTimeField(default=jobs.models.default_expiry)),
                ("employer", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="jobs", to="accounts.profile")),
            ],
            options={"ordering": ["-created_at"]},
        ),
        migrations.AddIndex(
            model_name="job",
            index=models.Index(fields=["status", "-created_at"], name="job_status_created_idx"),
        ),
        migrations.CreateModel(
            name="Application",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("guest_name", models.CharField(blank=True, max_length=200, null=True)),
                ("guest_email", models.EmailField(blank=True, max_length=254, null=True)),
                ("guest_phone", models.CharField(blank=True, max_length=30, null=True)),
                ("guest_linkedin_url", models.URLField(blank=True, null=True)),
                ("cv", models.FileField(max_length=255, storage=cvs.storage.cv_storage, upload_to="")),
                ("cover_letter", models.TextField(blank=True)),
                ("status", models.CharField(choices=[("submitted", "Submitted"), ("viewed", "Viewed"), ("rejected", "Rejected"), ("interview", "Interview")], default="submitted", max_length=20)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("viewed_at", models.DateTimeField(blank=True, null=True)),
                ("candidate", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name="applications", to="accounts.profile")),
                ("job", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="applications", to="jobs.job")),
            ],
            options={"ordering": ["-created_at"]},
        ),
        migrations.AddConstraint(
            model_name="application",
            constraint=models.CheckConstraint(
                condition=(
                    models.Q(
                        ("candidate__isnull", False),
                        ("guest_name__isnull", True),
                        ("guest_email__isnull", True),
                        ("guest_phone__isnull", True),
                        ("guest_linkedin_url__isnull", True),
                    )
                    | models.Q(
                        ("candidate__isnull", True),
                        ("guest_name__isnull", False),
                        ("guest_email__isnull", False),
                        ("guest_phone__isnull", False),
                    )
                ),
                name="application_single_identity",
            ),
        ),
        migrations.AddConstraint(
            model_name="application",
            constraint=models.UniqueConstraint(
                condition=models.Q(("candidate__isnull", False)),
                fields=("job", "candidate"),
                name="unique_candidate_application",
            ),
        ),
        migrations.AddConstraint(
            model_name="application",
            constraint=models.UniqueConstraint(
                condition=models.Q(("candidate__isnull", True)),
                fields=("job", "guest_email"),
                name="unique_guest_application",
            ),
        ),
        migrations.CreateModel(
            name="SavedJob",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("job", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="saved_by", to="jobs.job")),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="saved_jobs", to="accounts.profile")),
            ],
            options={"ordering": ["-created_at"], "unique_together": {("user", "job")}},
        ),
    ]
