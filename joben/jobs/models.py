from datetime import timedelta

from django.db import models
from django.db.models import Q
from django.utils import timezone

from accounts.models import Profile
from cvs.storage import cv_storage

from .constants import JOB_LIFETIME_DAYS


def _tokenize_csv(value: str | None) -> list[str]:
    return [part.strip() for part in (value or "").split(",") if part.strip()]


def default_expiry():
    return timezone.now() + timedelta(days=JOB_LIFETIME_DAYS)


class JobType(models.TextChoices):
    REMOTE = "remote", "Remote"
    HYBRID = "hybrid", "Hybrid"
    ONSITE = "onsite", "On-site"


class Seniority(models.TextChoices):
    JUNIOR = "junior", "Junior"
    MID = "mid", "Mid"
    SENIOR = "senior", "Senior"
    LEAD = "lead", "Lead"


class JobStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    PAUSED = "paused", "Paused"
    CLOSED = "closed", "Closed"


class ApplicationStatus(models.TextChoices):
    SUBMITTED = "submitted", "Submitted"
    VIEWED = "viewed", "Viewed"
    REJECTED = "rejected", "Rejected"
    INTERVIEW = "interview", "Interview"


class JobQuerySet(models.QuerySet):
    def active(self):
        return self.filter(status=JobStatus.ACTIVE)

    def for_employer(self, employer_profile):
        return self.filter(employer=employer_profile)

    def recent(self):
        return self.order_by("-created_at", "-id")

    def search(self, q: str | None):
        q = (q or "").strip()
        if not q:
            return self
        return self.filter(
            Q(title__icontains=q) | Q(description__icontains=q) | Q(company_name__icontains=q)
        )

    def with_tech_stack(self, tags):
        """Jobs whose tech stack shares at least one tag with ``tags``."""
        cond = Q()
        for tag in tags or ():
            cond |= (
                Q(tech_stack__iexact=tag)
                | Q(tech_stack__istartswith=f"{tag},")
                | Q(tech_stack__iendswith=f",{tag}")
                | Q(tech_stack__icontains=f",{tag},")
            )
        if not cond:
            return self
        return self.filter(cond)


class Job(models.Model):
    employer = models.ForeignKey(Profile, on_delete=models.CASCADE, related_name="jobs")
    title = models.CharField(max_length=200)
    company_name = models.CharField(max_length=200)
    description = models.TextField()
    requirements = models.TextField(blank=True)
    location = models.CharField(max_length=100)
    job_type = models.CharField(max_length=20, choices=JobType.choices, default=JobType.ONSITE)
    seniority = models.CharField(max_length=20, choices=Seniority.choices, default=Seniority.MID)
    salary_min = models.PositiveIntegerField(blank=True, null=True)
    salary_max = models.PositiveIntegerField(blank=True, null=True)
    salary_public = models.BooleanField(default=False)
    # Comma separated tags, stored without surrounding spaces ("React,Python").
    tech_stack = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=JobStatus.choices, default=JobStatus.ACTIVE)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    expires_at = models.DateTimeField(default=default_expiry)

    objects = JobQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "-created_at"], name="job_status_created_idx"),
        ]

    def __str__(self):
        return self.title

    def tech_stack_list(self) -> list[str]:
        return _tokenize_csv(self.tech_stack)

    def set_tech_stack(self, tags) -> None:
        seen = []
        for tag in tags or ():
            tag = str(tag).replace(",", " ").strip()
            if tag and tag not in seen:
                seen.append(tag)
        self.tech_stack = ",".join(seen)

    @property
    def is_active(self) -> bool:
        return self.status == JobStatus.ACTIVE


class Application(models.Model):
    job = models.ForeignKey(Job, on_delete=models.CASCADE, related_name="applications")
    candidate = models.ForeignKey(
        Profile, on_delete=models.CASCADE, related_name="applications", blank=True, null=True
    )
    guest_name = models.CharField(max_length=200, blank=True, null=True)
    guest_email = models.EmailField(blank=True, null=True)
    guest_phone = models.CharField(max_length=30, blank=True, null=True)
    guest_linkedin_url = models.URLField(blank=True, null=True)
    cv = models.FileField(storage=cv_storage, max_length=255)
    cover_letter = models.TextField(blank=True)
    status = models.CharField(
        max_length=20, choices=ApplicationStatus.choices, default=ApplicationStatus.SUBMITTED
    )
    created_at = models.DateTimeField(auto_now_add=True)
    viewed_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(candidate__isnull=False)
                    & Q(guest_name__isnull=True)
                    & Q(guest_email__isnull=True)
                    & Q(guest_phone__isnull=True)
                    & Q(guest_linkedin_url__isnull=True)
                )
                | (
                    Q(candidate__isnull=True)
                    & Q(guest_name__isnull=False)
                    & Q(guest_email__isnull=False)
                    & Q(guest_phone__isnull=False)
                ),
                name="application_single_identity",
            ),
            models.UniqueConstraint(
                fields=["job", "candidate"],
                condition=Q(candidate__isnull=False),
                name="unique_candidate_application",
            ),
            models.UniqueConstraint(
                fields=["job", "guest_email"],
                condition=Q(candidate__isnull=True),
                name="unique_guest_application",
            ),
        ]

    def __str__(self):
        return f"{self.applicant_name} → {self.job.title}"

    @property
    def is_guest(self) -> bool:
        return self.candidate_id is None

    @property
    def applicant_name(self) -> str:
        if self.candidate_id:
            return self.candidate.full_name or self.candidate.email
        return self.guest_name or ""

    @property
    def applicant_email(self) -> str:
        return self.candidate.email if self.candidate_id else (self.guest_email or "")

    @property
    def applicant_phone(self) -> str:
        return self.candidate.phone if self.candidate_id else (self.guest_phone or "")

    @property
    def applicant_linkedin(self) -> str:
        return self.candidate.linkedin_url if self.candidate_id else (self.guest_linkedin_url or "")


class SavedJob(models.Model):
    user = models.ForeignKey(Profile, on_delete=models.CASCADE, related_name="saved_jobs")
    job = models.ForeignKey(Job, on_delete=models.CASCADE, related_name="saved_by")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ("user", "job")
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.user} saved {self.job}"
