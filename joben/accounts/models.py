from django.contrib.auth.models import AbstractUser
from django.db import models

from cvs.storage import cv_storage, logo_storage


class User(AbstractUser):
    """Auth identity. Username mirrors the email; sign-up metadata seeds the profile."""

    class Role(models.TextChoices):
        CANDIDATE = "candidate", "Candidate"
        EMPLOYER = "employer", "Employer"

    email = models.EmailField(unique=True)
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.CANDIDATE)
    full_name = models.CharField(max_length=150, blank=True)
    company_name = models.CharField(max_length=200, blank=True)

    def __str__(self):
        return self.email or self.username


class Profile(models.Model):
    user = models.OneToOneField(User, on_delete=models.CASCADE, primary_key=True, related_name="profile")
    email = models.EmailField()
    role = models.CharField(max_length=20, choices=User.Role.choices, default=User.Role.CANDIDATE)

    # candidate
    full_name = models.CharField(max_length=150, blank=True)
    phone = models.CharField(max_length=30, blank=True)
    linkedin_url = models.URLField(blank=True)
    cv = models.FileField(storage=cv_storage, max_length=255, blank=True)

    # employer
    company_name = models.CharField(max_length=200, blank=True)
    company_website = models.URLField(blank=True)
    company_logo = models.FileField(storage=logo_storage, max_length=255, blank=True)
    company_description = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return self.display_name

    @property
    def is_employer(self) -> bool:
        return self.role == User.Role.EMPLOYER

    @property
    def is_candidate(self) -> bool:
        return self.role == User.Role.CANDIDATE

    @property
    def display_name(self) -> str:
        if self.is_employer and self.company_name:
            return self.company_name
        return self.full_name or self.email

    @property
    def needs_onboarding(self) -> bool:
        return self.is_employer and not self.company_name.strip()

    @property
    def missing_candidate_fields(self) -> list[str]:
        """Fields a candidate must fill in before applying with their account."""
        missing = []
        if not self.full_name.strip():
            missing.append("full name")
        if not self.phone.strip():
            missing.append("phone")
        if not self.cv:
            missing.append("CV")
        return missing
