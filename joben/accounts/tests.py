from unittest import mock

from django.core.cache import cache
from django.db import DatabaseError, IntegrityError
from django.test import Client, RequestFactory, TestCase
from django.urls import reverse

from jobs.models import Application
from jobs.queries import candidate_applications
from jobs.tests import make_candidate, make_employer, make_job

from .models import Profile, User
from .session import EnsureStatus, ProfileContext, ensure_profile


class EnsureProfileTests(TestCase):
    def setUp(self):
        cache.clear()
        self.user = User.objects.create_user(
            username="ana@example.com",
            email="ana@example.com",
            password="secret1",
            role=User.Role.EMPLOYER,
            full_name="Ana Pop",
            company_name="Carpathia Labs",
        )

    def test_creates_profile_from_signup_metadata(self):
        result = ensure_profile(self.user)
        self.assertEqual(result.status, EnsureStatus.CREATED)
        self.assertEqual(result.profile.role, User.Role.EMPLOYER)
        self.assertEqual(result.profile.company_name, "Carpathia Labs")
        self.assertEqual(result.profile.full_name, "Ana Pop")

    def test_is_idempotent(self):
        first = ensure_profile(self.user)
        second = ensure_profile(self.user)
        self.assertEqual(second.status, EnsureStatus.FOUND)
        self.assertEqual(first.profile.pk, second.profile.pk)
        self.assertEqual(Profile.objects.filter(user=self.user).count(), 1)

    def test_anonymous_user_fails(self):
        from django.contrib.auth.models import AnonymousUser

        result = ensure_profile(AnonymousUser())
        self.assertEqual(result.status, EnsureStatus.FAILED)
        self.assertFalse(result.ok)

    def test_row_inserted_by_another_request_is_found(self):
        existing = ensure_profile(self.user).profile
        lookups = [Profile.objects.none(), Profile.objects.filter(user_id=self.user.pk)]
        with mock.patch.object(Profile.objects, "filter", side_effect=lookups), mock.patch.object(
            Profile.objects, "create", side_effect=IntegrityError("duplicate key value")
        ) as create:
            result = ensure_profile(self.user)
        create.assert_called_once()
        self.assertEqual(result.status, EnsureStatus.FOUND)
        self.assertEqual(result.profile.pk, existing.pk)

    def test_database_error_is_reported_not_raised(self):
        with mock.patch.object(Profile.objects, "filter", side_effect=DatabaseError("connection lost")):
            result = ensure_profile(self.user)
        self.assertEqual(result.status, EnsureStatus.FAILED)
        self.assertIsNone(result.profile)
        self.assertEqual(result.error, "connection lost")

    def test_login_signal_creates_profile(self):
        self.client.force_login(self.user)
        self.assertTrue(Profile.objects.filter(user=self.user).exists())


class ProfileContextTests(TestCase):
    def setUp(self):
        cache.clear()
        self.factory = RequestFactory()
        self.user = User.objects.create_user(
            username="ion@example.com", email="ion@example.com", password="secret1", full_name="Ion"
        )

    def test_profile_is_loaded_lazily_and_cleared(self):
        ctx = ProfileContext(self.user)
        self.assertTrue(ctx.is_authenticated)
        self.assertEqual(ctx.profile.pk, self.user.pk)
        self.assertEqual(ctx.role, User.Role.CANDIDATE)

        ctx.clear()
        self.assertFalse(ctx.is_authenticated)
        self.assertIsNone(ctx.profile)
        self.assertIsNone(ctx.role)

    def test_anonymous_context_has_no_profile(self):
        ctx = ProfileContext()
        self.assertIsNone(ctx.profile)
        self.assertIsNone(ctx.last_result)


class RegistrationTests(TestCase):
    def setUp(self):
        cache.clear()

    def _post(self, **overrides):
        data = {
            "full_name": "Maria Ionescu",
            "email": "Maria@Example.com",
            "password": "secret1",
            "confirm_password": "secret1",
            "role": "candidate",
            "company_name": "",
        }
        data.update(overrides)
        return self.client.post(reverse("register"), data)

    def test_candidate_signup_logs_in_and_creates_profile(self):
        resp = self._post()
        self.assertRedirects(resp, reverse("candidate_dashboard"))
        user = User.objects.get(email="maria@example.com")
        self.assertEqual(user.profile.role, User.Role.CANDIDATE)
        self.assertEqual(user.profile.full_name, "Maria Ionescu")

    def test_employer_signup_requires_company_name(self):
        resp = self._post(role="employer", company_name="")
        self.assertEqual(resp.status_code, 200)
        self.assertContains(resp, "Company name must be at least 2 characters.")
        self.assertFalse(User.objects.exists())

    def test_employer_signup_goes_to_dashboard(self):
        resp = self._post(role="employer", company_name="Danube Metrics", email="hr@danube.ro")
        self.assertRedirects(resp, reverse("employer_dashboard"))
        profile = Profile.objects.get(email="hr@danube.ro")
        self.assertTrue(profile.is_employer)
        self.assertEqual(profile.company_name, "Danube Metrics")

    def test_password_mismatch(self):
        resp = self._post(confirm_password="other12")
        self.assertContains(resp, "Passwords do not match.")

    def test_duplicate_email_is_reported(self):
        User.objects.create_user(username="maria@example.com", email="maria@example.com", password="secret1")
        resp = self._post()
        self.assertEqual(resp.status_code, 200)
        self.assertContains(resp, "An account with this email already exists.")
        self.assertEqual(User.objects.count(), 1)


class LoginTests(TestCase):
    def setUp(self):
        cache.clear()
        self.user = User.objects.create_user(
            username="ana@example.com", email="ana@example.com", password="secret1", full_name="Ana"
        )

    def test_login_redirects_to_next(self):
        resp = self.client.post(
            reverse("login"), {"email": "ana@example.com", "password": "secret1", "next": "/jobs/"}
        )
        self.assertRedirects(resp, "/jobs/", fetch_redirect_response=False)

    def test_login_ignores_foreign_next(self):
        resp = self.client.post(
            reverse("login"),
            {"email": "ana@example.com", "password": "secret1", "next": "https://evil.example.com/"},
        )
        self.assertRedirects(resp, reverse("candidate_dashboard"))

    def test_invalid_credentials(self):
        resp = self.client.post(reverse("login"), {"email": "ana@example.com", "password": "wrong12"})
        self.assertEqual(resp.status_code, 200)
        self.assertContains(resp, "Invalid login credentials.")

    def test_next_prompt_is_shown(self):
        resp = self.client.get(reverse("login"), {"next": "/dashboard/candidate/"})
        self.assertContains(resp, "Please sign in to continue.")

    def test_logout(self):
        self.client.force_login(self.user)
        resp = self.client.post(reverse("logout"))
        self.assertRedirects(resp, reverse("home"))
        self.assertNotIn("_auth_user_id", self.client.session)


class RoleGuardTests(TestCase):
    def setUp(self):
        cache.clear()
        self.candidate = User.objects.create_user(
            username="c@example.com", email="c@example.com", password="secret1", full_name="Cand"
        )
        self.employer = User.objects.create_user(
            username="e@example.com", email="e@example.com", password="secret1", role=User.Role.EMPLOYER
        )

    def test_anonymous_is_sent_to_login(self):
        resp = self.client.get(reverse("employer_dashboard"))
        self.assertRedirects(resp, f"{reverse('login')}?next={reverse('employer_dashboard')}")

    def test_candidate_cannot_open_employer_dashboard(self):
        self.client.force_login(self.candidate)
        resp = self.client.get(reverse("employer_dashboard"))
        self.assertRedirects(resp, reverse("home"))

    def test_employer_without_company_goes_to_onboarding(self):
        self.client.force_login(self.employer)
        resp = self.client.get(reverse("employer_dashboard"))
        self.assertRedirects(resp, reverse("employer_onboarding"))

    def test_onboarding_saves_company(self):
        self.client.force_login(self.employer)
        resp = self.client.post(
            reverse("employer_onboarding"),
            {
                "company_name": "Bucegi Systems",
                "company_website": "https://bucegi.example.com",
                "company_description": "We build software for mountain rescue teams.",
            },
        )
        self.assertRedirects(resp, reverse("employer_dashboard"))
        profile = Profile.objects.get(pk=self.employer.pk)
        self.assertEqual(profile.company_name, "Bucegi Systems")
        self.assertFalse(profile.needs_onboarding)


class CandidateProfileTests(TestCase):
    def setUp(self):
        cache.clear()
        self.user = User.objects.create_user(
            username="c@example.com", email="c@example.com", password="secret1", full_name="Cand"
        )
        self.client.force_login(self.user)

    def test_missing_fields_listed(self):
        profile = Profile.objects.get(pk=self.user.pk)
        self.assertEqual(profile.missing_candidate_fields, ["phone", "CV"])

    def test_profile_update_uploads_cv(self):
        from django.core.files.uploadedfile import SimpleUploadedFile

        cv = SimpleUploadedFile("cv.pdf", b"%PDF-1.4 test", content_type="application/pdf")
        resp = self.client.post(
            reverse("candidate_profile_update"),
            {"full_name": "Cand Idate", "phone": "0722000111", "linkedin_url": "", "cv_file": cv},
        )
        self.assertRedirects(resp, reverse("candidate_dashboard"))
        profile = Profile.objects.get(pk=self.user.pk)
        self.assertTrue(profile.cv.name.startswith(f"{self.user.pk}/"))
        self.assertTrue(profile.cv.name.endswith(".pdf"))
        self.assertEqual(profile.missing_candidate_fields, [])

    def test_short_phone_rejected(self):
        self.client.post(
            reverse("candidate_profile_update"), {"full_name": "Cand Idate", "phone": "0722", "linkedin_url": ""}
        )
        profile = Profile.objects.get(pk=self.user.pk)
        self.assertEqual(profile.phone, "")

    def test_profile_edit_refreshes_employer_applicant_list(self):
        employer = make_employer()
        job = make_job(employer)
        profile = Profile.objects.get(pk=self.user.pk)
        profile.phone = "0722000111"
        profile.save()
        Application.objects.create(job=job, candidate=profile, cv="x.pdf")

        employer_client = Client()
        employer_client.force_login(employer.user)
        self.assertContains(employer_client.get(reverse("employer_dashboard")), "0722000111")

        self.client.post(
            reverse("candidate_profile_update"), {"full_name": "Cand Idate", "phone": "0799999999", "linkedin_url": ""}
        )
        resp = employer_client.get(reverse("employer_dashboard"))
        self.assertContains(resp, "0799999999")
        self.assertContains(resp, "Cand Idate")
        self.assertNotContains(resp, "0722000111")


class CompanyProfileCacheTests(TestCase):
    def setUp(self):
        cache.clear()
        self.employer = make_employer()
        self.candidate = make_candidate()
        Application.objects.create(job=make_job(self.employer), candidate=self.candidate, cv="x.pdf")

    def test_company_edit_drops_applicant_cached_rows(self):
        candidate_applications(self.candidate)
        with self.assertNumQueries(0):
            candidate_applications(self.candidate)

        self.client.force_login(self.employer.user)
        self.client.post(
            reverse("company_profile_update"),
            {
                "company_name": "Carpathia Labs SRL",
                "company_website": "https://carpathia.example.com",
                "company_description": "We build software for logistics teams.",
            },
        )
        rows = candidate_applications(self.candidate)
        self.assertEqual(rows[0].job.employer.company_name, "Carpathia Labs SRL")
