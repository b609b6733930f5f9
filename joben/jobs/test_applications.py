from unittest import mock

from django.core.cache import cache
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase
from django.urls import reverse

from cvs.storage import GUEST_CV_PREFIX, cv_storage

from .applications import (
    DUPLICATE_CANDIDATE_MESSAGE,
    DUPLICATE_GUEST_MESSAGE,
    SubmissionState,
    submit_candidate_application,
    submit_guest_application,
)
from .forms import CandidateApplicationForm, GuestApplicationForm
from .models import Application, JobStatus
from .queries import employer_applications
from .tests import make_candidate, make_employer, make_job


def pdf_upload(name="cv.pdf", size=None):
    content = b"%PDF-1.4 demo" if size is None else b"0" * size
    return SimpleUploadedFile(name, content, content_type="application/pdf")


def guest_data(**overrides):
    data = {
        "first_name": "Ioana",
        "last_name": "Marin",
        "email": "Ioana.Marin@Example.com",
        "phone": "0722 123 456",
        "linkedin_url": "https://www.linkedin.com/in/ioana-marin",
        "cover_letter": "Five years of Django experience.",
        "accept_terms": "on",
    }
    data.update(overrides)
    return data


def guest_form(cv=None, **overrides):
    return GuestApplicationForm(guest_data(**overrides), {"cv": cv if cv is not None else pdf_upload()})


class GuestApplicationTests(TestCase):
    def setUp(self):
        cache.clear()
        self.employer = make_employer()
        self.job = make_job(self.employer)

    def test_valid_submission_creates_one_guest_row(self):
        result = submit_guest_application(self.job, guest_form())
        self.assertTrue(result.ok)
        self.assertEqual(
            result.trail,
            [
                SubmissionState.IDLE,
                SubmissionState.VALIDATING,
                SubmissionState.UPLOADING,
                SubmissionState.SUBMITTING,
                SubmissionState.SUCCESS,
            ],
        )

        app = Application.objects.get()
        self.assertIsNone(app.candidate_id)
        self.assertEqual(app.guest_name, "Ioana Marin")
        self.assertEqual(app.guest_email, "ioana.marin@example.com")
        self.assertEqual(app.guest_phone, "0722 123 456")
        self.assertEqual(app.guest_linkedin_url, "https://www.linkedin.com/in/ioana-marin")
        self.assertEqual(app.status, "submitted")
        self.assertTrue(app.cv.name.startswith(f"{GUEST_CV_PREFIX}/"))
        self.assertTrue(cv_storage().exists(app.cv.name))

    def test_duplicate_email_is_reported_as_duplicate(self):
        submit_guest_application(self.job, guest_form())
        result = submit_guest_application(self.job, guest_form(email="ioana.marin@example.com"))
        self.assertEqual(result.state, SubmissionState.DUPLICATE)
        self.assertEqual(result.message, DUPLICATE_GUEST_MESSAGE)
        self.assertEqual(Application.objects.count(), 1)

    def test_same_email_may_apply_to_another_job(self):
        other_job = make_job(self.employer, "Frontend Engineer (React)")
        submit_guest_application(self.job, guest_form())
        result = submit_guest_application(other_job, guest_form())
        self.assertTrue(result.ok)
        self.assertEqual(Application.objects.count(), 2)

    def test_invalid_cv_type_makes_no_storage_call(self):
        doc = SimpleUploadedFile("cv.txt", b"plain text", content_type="text/plain")
        with mock.patch("cvs.storage.cv_storage") as storage:
            result = submit_guest_application(self.job, guest_form(cv=doc))
        storage.assert_not_called()
        self.assertEqual(result.state, SubmissionState.INVALID)
        self.assertIn("Only PDF, DOC or DOCX files are accepted.", result.errors["cv"])
        self.assertFalse(Application.objects.exists())

    def test_oversized_cv_makes_no_storage_call(self):
        with mock.patch("cvs.storage.cv_storage") as storage:
            result = submit_guest_application(self.job, guest_form(cv=pdf_upload(size=5 * 1024 * 1024 + 1)))
        storage.assert_not_called()
        self.assertEqual(result.state, SubmissionState.INVALID)
        self.assertIn("The file is too large. Maximum size is 5 MB.", result.errors["cv"])

    def test_terms_must_be_accepted(self):
        result = submit_guest_application(self.job, guest_form(accept_terms=""))
        self.assertEqual(result.state, SubmissionState.INVALID)
        self.assertIn("accept_terms", result.errors)

    def test_cover_letter_limit(self):
        result = submit_guest_application(self.job, guest_form(cover_letter="x" * 301))
        self.assertEqual(result.state, SubmissionState.INVALID)
        self.assertIn("cover_letter", result.errors)

    def test_closed_job_refuses_applications(self):
        self.job.status = JobStatus.CLOSED
        self.job.save()
        result = submit_guest_application(self.job, guest_form())
        self.assertEqual(result.state, SubmissionState.INVALID)
        self.assertFalse(Application.objects.exists())

    def test_storage_failure_is_reported(self):
        with mock.patch("jobs.applications.upload_cv", side_effect=OSError("bucket unavailable")):
            result = submit_guest_application(self.job, guest_form())
        self.assertEqual(result.state, SubmissionState.FAILED)
        self.assertIn("bucket unavailable", result.message)
        self.assertFalse(Application.objects.exists())

    def test_success_refreshes_employer_list(self):
        self.assertEqual(employer_applications(self.employer), [])
        submit_guest_application(self.job, guest_form())
        self.assertEqual(len(employer_applications(self.employer)), 1)


class GuestApplicationViewTests(TestCase):
    def setUp(self):
        cache.clear()
        self.job = make_job(make_employer())
        self.url = reverse("apply_guest", args=[self.job.id])

    def _post(self, **overrides):
        return self.client.post(self.url, {**guest_data(**overrides), "cv": pdf_upload()})

    def test_success_redirects_back_to_job(self):
        resp = self._post()
        self.assertRedirects(resp, reverse("job_detail", args=[self.job.id]))
        self.assertEqual(Application.objects.count(), 1)

    def test_duplicate_shows_warning(self):
        self._post()
        resp = self.client.post(self.url, {**guest_data(), "cv": pdf_upload()}, follow=True)
        self.assertContains(resp, DUPLICATE_GUEST_MESSAGE)
        self.assertEqual(Application.objects.count(), 1)

    def test_invalid_form_rerenders_with_errors(self):
        resp = self._post(first_name="I", phone="123")
        self.assertEqual(resp.status_code, 400)
        self.assertContains(resp, "First name must be at least 2 characters.", status_code=400)
        self.assertContains(resp, "Phone number must be at least 10 characters.", status_code=400)

    def test_signed_in_employer_cannot_apply(self):
        employer = make_employer("jobs@danube.ro", "Danube Metrics")
        self.client.force_login(employer.user)
        resp = self._post()
        self.assertRedirects(resp, reverse("job_detail", args=[self.job.id]))
        self.assertFalse(Application.objects.exists())


class CandidateApplicationTests(TestCase):
    def setUp(self):
        cache.clear()
        self.employer = make_employer()
        self.job = make_job(self.employer)
        self.candidate = make_candidate()

    def _with_cv(self):
        self.candidate.cv = cv_storage().save(f"{self.candidate.pk}/cv.pdf", pdf_upload())
        self.candidate.save()

    def _form(self, **data):
        return CandidateApplicationForm({"accept_terms": "on", **data})

    def test_profile_without_cv_is_rejected_before_storage(self):
        with mock.patch("cvs.storage.cv_storage") as storage:
            result = submit_candidate_application(self.job, self.candidate, self._form())
        storage.assert_not_called()
        self.assertEqual(result.state, SubmissionState.INVALID)
        self.assertIn("cv", result.errors)
        self.assertFalse(Application.objects.exists())

    def test_valid_submission_uses_profile_cv(self):
        self._with_cv()
        result = submit_candidate_application(self.job, self.candidate, self._form(cover_letter="Hello"))
        self.assertTrue(result.ok)
        app = Application.objects.get()
        self.assertEqual(app.candidate_id, self.candidate.pk)
        self.assertEqual(app.cv.name, self.candidate.cv.name)
        self.assertIsNone(app.guest_email)
        self.assertEqual(app.applicant_email, "ana@example.com")

    def test_second_submission_is_duplicate(self):
        self._with_cv()
        submit_candidate_application(self.job, self.candidate, self._form())
        result = submit_candidate_application(self.job, self.candidate, self._form())
        self.assertEqual(result.state, SubmissionState.DUPLICATE)
        self.assertEqual(result.message, DUPLICATE_CANDIDATE_MESSAGE)
        self.assertEqual(Application.objects.count(), 1)

    def test_employer_profile_is_rejected(self):
        result = submit_candidate_application(self.job, self.employer, self._form())
        self.assertEqual(result.state, SubmissionState.INVALID)

    def test_view_redirects_to_profile_when_cv_missing(self):
        self.client.force_login(self.candidate.user)
        resp = self.client.post(reverse("apply_candidate", args=[self.job.id]), {"accept_terms": "on"})
        expected = f"{reverse('candidate_dashboard')}?next={reverse('job_detail', args=[self.job.id])}"
        self.assertRedirects(resp, expected)
        self.assertFalse(Application.objects.exists())

    def test_view_success_goes_to_dashboard(self):
        self._with_cv()
        self.client.force_login(self.candidate.user)
        resp = self.client.post(reverse("apply_candidate", args=[self.job.id]), {"accept_terms": "on"})
        self.assertRedirects(resp, reverse("candidate_dashboard"))
        dashboard = self.client.get(reverse("candidate_dashboard"))
        self.assertContains(dashboard, self.job.title)
        self.assertContains(dashboard, "My applications (1)")

    def test_view_duplicate_warns_on_job_page(self):
        self._with_cv()
        self.client.force_login(self.candidate.user)
        url = reverse("apply_candidate", args=[self.job.id])
        self.client.post(url, {"accept_terms": "on"})
        resp = self.client.post(url, {"accept_terms": "on"}, follow=True)
        self.assertContains(resp, DUPLICATE_CANDIDATE_MESSAGE)
        self.assertEqual(Application.objects.count(), 1)
