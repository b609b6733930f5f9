import io
import re

from django.core.cache import cache
from django.core.exceptions import ValidationError
from django.core.files.base import ContentFile
from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import call_command
from django.test import TestCase
from django.urls import reverse
from pypdf import PdfReader, PdfWriter

from accounts.models import Profile, User
from jobs.models import Application, Job
from jobs.tests import make_candidate, make_employer, make_job

from .storage import (
    DOCX,
    MAX_CV_SIZE,
    cv_storage,
    generate_object_name,
    upload_cv,
    validate_cv_file,
    validate_logo_file,
)
from .viewer import CVViewError, CVViewer, clamp_zoom, outstanding_handles


def pdf_bytes(pages=2):
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=595, height=842)
    buf = io.BytesIO()
    writer.write(buf)
    return buf.getvalue()


class ValidationTests(TestCase):
    def test_accepts_pdf_doc_docx(self):
        validate_cv_file(SimpleUploadedFile("cv.pdf", b"x", content_type="application/pdf"))
        validate_cv_file(SimpleUploadedFile("cv.doc", b"x", content_type="application/msword"))
        validate_cv_file(SimpleUploadedFile("cv.docx", b"x", content_type=DOCX))

    def test_rejects_other_types(self):
        with self.assertRaisesMessage(ValidationError, "Only PDF, DOC or DOCX files are accepted."):
            validate_cv_file(SimpleUploadedFile("cv.png", b"x", content_type="image/png"))

    def test_rejects_mismatched_extension(self):
        with self.assertRaises(ValidationError):
            validate_cv_file(SimpleUploadedFile("cv.exe", b"x", content_type="application/pdf"))

    def test_size_limit(self):
        validate_cv_file(SimpleUploadedFile("cv.pdf", b"0" * MAX_CV_SIZE, content_type="application/pdf"))
        with self.assertRaisesMessage(ValidationError, "Maximum size is 5 MB."):
            validate_cv_file(SimpleUploadedFile("cv.pdf", b"0" * (MAX_CV_SIZE + 1), content_type="application/pdf"))

    def test_missing_file(self):
        with self.assertRaisesMessage(ValidationError, "Please attach your CV."):
            validate_cv_file(None)

    def test_logo_must_be_image(self):
        validate_logo_file(SimpleUploadedFile("logo.png", b"x", content_type="image/png"))
        with self.assertRaises(ValidationError):
            validate_logo_file(SimpleUploadedFile("logo.pdf", b"x", content_type="application/pdf"))


class ObjectNameTests(TestCase):
    def test_name_layout(self):
        name = generate_object_name("guest-applications", "My CV.PDF")
        self.assertRegex(name, r"^guest-applications/\d{13}-[0-9a-f]{10}\.pdf$")

    def test_names_do_not_collide(self):
        names = {generate_object_name("7", "cv.pdf") for _ in range(50)}
        self.assertEqual(len(names), 50)

    def test_upload_returns_stored_name(self):
        name = upload_cv(SimpleUploadedFile("cv.docx", b"x", content_type=DOCX), "42")
        self.assertTrue(re.match(r"^42/\d+-[0-9a-f]+\.docx$", name))
        self.assertTrue(cv_storage().exists(name))


class ViewerTests(TestCase):
    def setUp(self):
        self.name = cv_storage().save("viewer/cv.pdf", ContentFile(pdf_bytes(pages=3)))

    def test_open_close_twice_releases_handles(self):
        before = outstanding_handles()
        for _ in range(2):
            viewer = CVViewer(self.name)
            viewer.open()
            self.assertEqual(outstanding_handles(), before + 1)
            viewer.close()
            viewer.close()
            self.assertEqual(outstanding_handles(), before)

    def test_context_manager_releases_on_error(self):
        before = outstanding_handles()
        with self.assertRaises(CVViewError):
            with CVViewer(self.name) as viewer:
                viewer.render_page(10)
        self.assertEqual(outstanding_handles(), before)

    def test_render_single_page(self):
        with CVViewer(self.name) as viewer:
            self.assertEqual(viewer.page_count, 3)
            content = viewer.render_page(2)
        self.assertEqual(len(PdfReader(io.BytesIO(content)).pages), 1)

    def test_word_documents_are_not_previewed(self):
        name = cv_storage().save("viewer/cv.docx", ContentFile(b"docx"))
        with CVViewer(name) as viewer:
            self.assertTrue(viewer.is_word)
            self.assertEqual(viewer.page_count, 0)
            with self.assertRaises(CVViewError):
                viewer.render_page(1)

    def test_clamp_zoom(self):
        self.assertEqual(clamp_zoom("130"), 125)
        self.assertEqual(clamp_zoom("999"), 200)
        self.assertEqual(clamp_zoom(None), 100)


class CVAccessTests(TestCase):
    def setUp(self):
        cache.clear()
        self.employer = make_employer()
        self.job = make_job(self.employer)
        self.candidate = make_candidate()
        self.candidate.cv = cv_storage().save(f"{self.candidate.pk}/cv.pdf", ContentFile(pdf_bytes()))
        self.candidate.save()
        self.application = Application.objects.create(job=self.job, candidate=self.candidate, cv=self.candidate.cv.name)

    def test_job_owner_can_view_and_download(self):
        self.client.force_login(self.employer.user)
        resp = self.client.get(reverse("application_cv", args=[self.application.id]), {"page": "2"})
        self.assertEqual(resp.status_code, 200)
        self.assertContains(resp, "Page 2 of 2")
        self.assertContains(resp, reverse("application_cv_page", args=[self.application.id, 2]))

        page = self.client.get(reverse("application_cv_page", args=[self.application.id, 1]))
        self.assertEqual(page["Content-Type"], "application/pdf")

        download = self.client.get(reverse("application_cv_download", args=[self.application.id]))
        self.assertIn("attachment;", download["Content-Disposition"])
        self.assertEqual(download.content, cv_storage().open(self.candidate.cv.name).read())

    def test_other_employer_is_denied(self):
        other = make_employer("jobs@danube.ro", "Danube Metrics")
        self.client.force_login(other.user)
        resp = self.client.get(reverse("application_cv", args=[self.application.id]))
        self.assertEqual(resp.status_code, 403)

    def test_candidate_reads_own_cv(self):
        self.client.force_login(self.candidate.user)
        resp = self.client.get(reverse("my_cv"))
        self.assertContains(resp, "My CV")
        resp = self.client.get(reverse("application_cv", args=[self.application.id]))
        self.assertEqual(resp.status_code, 200)

    def test_anonymous_is_sent_to_login(self):
        resp = self.client.get(reverse("my_cv"))
        self.assertEqual(resp.status_code, 302)
        self.assertIn(reverse("login"), resp["Location"])

    def test_missing_page_is_404(self):
        self.client.force_login(self.employer.user)
        resp = self.client.get(reverse("application_cv_page", args=[self.application.id, 9]))
        self.assertEqual(resp.status_code, 404)

    def test_replacing_cv_keeps_file_used_by_application(self):
        old_name = self.candidate.cv.name
        self.client.force_login(self.candidate.user)
        self.client.post(
            reverse("candidate_profile_update"),
            {
                "full_name": "Ana Pop",
                "phone": "0722000111",
                "linkedin_url": "",
                "cv_file": SimpleUploadedFile("new.pdf", pdf_bytes(1), content_type="application/pdf"),
            },
        )
        profile = Profile.objects.get(pk=self.candidate.pk)
        self.assertNotEqual(profile.cv.name, old_name)
        self.assertTrue(cv_storage().exists(old_name))


class SeedCommandTests(TestCase):
    def test_seed_creates_demo_data(self):
        call_command(
            "seed_demo_data",
            "--employers", "2",
            "--candidates", "3",
            "--jobs-per-employer", "2",
            "--applications-per-candidate", "1",
            "--guest-applications", "2",
            stdout=io.StringIO(),
        )
        self.assertEqual(User.objects.filter(role=User.Role.EMPLOYER).count(), 2)
        self.assertEqual(Job.objects.count(), 4)
        self.assertEqual(Application.objects.filter(candidate__isnull=False).count(), 3)
        self.assertEqual(Application.objects.filter(candidate__isnull=True).count(), 2)
        for profile in Profile.objects.filter(role=User.Role.CANDIDATE):
            self.assertTrue(cv_storage().exists(profile.cv.name))
