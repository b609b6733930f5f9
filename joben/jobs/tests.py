from datetime import timedelta

from django.conf import settings
from django.core.cache import cache
from django.test import TestCase, override_settings
from django.test.utils import CaptureQueriesContext
from django.db import connection
from django.urls import path, reverse
from django.utils import timezone
from django.utils.datastructures import MultiValueDict
from django.http import QueryDict

from accounts.models import User
from accounts.session import ensure_profile
from joben.seo import job_posting_schema

from .applications import update_application_status
from .models import Application, ApplicationStatus, Job, JobStatus, SavedJob
from .queries import JobFilters, employer_stats, search_jobs
from .utils import format_salary, is_unique_violation, salary_description_line

LONG_DESCRIPTION = (
    "We are looking for an engineer who enjoys building reliable web services. "
    "You will design APIs, review code, mentor colleagues and keep our PostgreSQL "
    "databases healthy while shipping features every week."
)


def make_employer(email="hr@carpathia.ro", company="Carpathia Labs"):
    user = User.objects.create_user(
        username=email, email=email, password="secret1", role=User.Role.EMPLOYER, company_name=company
    )
    return ensure_profile(user).profile


def make_candidate(email="ana@example.com", full_name="Ana Pop", phone="0722000111"):
    user = User.objects.create_user(username=email, email=email, password="secret1", full_name=full_name)
    profile = ensure_profile(user).profile
    profile.phone = phone
    profile.save()
    return profile


def make_job(employer, title="Backend Developer (Python)", **kwargs):
    data = {
        "company_name": employer.company_name,
        "description": LONG_DESCRIPTION,
        "location": "Remote",
        "job_type": "remote",
        "seniority": "mid",
    }
    tech = kwargs.pop("tech", None)
    data.update(kwargs)
    job = Job(employer=employer, title=title, **data)
    if tech:
        job.set_tech_stack(tech)
    job.save()
    return job


class JobSearchTests(TestCase):
    def setUp(self):
        cache.clear()
        self.employer = make_employer()
        self.backend = make_job(self.employer, "Backend Developer (Python)", tech=["Python", "PostgreSQL"])
        self.frontend = make_job(
            self.employer,
            "Frontend Engineer (React)",
            location="Cluj-Napoca",
            job_type="hybrid",
            seniority="senior",
            tech=["React", "TypeScript"],
        )
        self.paused = make_job(self.employer, "Paused Data Engineer", status=JobStatus.PAUSED)

    def test_search_by_title(self):
        resp = self.client.get(reverse("job_list"), {"q": "backend"})
        self.assertContains(resp, "Backend Developer (Python)")
        self.assertNotContains(resp, "Frontend Engineer (React)")

    def test_search_matches_company_name(self):
        other = make_employer("jobs@danube.ro", "Danube Metrics")
        make_job(other, "Site Reliability Engineer")
        page = search_jobs(JobFilters(search="danube"))
        self.assertEqual([job.title for job in page.jobs], ["Site Reliability Engineer"])

    def test_inactive_jobs_are_hidden(self):
        resp = self.client.get(reverse("job_list"))
        self.assertNotContains(resp, "Paused Data Engineer")

    def test_filter_by_location(self):
        resp = self.client.get(reverse("job_list"), {"location": "Cluj-Napoca"})
        self.assertContains(resp, "Frontend Engineer (React)")
        self.assertNotContains(resp, "Backend Developer (Python)")

    def test_location_all_means_no_filter(self):
        page = search_jobs(JobFilters(location="all"))
        self.assertEqual(page.total_count, 2)

    def test_filter_by_job_type_and_seniority(self):
        resp = self.client.get(reverse("job_list"), {"job_type": "hybrid", "seniority": "senior"})
        self.assertContains(resp, "Frontend Engineer (React)")
        self.assertNotContains(resp, "Backend Developer (Python)")

    def test_filter_by_tech_stack_matches_whole_tags(self):
        make_job(self.employer, "Mobile Developer (React Native)", tech=["React Native"])
        page = search_jobs(JobFilters(tech_stack=("React",)))
        self.assertEqual([job.title for job in page.jobs], ["Frontend Engineer (React)"])

    def test_tech_stack_filter_is_any_of(self):
        page = search_jobs(JobFilters(tech_stack=("React", "PostgreSQL")))
        self.assertEqual(page.total_count, 2)

    def test_unknown_filter_values_are_dropped(self):
        params = QueryDict(mutable=True)
        params.setlist("job_type", ["remote", "freelance"])
        params.setlist("tech", ["Python", "COBOL"])
        filters = JobFilters.from_querydict(params)
        self.assertEqual(filters.job_types, ("remote",))
        self.assertEqual(filters.tech_stack, ("Python",))

    def test_empty_filters(self):
        self.assertTrue(JobFilters.from_querydict(MultiValueDict()).is_empty)
        self.assertFalse(JobFilters(search="go").is_empty)


class JobPaginationCacheTests(TestCase):
    def setUp(self):
        cache.clear()
        self.employer = make_employer()
        for i in range(45):
            make_job(self.employer, f"Remote Python Engineer #{i:02d}", location="Remote")
        make_job(self.employer, "Iasi Office Engineer", location="Iași", job_type="onsite")

    def test_45_remote_jobs_give_three_pages(self):
        page = search_jobs(JobFilters(location="Remote"), page=1, page_size=20)
        self.assertEqual(len(page.jobs), 20)
        self.assertEqual(page.total_count, 45)
        self.assertEqual(page.total_pages, 3)
        self.assertTrue(page.has_next)
        self.assertFalse(page.has_previous)

        last = search_jobs(JobFilters(location="Remote"), page=3, page_size=20)
        self.assertEqual(len(last.jobs), 5)
        self.assertFalse(last.has_next)

    def test_repeated_query_is_served_from_cache(self):
        filters = JobFilters(location="Remote")
        search_jobs(filters)
        with self.assertNumQueries(0):
            search_jobs(filters)

    def test_changing_any_filter_is_a_cache_miss(self):
        base = JobFilters(location="Remote")
        search_jobs(base)
        variants = [
            JobFilters(location="Iași"),
            JobFilters(location="Remote", job_types=("remote",)),
            JobFilters(location="Remote", seniorities=("mid",)),
            JobFilters(location="Remote", tech_stack=("Go",)),
            JobFilters(location="Remote", search="python"),
        ]
        for filters in variants:
            with CaptureQueriesContext(connection) as ctx:
                page = search_jobs(filters)
            self.assertGreater(len(ctx.captured_queries), 0, filters)
            self.assertEqual(page.total_pages, -(-page.total_count // page.page_size))

    def test_new_job_invalidates_cached_lists(self):
        filters = JobFilters(location="Remote")
        self.assertEqual(search_jobs(filters).total_count, 45)

        self.client.force_login(self.employer.user)
        resp = self.client.post(
            reverse("post_job"),
            {
                "title": "Remote Go Engineer",
                "company_name": "Carpathia Labs",
                "location": "Remote",
                "job_type": "remote",
                "seniority": "senior",
                "description": LONG_DESCRIPTION,
                "accept_terms": "on",
            },
        )
        self.assertRedirects(resp, reverse("employer_dashboard"))
        self.assertEqual(search_jobs(filters).total_count, 46)

    def test_list_page_links(self):
        resp = self.client.get(reverse("job_list"), {"location": "Remote", "page": "2"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.context["page_obj"].page, 2)
        self.assertContains(resp, "location=Remote&page=3")


class JobDetailTests(TestCase):
    def setUp(self):
        cache.clear()
        self.employer = make_employer()
        self.job = make_job(
            self.employer,
            salary_min=8000,
            salary_max=12000,
            salary_public=True,
            tech=["Python"],
        )

    def test_detail_renders_guest_form_and_structured_data(self):
        resp = self.client.get(reverse("job_detail", args=[self.job.id]))
        self.assertContains(resp, "Quick apply")
        self.assertContains(resp, "8.000 - 12.000 RON")
        self.assertContains(resp, '"@type": "JobPosting"')
        self.assertContains(resp, f'<link rel="canonical" href="{settings.SITE_BASE_URL}/jobs/{self.job.id}/">')

    def test_employer_sees_no_apply_form(self):
        self.client.force_login(self.employer.user)
        resp = self.client.get(reverse("job_detail", args=[self.job.id]))
        self.assertNotContains(resp, "Quick apply")
        self.assertContains(resp, "Employers cannot apply to jobs.")

    def test_closed_job_is_noindex(self):
        Job.objects.filter(pk=self.job.pk).update(status=JobStatus.CLOSED)
        resp = self.client.get(reverse("job_detail", args=[self.job.id]))
        self.assertContains(resp, "Applications closed")
        self.assertContains(resp, 'content="noindex, nofollow"')

    def test_missing_job_is_404(self):
        resp = self.client.get(reverse("job_detail", args=[999999]))
        self.assertEqual(resp.status_code, 404)


class JobPostingSchemaTests(TestCase):
    def setUp(self):
        cache.clear()
        self.employer = make_employer()

    def test_salary_only_when_public_and_complete(self):
        job = make_job(self.employer, salary_min=5000, salary_max=7000, salary_public=False)
        self.assertNotIn("baseSalary", job_posting_schema(job))

        job.salary_public = True
        data = job_posting_schema(job)
        self.assertEqual(data["baseSalary"]["currency"], "RON")
        self.assertEqual(data["baseSalary"]["value"]["minValue"], 5000)

    def test_remote_jobs_are_telecommute(self):
        job = make_job(self.employer, job_type="remote", seniority="senior")
        data = job_posting_schema(job)
        self.assertEqual(data["jobLocationType"], "TELECOMMUTE")
        self.assertEqual(data["experienceRequirements"]["monthsOfExperience"], 60)


class SitemapTests(TestCase):
    def setUp(self):
        cache.clear()
        employer = make_employer()
        self.active = make_job(employer, "Active Backend Engineer")
        self.closed = make_job(employer, "Closed Backend Engineer", status=JobStatus.CLOSED)

    def test_sitemap_lists_static_pages_and_active_jobs(self):
        resp = self.client.get("/sitemap.xml")
        self.assertEqual(resp.status_code, 200)
        base = settings.SITE_BASE_URL
        self.assertContains(resp, f"<loc>{base}/</loc>")
        self.assertContains(resp, f"<loc>{base}/about/</loc>")
        self.assertContains(resp, f"<loc>{base}/jobs/{self.active.id}/</loc>")
        self.assertNotContains(resp, f"<loc>{base}/jobs/{self.closed.id}/</loc>")


class PostJobTests(TestCase):
    def setUp(self):
        cache.clear()
        self.employer = make_employer()
        self.client.force_login(self.employer.user)

    def _data(self, **overrides):
        data = {
            "title": "Senior Django Developer",
            "company_name": "Carpathia Labs",
            "location": "București",
            "job_type": "hybrid",
            "seniority": "senior",
            "salary_min": "9000",
            "salary_max": "14000",
            "salary_public": "on",
            "salary_in_description": "on",
            "description": LONG_DESCRIPTION,
            "tech_stack": ["Python", "PostgreSQL"],
            "accept_terms": "on",
        }
        data.update(overrides)
        return data

    def test_create_job(self):
        resp = self.client.post(reverse("post_job"), self._data())
        self.assertRedirects(resp, reverse("employer_dashboard"))
        job = Job.objects.get(title="Senior Django Developer")
        self.assertEqual(job.employer_id, self.employer.pk)
        self.assertEqual(job.tech_stack, "Python,PostgreSQL")
        self.assertEqual(job.status, JobStatus.ACTIVE)
        self.assertTrue(job.description.endswith(salary_description_line(9000, 14000)))
        self.assertEqual(job.requirements, job.description)
        self.assertAlmostEqual((job.expires_at - job.created_at).total_seconds(), 30 * 24 * 3600, delta=60)

    def test_validation_errors(self):
        resp = self.client.post(
            reverse("post_job"),
            self._data(title="Dev", description="Too short", salary_max="", accept_terms=""),
        )
        self.assertEqual(resp.status_code, 200)
        self.assertContains(resp, "Title must be at least 10 characters.")
        self.assertContains(resp, "Description must be at least 150 characters.")
        self.assertContains(resp, "Enter both the minimum and the maximum salary, or neither.")
        self.assertContains(resp, "You must accept the terms and conditions.")
        self.assertFalse(Job.objects.exists())

    def test_salary_max_below_min(self):
        resp = self.client.post(reverse("post_job"), self._data(salary_min="9000", salary_max="5000"))
        self.assertContains(resp, "Maximum salary must be greater than or equal to the minimum salary.")

    def test_edit_other_employers_job_is_refused(self):
        other = make_employer("jobs@danube.ro", "Danube Metrics")
        job = make_job(other)
        resp = self.client.post(reverse("edit_job", args=[job.id]), self._data(title="Hijacked job title"))
        self.assertRedirects(resp, reverse("employer_dashboard"))
        job.refresh_from_db()
        self.assertEqual(job.title, "Backend Developer (Python)")

    def test_edit_own_job_without_terms(self):
        job = make_job(self.employer)
        data = self._data(title="Backend Developer (Go)", salary_in_description="")
        data.pop("accept_terms")
        resp = self.client.post(reverse("edit_job", args=[job.id]), data)
        self.assertRedirects(resp, reverse("employer_dashboard"))
        job.refresh_from_db()
        self.assertEqual(job.title, "Backend Developer (Go)")


class EmployerJobManagementTests(TestCase):
    def setUp(self):
        cache.clear()
        self.employer = make_employer()
        self.other = make_employer("jobs@danube.ro", "Danube Metrics")
        self.job = make_job(self.employer)
        self.foreign_job = make_job(self.other, "Foreign Backend Engineer")
        self.client.force_login(self.employer.user)

    def test_pause_job(self):
        resp = self.client.post(reverse("job_status_update", args=[self.job.id]), {"status": "paused"}, follow=True)
        self.assertContains(resp, "Job paused.")
        self.job.refresh_from_db()
        self.assertEqual(self.job.status, JobStatus.PAUSED)

    def test_status_change_bumps_updated_at(self):
        stale = timezone.now() - timedelta(days=3)
        Job.objects.filter(pk=self.job.pk).update(updated_at=stale)
        self.client.post(reverse("job_status_update", args=[self.job.id]), {"status": "paused"})
        self.job.refresh_from_db()
        self.assertGreater(self.job.updated_at, stale + timedelta(days=2))

    def test_status_change_is_scoped_to_owner(self):
        resp = self.client.post(reverse("job_status_update", args=[self.foreign_job.id]), {"status": "closed"})
        self.assertEqual(resp.status_code, 404)
        self.foreign_job.refresh_from_db()
        self.assertEqual(self.foreign_job.status, JobStatus.ACTIVE)

    def test_delete_job_cascades_applications(self):
        Application.objects.create(
            job=self.job, guest_name="Guest One", guest_email="g@example.com", guest_phone="0722000111", cv="x.pdf"
        )
        resp = self.client.post(reverse("job_delete", args=[self.job.id]))
        self.assertRedirects(resp, reverse("employer_dashboard"))
        self.assertFalse(Job.objects.filter(pk=self.job.pk).exists())
        self.assertFalse(Application.objects.exists())

    def test_delete_foreign_job_is_404(self):
        resp = self.client.post(reverse("job_delete", args=[self.foreign_job.id]))
        self.assertEqual(resp.status_code, 404)
        self.assertTrue(Job.objects.filter(pk=self.foreign_job.pk).exists())

    def test_dashboard_shows_stats_and_applicants(self):
        candidate = make_candidate()
        Application.objects.create(job=self.job, candidate=candidate, cv="1/cv.pdf", status=ApplicationStatus.INTERVIEW)
        Application.objects.create(
            job=self.job, guest_name="Guest One", guest_email="g@example.com", guest_phone="0733000111", cv="g.pdf"
        )
        stats = employer_stats(self.employer)
        self.assertEqual(stats, {"total_jobs": 1, "active_jobs": 1, "total_applications": 2, "interviews": 1})

        resp = self.client.get(reverse("employer_dashboard"))
        self.assertContains(resp, "Ana Pop")
        self.assertContains(resp, "Guest One")
        self.assertContains(resp, "0733000111")


class ApplicationStatusTests(TestCase):
    def setUp(self):
        cache.clear()
        self.employer = make_employer()
        self.job = make_job(self.employer)
        self.application = Application.objects.create(
            job=self.job, guest_name="Guest One", guest_email="g@example.com", guest_phone="0722000111", cv="g.pdf"
        )

    def test_interview_does_not_set_viewed_at(self):
        update_application_status(self.application, ApplicationStatus.INTERVIEW)
        self.application.refresh_from_db()
        self.assertEqual(self.application.status, ApplicationStatus.INTERVIEW)
        self.assertIsNone(self.application.viewed_at)

    def test_viewed_sets_viewed_at(self):
        update_application_status(self.application, ApplicationStatus.VIEWED)
        self.application.refresh_from_db()
        self.assertIsNotNone(self.application.viewed_at)

    def test_any_status_can_follow_any_other(self):
        update_application_status(self.application, ApplicationStatus.REJECTED)
        update_application_status(self.application, ApplicationStatus.SUBMITTED)
        self.application.refresh_from_db()
        self.assertEqual(self.application.status, ApplicationStatus.SUBMITTED)

    def test_unknown_status_raises(self):
        with self.assertRaises(ValueError):
            update_application_status(self.application, "hired")

    def test_view_is_scoped_to_job_owner(self):
        other = make_employer("jobs@danube.ro", "Danube Metrics")
        self.client.force_login(other.user)
        resp = self.client.post(
            reverse("application_status_update", args=[self.application.id]), {"status": "interview"}
        )
        self.assertEqual(resp.status_code, 404)

    def test_view_updates_status(self):
        self.client.force_login(self.employer.user)
        resp = self.client.post(
            reverse("application_status_update", args=[self.application.id]), {"status": "interview"}
        )
        self.assertRedirects(resp, reverse("employer_dashboard"))
        self.application.refresh_from_db()
        self.assertEqual(self.application.status, ApplicationStatus.INTERVIEW)
        self.assertIsNone(self.application.viewed_at)


class SavedJobTests(TestCase):
    def setUp(self):
        cache.clear()
        self.job = make_job(make_employer())
        self.candidate = make_candidate()
        self.client.force_login(self.candidate.user)

    def test_toggle_saved_job(self):
        url = reverse("toggle_saved_job", args=[self.job.id])
        self.client.post(url)
        self.assertTrue(SavedJob.objects.filter(user=self.candidate, job=self.job).exists())
        self.client.post(url)
        self.assertFalse(SavedJob.objects.filter(user=self.candidate, job=self.job).exists())

    def test_saved_jobs_listed_on_dashboard(self):
        SavedJob.objects.create(user=self.candidate, job=self.job)
        resp = self.client.get(reverse("candidate_dashboard"))
        self.assertContains(resp, "Saved jobs (1)")
        self.assertContains(resp, self.job.title)


class CompanyPageTests(TestCase):
    def setUp(self):
        cache.clear()
        self.employer = make_employer()
        make_job(self.employer, "Open Backend Engineer")
        make_job(self.employer, "Closed Backend Engineer", status=JobStatus.CLOSED)

    def test_company_page_lists_active_jobs(self):
        resp = self.client.get(reverse("company_profile", args=[self.employer.pk]))
        self.assertContains(resp, "Carpathia Labs")
        self.assertContains(resp, "Open Backend Engineer")
        self.assertNotContains(resp, "Closed Backend Engineer")

    def test_candidate_id_is_not_a_company(self):
        candidate = make_candidate()
        resp = self.client.get(reverse("company_profile", args=[candidate.pk]))
        self.assertEqual(resp.status_code, 404)


class UtilsTests(TestCase):
    def test_format_salary(self):
        self.assertEqual(format_salary(None, None), "Salary not disclosed")
        self.assertEqual(format_salary(5000, 7500), "5.000 - 7.500 RON")
        self.assertEqual(format_salary(5000, None), "From 5.000 RON")
        self.assertEqual(format_salary(None, 7500), "Up to 7.500 RON")

    def test_is_unique_violation_only_for_integrity_errors(self):
        self.assertFalse(is_unique_violation(ValueError("unique constraint")))


class StaticPagesTests(TestCase):
    def setUp(self):
        cache.clear()

    def test_pages_render(self):
        for name in ["home", "about", "contact", "privacy", "terms"]:
            resp = self.client.get(reverse(name))
            self.assertEqual(resp.status_code, 200, name)

    def test_about_has_faq_schema(self):
        resp = self.client.get(reverse("about"))
        self.assertContains(resp, '"@type": "FAQPage"')
        self.assertContains(resp, "About us | Joben.eu")


def _broken_view(request):
    raise RuntimeError("template context exploded")


urlpatterns = [path("broken/", _broken_view)]
handler500 = "joben.views.server_error"


@override_settings(ROOT_URLCONF=__name__)
class ServerErrorPageTests(TestCase):
    def test_unhandled_error_renders_recovery_page(self):
        self.client.raise_request_exception = False
        resp = self.client.get("/broken/")
        self.assertEqual(resp.status_code, 500)
        self.assertContains(resp, "Something went wrong", status_code=500)
        self.assertContains(resp, '<a class="btn" href="/broken/">Reload page</a>', status_code=500, html=True)
        self.assertContains(resp, '<a href="/">Go home</a>', status_code=500, html=True)
