import logging

from django.contrib import messages
from django.db import DatabaseError
from django.http import Http404
from django.shortcuts import render, redirect, get_object_or_404
from django.urls import reverse
from django.utils import timezone
from django.utils.http import url_has_allowed_host_and_scheme
from django.views.decorators.http import require_http_methods, require_POST

from accounts.decorators import candidate_required, company_required
from accounts.forms import CandidateProfileForm, CompanyProfileForm
from accounts.session import current_profile
from joben.seo import (
    PageMeta,
    breadcrumb_schema,
    howto_schema,
    job_posting_schema,
    organization_schema,
    website_schema,
)

from .applications import SubmissionState, submit_candidate_application, submit_guest_application, update_application_status
from .constants import LOCATIONS, TECH_STACK_OPTIONS
from .forms import ApplicationStatusForm, CandidateApplicationForm, GuestApplicationForm, JobForm, JobStatusForm
from .models import Application, ApplicationStatus, Job, JobStatus, JobType, SavedJob, Seniority
from .queries import (
    JobFilters,
    candidate_applications,
    employer_applications,
    employer_jobs,
    employer_stats,
    get_company,
    invalidate_applications,
    invalidate_employer_jobs,
    latest_jobs,
    saved_job_ids,
    saved_jobs,
    search_jobs,
)
from .utils import truncate_text

logger = logging.getLogger(__name__)

JOB_STATUS_MESSAGES = {
    JobStatus.ACTIVE: "Job activated.",
    JobStatus.PAUSED: "Job paused.",
    JobStatus.CLOSED: "Job closed.",
}

APPLY_STEPS = [
    ("Find a job", "Search and filter jobs by location, type, seniority and tech stack."),
    ("Fill in your details", "Name, email, phone and optionally your LinkedIn profile."),
    ("Attach your CV", "PDF, DOC or DOCX up to 5 MB."),
    ("Send", "Your application reaches the employer instantly."),
]


def _safe_int(v):
    try:
        if v is None or v == "":
            return None
        return int(v)
    except (TypeError, ValueError):
        return None


def _safe_next_param(request) -> str:
    next_url = request.GET.get("next") or ""
    if next_url and url_has_allowed_host_and_scheme(next_url, allowed_hosts={request.get_host()}):
        return next_url
    return ""


def _safe_next(request):
    next_url = request.POST.get("next") or request.GET.get("next") or request.META.get("HTTP_REFERER")
    if next_url and not url_has_allowed_host_and_scheme(next_url, allowed_hosts={request.get_host()}):
        return None
    return next_url


# -----------------------------
# Public pages
# -----------------------------
def home(request):
    return render(
        request,
        "jobs/home.html",
        {
            "latest_jobs": latest_jobs(limit=6),
            "locations": LOCATIONS,
            "tech_options": TECH_STACK_OPTIONS,
            "seo": PageMeta(
                path="/",
                structured_data=[
                    organization_schema(),
                    website_schema(),
                    howto_schema("How to apply to a job on Joben.eu", APPLY_STEPS),
                ],
            ),
        },
    )


def job_list(request):
    filters = JobFilters.from_querydict(request.GET)
    page = _safe_int(request.GET.get("page")) or 1
    try:
        page_obj = search_jobs(filters, page=page)
    except DatabaseError as exc:
        logger.exception("Job search failed: filters=%s", filters)
        messages.error(request, f"Could not load jobs: {exc}")
        page_obj = None

    jobs = page_obj.jobs if page_obj else []
    query = request.GET.copy()
    query.pop("page", None)

    ctx = {
        "page_obj": page_obj,
        "jobs": jobs,
        "filters": filters,
        "querystring": query.urlencode(),
        "locations": LOCATIONS,
        "tech_options": TECH_STACK_OPTIONS,
        "job_type_choices": JobType.choices,
        "seniority_choices": Seniority.choices,
        "saved_job_ids": saved_job_ids(current_profile(request), [job.id for job in jobs]),
        "seo": PageMeta(
            title="Jobs",
            description="Remote, hybrid and on-site jobs in Romania. Filter by city, seniority and tech stack.",
            path=reverse("job_list"),
            structured_data=[breadcrumb_schema([("Home", "/"), ("Jobs", reverse("job_list"))])],
        ),
    }
    return render(request, "jobs/job_list.html", ctx)


def _job_detail_context(request, job, guest_form=None, candidate_form=None):
    profile = current_profile(request)
    is_saved = False
    if profile is not None and profile.is_candidate:
        is_saved = SavedJob.objects.filter(job=job, user=profile).exists()
    detail_path = reverse("job_detail", args=[job.id])
    return {
        "job": job,
        "profile": profile,
        "is_saved": is_saved,
        "can_apply": job.is_active and (profile is None or profile.is_candidate),
        "missing_fields": profile.missing_candidate_fields if profile is not None and profile.is_candidate else [],
        "guest_form": guest_form or GuestApplicationForm(),
        "candidate_form": candidate_form or CandidateApplicationForm(),
        "seo": PageMeta(
            title=f"{job.title} - {job.company_name}",
            description=truncate_text(job.description, 155),
            path=detail_path,
            og_type="article",
            noindex=not job.is_active,
            structured_data=[
                job_posting_schema(job),
                breadcrumb_schema([("Home", "/"), ("Jobs", reverse("job_list")), (job.title, detail_path)]),
            ],
        ),
    }


def job_detail(request, job_id):
    job = get_object_or_404(Job.objects.select_related("employer"), id=job_id)
    return render(request, "jobs/job_detail.html", _job_detail_context(request, job))


def company_profile(request, company_id):
    company, jobs = get_company(company_id)
    if company is None:
        raise Http404("Company not found")
    path = reverse("company_profile", args=[company.pk])
    return render(
        request,
        "jobs/company_profile.html",
        {
            "company": company,
            "jobs": jobs,
            "seo": PageMeta(
                title=company.company_name or "Company",
                description=truncate_text(company.company_description, 155) or f"Jobs at {company.company_name}",
                path=path,
                structured_data=[breadcrumb_schema([("Home", "/"), (company.company_name, path)])],
            ),
        },
    )


# -----------------------------
# Applications
# -----------------------------
@require_POST
def apply_guest(request, job_id):
    job = get_object_or_404(Job.objects.select_related("employer"), id=job_id)
    profile = current_profile(request)
    if profile is not None:
        if profile.is_employer:
            messages.error(request, "Employers cannot apply to jobs.")
        else:
            messages.info(request, "You are signed in. Apply with your account instead.")
        return redirect("job_detail", job_id=job.id)

    form = GuestApplicationForm(request.POST, request.FILES)
    result = submit_guest_application(job, form)
    if result.ok:
        messages.success(request, result.message)
        return redirect("job_detail", job_id=job.id)
    if result.state == SubmissionState.DUPLICATE:
        messages.warning(request, result.message)
        return redirect("job_detail", job_id=job.id)

    messages.error(request, result.message)
    status = 400 if result.state == SubmissionState.INVALID else 200
    return render(request, "jobs/job_detail.html", _job_detail_context(request, job, guest_form=form), status=status)


@candidate_required
@require_POST
def apply_candidate(request, job_id):
    job = get_object_or_404(Job.objects.select_related("employer"), id=job_id)
    profile = current_profile(request)

    missing = [field for field in profile.missing_candidate_fields if field != "CV"]
    if missing:
        messages.info(request, f"Complete your profile before applying: {', '.join(missing)}.")
        return redirect(f"{reverse('candidate_dashboard')}?next={reverse('job_detail', args=[job.id])}")

    form = CandidateApplicationForm(request.POST)
    result = submit_candidate_application(job, profile, form)
    if result.ok:
        messages.success(request, result.message)
        return redirect("candidate_dashboard")
    if result.state == SubmissionState.DUPLICATE:
        messages.warning(request, result.message)
        return redirect("job_detail", job_id=job.id)
    if "cv" in result.errors:
        messages.info(request, result.message)
        return redirect(f"{reverse('candidate_dashboard')}?next={reverse('job_detail', args=[job.id])}")

    messages.error(request, result.message)
    return render(
        request,
        "jobs/job_detail.html",
        _job_detail_context(request, job, candidate_form=form),
        status=400 if result.state == SubmissionState.INVALID else 200,
    )


@candidate_required
@require_POST
def toggle_saved_job(request, job_id: int):
    profile = current_profile(request)
    job = get_object_or_404(Job, id=job_id)
    obj, created = SavedJob.objects.get_or_create(job=job, user=profile)
    if not created:
        obj.delete()
        messages.info(request, "Removed from saved jobs.")
    else:
        messages.success(request, "Job saved.")
    logger.info("Saved job toggled: job_id=%s user_id=%s saved=%s", job.id, profile.pk, created)
    return redirect(_safe_next(request) or "candidate_dashboard")


# -----------------------------
# Dashboards
# -----------------------------
@candidate_required
def candidate_dashboard(request):
    profile = current_profile(request)
    applications = candidate_applications(profile)
    return render(
        request,
        "jobs/candidate_dashboard.html",
        {
            "profile": profile,
            "applications": applications,
            "saved_jobs": saved_jobs(profile),
            "profile_form": CandidateProfileForm(instance=profile),
            "missing_fields": profile.missing_candidate_fields,
            "next": _safe_next_param(request),
            "seo": PageMeta(title="My dashboard", noindex=True),
        },
    )


@company_required
def employer_dashboard(request):
    profile = current_profile(request)
    jobs = employer_jobs(profile)
    applications = employer_applications(profile)
    job_filter = _safe_int(request.GET.get("job"))
    if job_filter:
        applications = [app for app in applications if app.job_id == job_filter]
    return render(
        request,
        "jobs/employer_dashboard.html",
        {
            "profile": profile,
            "jobs": jobs,
            "applications": applications,
            "job_filter": job_filter,
            "stats": employer_stats(profile),
            "company_form": CompanyProfileForm(instance=profile),
            "job_status_choices": JobStatus.choices,
            "application_status_choices": ApplicationStatus.choices,
            "seo": PageMeta(title="Employer dashboard", noindex=True),
        },
    )


# -----------------------------
# Employer: Create/Edit Jobs
# -----------------------------
@company_required
@require_http_methods(["GET", "POST"])
def post_job(request, job_id=None):
    profile = current_profile(request)
    job = None
    if job_id is not None:
        job = get_object_or_404(Job, id=job_id)
        if job.employer_id != profile.pk:
            messages.error(request, "This is not your job posting.")
            return redirect("employer_dashboard")

    if request.method == "POST":
        form = JobForm(request.POST, instance=job)
        if form.is_valid():
            is_new = form.is_new
            job = form.save(commit=False)
            job.employer = profile
            try:
                job.save()
            except DatabaseError as exc:
                logger.exception("Job save failed: employer=%s", profile.pk)
                messages.error(request, f"Could not save the job: {exc}")
            else:
                invalidate_employer_jobs(profile.pk)
                if is_new:
                    logger.info("Job created: job_id=%s employer=%s", job.id, profile.pk)
                    messages.success(request, "Job posted.")
                else:
                    logger.info("Job updated: job_id=%s employer=%s", job.id, profile.pk)
                    messages.success(request, "Job updated.")
                return redirect("employer_dashboard")
    else:
        initial = {} if job else {"company_name": profile.company_name}
        form = JobForm(instance=job, initial=initial)

    return render(
        request,
        "jobs/post_job.html",
        {
            "form": form,
            "job": job,
            "seo": PageMeta(title="Edit job" if job else "Post a job", noindex=True),
        },
    )


@company_required
@require_POST
def job_status_update(request, job_id):
    profile = current_profile(request)
    form = JobStatusForm(request.POST)
    if not form.is_valid():
        messages.error(request, "Invalid status.")
        return redirect("employer_dashboard")

    status = form.cleaned_data["status"]
    updated = Job.objects.filter(id=job_id, employer=profile).update(status=status, updated_at=timezone.now())
    if not updated:
        raise Http404("Job not found")
    invalidate_employer_jobs(profile.pk)
    logger.info("Job status updated: job_id=%s status=%s employer=%s", job_id, status, profile.pk)
    messages.success(request, JOB_STATUS_MESSAGES[status])
    return redirect("employer_dashboard")


@company_required
@require_POST
def job_delete(request, job_id):
    profile = current_profile(request)
    job = get_object_or_404(Job, id=job_id, employer=profile)
    candidate_ids = set(
        job.applications.exclude(candidate__isnull=True).values_list("candidate_id", flat=True)
    )
    job.delete()
    invalidate_employer_jobs(profile.pk)
    invalidate_applications(employer_id=profile.pk)
    for candidate_id in candidate_ids:
        invalidate_applications(candidate_id=candidate_id)
    logger.info("Job deleted: job_id=%s employer=%s", job_id, profile.pk)
    messages.info(request, "Job deleted.")
    return redirect("employer_dashboard")


@company_required
@require_POST
def application_status_update(request, application_id):
    profile = current_profile(request)
    application = get_object_or_404(
        Application.objects.select_related("job"), id=application_id, job__employer=profile
    )
    form = ApplicationStatusForm(request.POST)
    if not form.is_valid():
        messages.error(request, "Invalid status.")
    else:
        update_application_status(application, form.cleaned_data["status"])
        messages.success(request, "Application status updated.")
    return redirect(_safe_next(request) or "employer_dashboard")
