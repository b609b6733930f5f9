"""Read side of the jobs app: job search, dashboards' lists, company pages.

Results are kept in the Django cache. Job lists share a namespace version
that every job mutation bumps; application lists are keyed per identity and
deleted explicitly by the code that mutates them.
"""
import hashlib
import json
import logging
import math
import re
import time
from dataclasses import dataclass

from django.conf import settings
from django.core.cache import cache
from django.db.models import Count

from accounts.models import Profile, User

from .constants import JOBS_PAGE_SIZE, TECH_STACK_OPTIONS
from .models import Application, ApplicationStatus, Job, JobStatus, JobType, SavedJob, Seniority

logger = logging.getLogger(__name__)

JOB_LIST_VERSION_KEY = "jobs:list:version"


def _normalize_space(v: str | None) -> str:
    return re.sub(r"\s+", " ", (v or "")).strip()


def _unique_valid(values, allowed) -> tuple[str, ...]:
    return tuple(v for v in dict.fromkeys(values) if v in allowed)


def _timeout() -> int:
    return getattr(settings, "JOB_CACHE_TIMEOUT", 300)


@dataclass(frozen=True)
class JobFilters:
    search: str = ""
    location: str = "all"
    job_types: tuple[str, ...] = ()
    seniorities: tuple[str, ...] = ()
    tech_stack: tuple[str, ...] = ()

    @classmethod
    def from_querydict(cls, params) -> "JobFilters":
        """Build filters from ``request.GET``; unknown enum values are dropped."""
        location = _normalize_space(params.get("location")) or "all"
        return cls(
            search=_normalize_space(params.get("q")),
            location=location,
            job_types=_unique_valid(params.getlist("job_type"), JobType.values),
            seniorities=_unique_valid(params.getlist("seniority"), Seniority.values),
            tech_stack=_unique_valid(params.getlist("tech"), TECH_STACK_OPTIONS),
        )

    @property
    def location_filter(self) -> str | None:
        if not self.location or self.location.lower() == "all":
            return None
        return self.location

    @property
    def is_empty(self) -> bool:
        return not (self.search or self.location_filter or self.job_types or self.seniorities or self.tech_stack)

    def cache_token(self) -> str:
        raw = json.dumps(
            [self.search, self.location_filter, self.job_types, self.seniorities, self.tech_stack],
            ensure_ascii=True,
        )
        return hashlib.md5(raw.encode("ascii")).hexdigest()


@dataclass
class JobPage:
    jobs: list
    total_count: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        if not self.page_size:
            return 0
        return math.ceil(self.total_count / self.page_size)

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def page_range(self) -> range:
        return range(1, self.total_pages + 1)


def filter_jobs(filters: JobFilters):
    """Active jobs narrowed by ``filters``, newest first."""
    qs = Job.objects.active().search(filters.search)
    if filters.location_filter:
        qs = qs.filter(location=filters.location_filter)
    if filters.job_types:
        qs = qs.filter(job_type__in=filters.job_types)
    if filters.seniorities:
        qs = qs.filter(seniority__in=filters.seniorities)
    qs = qs.with_tech_stack(filters.tech_stack)
    return qs.select_related("employer").recent()


def _job_list_version() -> int:
    return cache.get_or_set(JOB_LIST_VERSION_KEY, time.time_ns, None)


def job_list_cache_key(filters: JobFilters, page: int, page_size: int) -> str:
    return f"jobs:list:{_job_list_version()}:{filters.cache_token()}:{page}:{page_size}"


def search_jobs(filters: JobFilters, page: int = 1, page_size: int = JOBS_PAGE_SIZE) -> JobPage:
    page = max(1, int(page or 1))
    key = job_list_cache_key(filters, page, page_size)
    result = cache.get(key)
    if result is not None:
        return result

    qs = filter_jobs(filters)
    total = qs.count()
    offset = (page - 1) * page_size
    result = JobPage(jobs=list(qs[offset:offset + page_size]), total_count=total, page=page, page_size=page_size)
    cache.set(key, result, _timeout())
    return result


def invalidate_job_lists() -> None:
    try:
        cache.incr(JOB_LIST_VERSION_KEY)
    except ValueError:
        cache.set(JOB_LIST_VERSION_KEY, time.time_ns(), None)


def latest_jobs(limit: int = 6) -> list:
    return search_jobs(JobFilters(), page=1, page_size=limit).jobs


# -----------------------------
# Applications
# -----------------------------
def _candidate_key(profile_id) -> str:
    return f"applications:candidate:{profile_id}"


def _employer_key(profile_id) -> str:
    return f"applications:employer:{profile_id}"


def _employer_jobs_key(profile_id) -> str:
    return f"jobs:employer:{profile_id}"


def candidate_applications(profile: Profile) -> list:
    key = _candidate_key(profile.pk)
    rows = cache.get(key)
    if rows is None:
        rows = list(
            Application.objects.filter(candidate=profile)
            .select_related("job", "job__employer")
            .order_by("-created_at")
        )
        cache.set(key, rows, _timeout())
    return rows


def employer_applications(profile: Profile) -> list:
    key = _employer_key(profile.pk)
    rows = cache.get(key)
    if rows is None:
        rows = list(
            Application.objects.filter(job__employer=profile)
            .select_related("job", "candidate")
            .order_by("-created_at")
        )
        cache.set(key, rows, _timeout())
    return rows


def employer_jobs(profile: Profile) -> list:
    key = _employer_jobs_key(profile.pk)
    rows = cache.get(key)
    if rows is None:
        rows = list(
            Job.objects.for_employer(profile)
            .annotate(applications_count=Count("applications"))
            .recent()
        )
        cache.set(key, rows, _timeout())
    return rows


def invalidate_applications(*, candidate_id=None, employer_id=None) -> None:
    keys = []
    if candidate_id:
        keys.append(_candidate_key(candidate_id))
    if employer_id:
        keys.extend([_employer_key(employer_id), _employer_jobs_key(employer_id)])
    if keys:
        cache.delete_many(keys)


def invalidate_employer_jobs(employer_id) -> None:
    cache.delete(_employer_jobs_key(employer_id))
    invalidate_job_lists()


def employer_stats(profile: Profile) -> dict:
    jobs = employer_jobs(profile)
    applications = employer_applications(profile)
    return {
        "total_jobs": len(jobs),
        "active_jobs": sum(1 for job in jobs if job.status == JobStatus.ACTIVE),
        "total_applications": len(applications),
        "interviews": sum(1 for app in applications if app.status == ApplicationStatus.INTERVIEW),
    }


# -----------------------------
# Companies and saved jobs
# -----------------------------
def get_company(company_id):
    """Employer profile with its active jobs, or ``None`` when no such employer."""
    company = Profile.objects.filter(pk=company_id, role=User.Role.EMPLOYER).first()
    if company is None:
        return None, []
    jobs = list(Job.objects.for_employer(company).active().recent())
    return company, jobs


def saved_job_ids(profile: Profile | None, job_ids) -> set:
    if profile is None or not profile.is_candidate:
        return set()
    job_ids = list(job_ids)
    if not job_ids:
        return set()
    return set(SavedJob.objects.filter(user=profile, job_id__in=job_ids).values_list("job_id", flat=True))


def saved_jobs(profile: Profile) -> list:
    return list(
        SavedJob.objects.filter(user=profile).select_related("job", "job__employer").order_by("-created_at")
    )
