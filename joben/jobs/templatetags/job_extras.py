from django import template
from django.utils import timezone
from django.utils.timesince import timesince

from ..utils import format_salary, truncate_text

register = template.Library()

_STATUS_CLASSES = {
    "active": "badge-green",
    "paused": "badge-amber",
    "closed": "badge-grey",
    "submitted": "badge-blue",
    "viewed": "badge-grey",
    "interview": "badge-green",
    "rejected": "badge-red",
}


@register.filter
def job_salary(job):
    """Salary line for a job; hidden salaries read as not disclosed."""
    if not job.salary_public:
        return format_salary(None, None)
    return format_salary(job.salary_min, job.salary_max)


@register.filter
def truncate(value, length=160):
    return truncate_text(value, int(length))


@register.filter
def ago(value):
    if not value:
        return ""
    return f"{timesince(value, timezone.now()).split(',')[0]} ago"


@register.filter
def status_class(value):
    return _STATUS_CLASSES.get(str(value), "badge-grey")


@register.filter
def contains(container, item):
    return item in (container or ())
