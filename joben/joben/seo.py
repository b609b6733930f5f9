"""Page metadata (title, description, canonical URL, social tags) and JSON-LD."""
import json
from dataclasses import dataclass, field

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.utils.safestring import mark_safe

from jobs.constants import SALARY_CURRENCY, SENIORITY_EXPERIENCE_MONTHS

DEFAULT_TITLE = "Joben.eu - Apply to jobs in under 30 seconds"
DEFAULT_DESCRIPTION = (
    "Job board for Romania. Browse remote, hybrid and on-site jobs and apply "
    "in under 30 seconds, with or without an account."
)
SCHEMA_CONTEXT = "https://schema.org"


def absolute_url(path: str = "") -> str:
    if path.startswith("http://") or path.startswith("https://"):
        return path
    return f"{settings.SITE_BASE_URL}{path}"


def _dump(data: dict) -> str:
    raw = json.dumps(data, cls=DjangoJSONEncoder, ensure_ascii=False)
    # Keep the payload inert inside a <script> element.
    raw = raw.replace("<", "\\u003c").replace(">", "\\u003e").replace("&", "\\u0026")
    return mark_safe(raw)


@dataclass
class PageMeta:
    title: str = ""
    description: str = DEFAULT_DESCRIPTION
    path: str = ""
    og_type: str = "website"
    og_image: str = "/static/img/og-default.png"
    noindex: bool = False
    structured_data: list = field(default_factory=list)

    @property
    def full_title(self) -> str:
        return f"{self.title} | {settings.SITE_NAME}" if self.title else DEFAULT_TITLE

    @property
    def canonical(self) -> str:
        return absolute_url(self.path) if self.path else ""

    @property
    def image_url(self) -> str:
        return absolute_url(self.og_image)

    @property
    def robots(self) -> str:
        return "noindex, nofollow" if self.noindex else ""

    @property
    def json_ld(self) -> list[str]:
        return [_dump(item) for item in self.structured_data if item]


def site_meta(request):
    return {
        "site_name": settings.SITE_NAME,
        "site_base_url": settings.SITE_BASE_URL,
        "seo": PageMeta(path=request.path),
    }


# -----------------------------
# Structured data builders
# -----------------------------
def organization_schema() -> dict:
    base = settings.SITE_BASE_URL
    return {
        "@context": SCHEMA_CONTEXT,
        "@type": "Organization",
        "name": settings.SITE_NAME,
        "url": base,
        "logo": f"{base}/static/img/logo.png",
        "description": DEFAULT_DESCRIPTION,
        "contactPoint": {
            "@type": "ContactPoint",
            "contactType": "Customer Service",
            "email": "contact@joben.eu",
            "availableLanguage": ["Romanian", "English"],
        },
    }


def website_schema() -> dict:
    base = settings.SITE_BASE_URL
    return {
        "@context": SCHEMA_CONTEXT,
        "@type": "WebSite",
        "name": settings.SITE_NAME,
        "url": base,
        "potentialAction": {
            "@type": "SearchAction",
            "target": f"{base}/jobs/?q={{search_term_string}}",
            "query-input": "required name=search_term_string",
        },
    }


def job_posting_schema(job) -> dict:
    data = {
        "@context": SCHEMA_CONTEXT,
        "@type": "JobPosting",
        "title": job.title,
        "description": job.description,
        "identifier": {"@type": "PropertyValue", "name": settings.SITE_NAME, "value": job.pk},
        "datePosted": job.created_at,
        "validThrough": job.expires_at,
        "employmentType": job.job_type.upper(),
        "hiringOrganization": {
            "@type": "Organization",
            "name": job.company_name,
            "sameAs": absolute_url(f"/company/{job.employer_id}/"),
        },
        "jobLocation": {
            "@type": "Place",
            "address": {
                "@type": "PostalAddress",
                "addressLocality": job.location or "România",
                "addressCountry": "RO",
            },
        },
        "experienceRequirements": {
            "@type": "OccupationalExperienceRequirements",
            "monthsOfExperience": SENIORITY_EXPERIENCE_MONTHS.get(job.seniority, 0),
        },
    }
    if job.job_type == "remote":
        data["jobLocationType"] = "TELECOMMUTE"
    if job.salary_public and job.salary_min and job.salary_max:
        data["baseSalary"] = {
            "@type": "MonetaryAmount",
            "currency": SALARY_CURRENCY,
            "value": {
                "@type": "QuantitativeValue",
                "minValue": job.salary_min,
                "maxValue": job.salary_max,
                "unitText": "MONTH",
            },
        }
    return data


def breadcrumb_schema(items) -> dict:
    """``items`` is a sequence of ``(name, path)`` pairs, root first."""
    return {
        "@context": SCHEMA_CONTEXT,
        "@type": "BreadcrumbList",
        "itemListElement": [
            {"@type": "ListItem", "position": index, "name": name, "item": absolute_url(path)}
            for index, (name, path) in enumerate(items, start=1)
        ],
    }


def faq_schema(faqs) -> dict:
    return {
        "@context": SCHEMA_CONTEXT,
        "@type": "FAQPage",
        "mainEntity": [
            {"@type": "Question", "name": question, "acceptedAnswer": {"@type": "Answer", "text": answer}}
            for question, answer in faqs
        ],
    }


def howto_schema(name: str, steps) -> dict:
    return {
        "@context": SCHEMA_CONTEXT,
        "@type": "HowTo",
        "name": name,
        "step": [
            {"@type": "HowToStep", "position": index, "name": step_name, "text": text}
            for index, (step_name, text) in enumerate(steps, start=1)
        ],
    }
