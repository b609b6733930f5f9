from urllib.parse import urlsplit

from django.conf import settings
from django.contrib.sitemaps import Sitemap
from django.urls import reverse
from django.utils import timezone

from .models import Job


class SiteSitemap(Sitemap):
    """Absolute URLs are built from SITE_BASE_URL, not the request host."""

    def get_protocol(self, protocol=None):
        return urlsplit(settings.SITE_BASE_URL).scheme or "https"

    def get_domain(self, site=None):
        return urlsplit(settings.SITE_BASE_URL).netloc


class StaticViewSitemap(SiteSitemap):
    # url name -> (changefreq, priority)
    pages = {
        "home": ("daily", 1.0),
        "about": ("monthly", 0.8),
        "contact": ("monthly", 0.7),
        "privacy": ("yearly", 0.5),
        "terms": ("yearly", 0.5),
    }

    def items(self):
        return list(self.pages)

    def location(self, item):
        return reverse(item)

    def changefreq(self, item):
        return self.pages[item][0]

    def priority(self, item):
        return self.pages[item][1]

    def lastmod(self, item):
        return timezone.localdate()


class JobSitemap(SiteSitemap):
    changefreq = "weekly"
    priority = 0.9

    def items(self):
        return Job.objects.active().order_by("-updated_at")

    def location(self, job):
        return reverse("job_detail", args=[job.pk])

    def lastmod(self, job):
        return job.updated_at


sitemaps = {
    "static": StaticViewSitemap,
    "jobs": JobSitemap,
}
