import logging

from django.http import HttpResponseServerError
from django.shortcuts import render
from django.template import loader
from django.urls import reverse

from .seo import PageMeta, breadcrumb_schema, faq_schema, organization_schema

logger = logging.getLogger(__name__)

FAQS = [
    ("Do I need an account to apply?", "No. You can apply as a guest with your contact details and a CV."),
    ("Which CV formats are accepted?", "PDF, DOC and DOCX files up to 5 MB."),
    ("How much does it cost for candidates?", "Nothing. Joben.eu is free for candidates."),
    ("How long does a job stay online?", "Job postings stay active for 30 days unless the employer closes them earlier."),
]


def _static_page(request, template_name, title, description, url_name, structured_data=(), **extra):
    path = reverse(url_name)
    return render(
        request,
        template_name,
        {
            "seo": PageMeta(
                title=title,
                description=description,
                path=path,
                structured_data=[*structured_data, breadcrumb_schema([("Home", "/"), (title, path)])],
            ),
            **extra,
        },
    )


def about(request):
    return _static_page(
        request,
        "pages/about.html",
        "About us",
        "Joben.eu connects candidates and employers in Romania with the fastest application flow.",
        "about",
        structured_data=[organization_schema(), faq_schema(FAQS)],
        faqs=FAQS,
    )


def contact(request):
    return _static_page(request, "pages/contact.html", "Contact", "Get in touch with the Joben.eu team.", "contact")


def privacy(request):
    return _static_page(
        request, "pages/privacy.html", "Privacy policy", "How Joben.eu collects and processes personal data.", "privacy"
    )


def terms(request):
    return _static_page(
        request, "pages/terms.html", "Terms and conditions", "Terms for using Joben.eu.", "terms"
    )


def page_not_found(request, exception=None):
    return render(request, "404.html", {"seo": PageMeta(title="Page not found", noindex=True)}, status=404)


def server_error(request):
    # Rendered without context processors: the failure may be the database itself.
    # The traceback is already logged by django.request.
    logger.error("Rendering error page: path=%s", request.path)
    return HttpResponseServerError(loader.get_template("500.html").render({"path": request.path}))
