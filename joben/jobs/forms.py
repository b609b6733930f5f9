from django import forms

from cvs.storage import validate_cv_file

from .constants import (
    COVER_LETTER_MAX_LENGTH,
    JOB_DESCRIPTION_MIN_LENGTH,
    JOB_TITLE_MIN_LENGTH,
    LOCATIONS,
    TECH_STACK_OPTIONS,
)
from .models import ApplicationStatus, Job, JobStatus
from .utils import salary_description_line

TERMS_ERROR = "You must accept the terms and conditions."


def _cover_letter_field():
    return forms.CharField(
        required=False,
        max_length=COVER_LETTER_MAX_LENGTH,
        widget=forms.Textarea(attrs={"rows": 4, "maxlength": COVER_LETTER_MAX_LENGTH}),
        error_messages={"max_length": f"Cover letter can be at most {COVER_LETTER_MAX_LENGTH} characters."},
    )


class GuestApplicationForm(forms.Form):
    first_name = forms.CharField(
        max_length=100, min_length=2, error_messages={"min_length": "First name must be at least 2 characters."}
    )
    last_name = forms.CharField(
        max_length=100, min_length=2, error_messages={"min_length": "Last name must be at least 2 characters."}
    )
    email = forms.EmailField(error_messages={"invalid": "Invalid email address."})
    phone = forms.CharField(
        max_length=30, min_length=10, error_messages={"min_length": "Phone number must be at least 10 characters."}
    )
    linkedin_url = forms.URLField(required=False, error_messages={"invalid": "Invalid LinkedIn URL."})
    cover_letter = _cover_letter_field()
    cv = forms.FileField(error_messages={"required": "Please attach your CV."})
    accept_terms = forms.BooleanField(error_messages={"required": TERMS_ERROR})

    def clean_email(self):
        return self.cleaned_data["email"].strip().lower()

    def clean_cv(self):
        upload = self.cleaned_data.get("cv")
        validate_cv_file(upload)
        return upload

    @property
    def full_name(self) -> str:
        return f"{self.cleaned_data['first_name'].strip()} {self.cleaned_data['last_name'].strip()}"


class CandidateApplicationForm(forms.Form):
    cover_letter = _cover_letter_field()
    accept_terms = forms.BooleanField(error_messages={"required": TERMS_ERROR})


class JobForm(forms.ModelForm):
    location = forms.ChoiceField(choices=[(loc, loc) for loc in LOCATIONS])
    tech_stack = forms.MultipleChoiceField(
        required=False,
        choices=[(tag, tag) for tag in TECH_STACK_OPTIONS],
        widget=forms.CheckboxSelectMultiple,
    )
    salary_in_description = forms.BooleanField(required=False, label="Add the salary to the description")
    accept_terms = forms.BooleanField(required=False)

    class Meta:
        model = Job
        fields = [
            "title",
            "company_name",
            "location",
            "job_type",
            "seniority",
            "salary_min",
            "salary_max",
            "salary_public",
            "description",
        ]
        widgets = {"description": forms.Textarea(attrs={"rows": 12})}

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.is_new = self.instance.pk is None
        if not self.is_new:
            self.fields["tech_stack"].initial = self.instance.tech_stack_list()
            del self.fields["accept_terms"]

    def clean_title(self):
        value = (self.cleaned_data.get("title") or "").strip()
        if len(value) < JOB_TITLE_MIN_LENGTH:
            raise forms.ValidationError(f"Title must be at least {JOB_TITLE_MIN_LENGTH} characters.")
        return value

    def clean_company_name(self):
        value = (self.cleaned_data.get("company_name") or "").strip()
        if len(value) < 2:
            raise forms.ValidationError("Company name must be at least 2 characters.")
        return value

    def clean_description(self):
        value = (self.cleaned_data.get("description") or "").strip()
        if len(value) < JOB_DESCRIPTION_MIN_LENGTH:
            raise forms.ValidationError(
                f"Description must be at least {JOB_DESCRIPTION_MIN_LENGTH} characters."
            )
        return value

    def clean(self):
        cleaned = super().clean()
        salary_min = cleaned.get("salary_min")
        salary_max = cleaned.get("salary_max")
        if (salary_min is None) != (salary_max is None):
            self.add_error("salary_max", "Enter both the minimum and the maximum salary, or neither.")
        elif salary_min is not None and salary_max < salary_min:
            self.add_error("salary_max", "Maximum salary must be greater than or equal to the minimum salary.")
        if self.is_new and not cleaned.get("accept_terms"):
            self.add_error("accept_terms", TERMS_ERROR)
        return cleaned

    def save(self, commit=True):
        job = super().save(commit=False)
        job.set_tech_stack(self.cleaned_data.get("tech_stack"))
        if self.cleaned_data.get("salary_in_description") and job.salary_min and job.salary_max:
            line = salary_description_line(job.salary_min, job.salary_max)
            if line.strip() not in job.description:
                job.description += line
        if self.is_new:
            job.requirements = job.description
        if commit:
            job.save()
        return job


class JobStatusForm(forms.Form):
    status = forms.ChoiceField(choices=JobStatus.choices)


class ApplicationStatusForm(forms.Form):
    status = forms.ChoiceField(choices=ApplicationStatus.choices)
