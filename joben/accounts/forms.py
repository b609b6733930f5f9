from django import forms

from cvs.storage import validate_cv_file, validate_logo_file

from .models import Profile, User


class LoginForm(forms.Form):
    email = forms.EmailField(error_messages={"invalid": "Invalid email address."})
    password = forms.CharField(
        widget=forms.PasswordInput,
        min_length=6,
        error_messages={"min_length": "Password must be at least 6 characters."},
    )


class RegistrationForm(forms.Form):
    full_name = forms.CharField(
        max_length=150,
        min_length=2,
        error_messages={"min_length": "Name must be at least 2 characters."},
    )
    email = forms.EmailField(error_messages={"invalid": "Invalid email address."})
    password = forms.CharField(
        widget=forms.PasswordInput,
        min_length=6,
        error_messages={"min_length": "Password must be at least 6 characters."},
    )
    confirm_password = forms.CharField(widget=forms.PasswordInput)
    role = forms.ChoiceField(choices=User.Role.choices, widget=forms.RadioSelect, initial=User.Role.CANDIDATE)
    company_name = forms.CharField(max_length=200, required=False)

    def clean_email(self):
        return self.cleaned_data["email"].strip().lower()

    def clean(self):
        cleaned = super().clean()
        password = cleaned.get("password")
        confirm = cleaned.get("confirm_password")
        if password and confirm and password != confirm:
            self.add_error("confirm_password", "Passwords do not match.")
        if cleaned.get("role") == User.Role.EMPLOYER:
            company = (cleaned.get("company_name") or "").strip()
            if len(company) < 2:
                self.add_error("company_name", "Company name must be at least 2 characters.")
            cleaned["company_name"] = company
        else:
            cleaned["company_name"] = ""
        return cleaned


class CompanyProfileForm(forms.ModelForm):
    logo = forms.FileField(required=False)

    class Meta:
        model = Profile
        fields = ["company_name", "company_website", "company_description"]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["company_name"].required = True
        self.fields["company_description"].required = True

    def clean_company_name(self):
        value = (self.cleaned_data.get("company_name") or "").strip()
        if len(value) < 2:
            raise forms.ValidationError("Company name must be at least 2 characters.")
        return value

    def clean_company_description(self):
        value = (self.cleaned_data.get("company_description") or "").strip()
        if len(value) < 10:
            raise forms.ValidationError("Description must be at least 10 characters.")
        return value

    def clean_logo(self):
        logo = self.cleaned_data.get("logo")
        validate_logo_file(logo)
        return logo


class CandidateProfileForm(forms.ModelForm):
    cv_file = forms.FileField(required=False, label="CV (PDF, DOC, DOCX, max 5 MB)")

    class Meta:
        model = Profile
        fields = ["full_name", "phone", "linkedin_url"]

    def clean_full_name(self):
        value = (self.cleaned_data.get("full_name") or "").strip()
        if len(value) < 2:
            raise forms.ValidationError("Name must be at least 2 characters.")
        return value

    def clean_phone(self):
        value = (self.cleaned_data.get("phone") or "").strip()
        if value and len(value) < 10:
            raise forms.ValidationError("Phone number must be at least 10 characters.")
        return value

    def clean_cv_file(self):
        upload = self.cleaned_data.get("cv_file")
        if upload:
            validate_cv_file(upload)
        return upload
