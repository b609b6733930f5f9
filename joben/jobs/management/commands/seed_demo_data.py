import io
import random

from django.contrib.auth import get_user_model
from django.core.files.base import ContentFile
from django.core.management.base import BaseCommand
from django.db import transaction
from pypdf import PdfWriter

from accounts.session import ensure_profile
from cvs.storage import GUEST_CV_PREFIX, cv_storage, generate_object_name
from jobs.constants import LOCATIONS, TECH_STACK_OPTIONS
from jobs.models import Application, ApplicationStatus, Job, JobType, SavedJob, Seniority
from jobs.queries import invalidate_job_lists

User = get_user_model()

DEMO_EMAIL_DOMAIN = "example.com"


def _blank_pdf() -> bytes:
    writer = PdfWriter()
    writer.add_blank_page(width=595, height=842)
    buf = io.BytesIO()
    writer.write(buf)
    return buf.getvalue()


class Command(BaseCommand):
    help = "Seed realistic demo data (employers, candidates, jobs, CVs, applications, saved jobs)."

    def add_arguments(self, parser):
        parser.add_argument("--prefix", type=str, default="demo")
        parser.add_argument("--employers", type=int, default=6)
        parser.add_argument("--candidates", type=int, default=12)
        parser.add_argument("--jobs-per-employer", type=int, default=5)
        parser.add_argument("--applications-per-candidate", type=int, default=3)
        parser.add_argument("--guest-applications", type=int, default=10)
        parser.add_argument("--password", type=str, default="DemoPass123!")
        parser.add_argument("--seed", type=int, default=42)
        parser.add_argument("--wipe", action="store_true", help="Delete existing users starting with prefix before seeding.")

    def _tech_stack(self, rnd, minimum=3, maximum=5):
        return rnd.sample(TECH_STACK_OPTIONS, rnd.randint(minimum, maximum))

    def _make_user(self, email, role, password, **extra):
        user, _ = User.objects.get_or_create(
            username=email,
            defaults={"email": email, "role": role, "is_active": True, **extra},
        )
        # Keep demo credentials predictable.
        user.email = email
        user.role = role
        for field, value in extra.items():
            setattr(user, field, value)
        user.set_password(password)
        user.save()
        return user, ensure_profile(user).profile

    def _store_cv(self, prefix, content):
        return cv_storage().save(generate_object_name(prefix, "cv.pdf"), ContentFile(content))

    @transaction.atomic
    def handle(self, *args, **opts):
        rnd = random.Random(opts["seed"])
        prefix = (opts["prefix"] or "demo").strip().lower()
        employers_n = max(1, int(opts["employers"]))
        candidates_n = max(1, int(opts["candidates"]))
        jobs_per_employer = max(1, int(opts["jobs_per_employer"]))
        apps_per_candidate = max(0, int(opts["applications_per_candidate"]))
        guest_n = max(0, int(opts["guest_applications"]))
        password = opts["password"]
        cv_bytes = _blank_pdf()

        if opts["wipe"]:
            User.objects.filter(username__startswith=f"{prefix}_").delete()

        company_names = [
            "Carpathia Labs",
            "Danube Metrics",
            "Bucegi Systems",
            "Transilvania Digital",
            "Delta Grid Tech",
            "Someș Health",
            "Olt Data",
            "Ceahlău Works",
        ]
        job_templates = [
            ("Backend Developer (Python)", "Build and maintain APIs, background jobs and PostgreSQL schemas."),
            ("Frontend Engineer (React)", "Develop responsive interfaces with TypeScript and API integrations."),
            ("Full Stack Developer", "Own features end to end across the backend, REST APIs and frontend modules."),
            ("Data Engineer", "Design data pipelines and keep product analytics reliable."),
            ("DevOps Engineer", "Automate CI/CD pipelines, Kubernetes deployments and runtime monitoring."),
            ("QA Automation Engineer", "Write test cases, automate regression suites and improve release quality."),
            ("Mobile Developer (Flutter)", "Ship iOS and Android features from a single Flutter codebase."),
            ("Engineering Team Lead", "Lead a team of six engineers and own delivery for a product area."),
        ]
        description_tail = (
            "\n\nWhat we offer: private health insurance, meal tickets, a yearly learning budget, "
            "flexible working hours and a friendly team that reviews code carefully and ships often."
        )

        created_jobs = []
        employer_creds = []
        candidate_creds = []

        for i in range(1, employers_n + 1):
            email = f"{prefix}_emp_{i}@{DEMO_EMAIL_DOMAIN}"
            company_name = f"{company_names[(i - 1) % len(company_names)]} {i}"
            _user, profile = self._make_user(
                email, User.Role.EMPLOYER, password, full_name=f"Recruiter {i}", company_name=company_name
            )
            if not profile.company_name:
                profile.company_name = company_name
            profile.company_website = profile.company_website or "https://example.com"
            profile.company_description = (
                profile.company_description or "Hiring across engineering, product and data teams in Romania."
            )
            profile.save()

            for j in range(1, jobs_per_employer + 1):
                title_base, description_base = job_templates[(j + i - 2) % len(job_templates)]
                title = f"{title_base} - Team {i}.{j}"
                salary_min = rnd.randrange(6_000, 18_000, 500)
                salary_max = salary_min + rnd.randrange(2_000, 10_000, 500)

                job, created = Job.objects.get_or_create(
                    employer=profile,
                    title=title,
                    defaults={
                        "company_name": profile.company_name,
                        "description": description_base + description_tail,
                        "requirements": description_base + description_tail,
                        "location": rnd.choice(LOCATIONS),
                        "job_type": rnd.choice(JobType.values),
                        "seniority": rnd.choice(Seniority.values),
                        "salary_min": salary_min,
                        "salary_max": salary_max,
                        "salary_public": rnd.random() < 0.6,
                    },
                )
                if created:
                    job.set_tech_stack(self._tech_stack(rnd))
                    job.save(update_fields=["tech_stack"])
                created_jobs.append(job)

            employer_creds.append((email, password))

        candidate_profiles = []
        for i in range(1, candidates_n + 1):
            email = f"{prefix}_candidate_{i}@{DEMO_EMAIL_DOMAIN}"
            _user, profile = self._make_user(email, User.Role.CANDIDATE, password, full_name=f"Demo Candidate {i}")
            profile.phone = profile.phone or f"+40 722 000 {100 + i}"
            profile.linkedin_url = profile.linkedin_url or f"https://www.linkedin.com/in/{prefix}-candidate-{i}"
            if not profile.cv:
                profile.cv = self._store_cv(str(profile.pk), cv_bytes)
            profile.save()
            candidate_profiles.append(profile)
            candidate_creds.append((email, password))

            for job in rnd.sample(created_jobs, k=min(2, len(created_jobs))):
                SavedJob.objects.get_or_create(job=job, user=profile)

        for profile in candidate_profiles:
            for job in rnd.sample(created_jobs, k=min(apps_per_candidate, len(created_jobs))):
                status = rnd.choices(ApplicationStatus.values, weights=[50, 20, 15, 15], k=1)[0]
                Application.objects.get_or_create(
                    job=job,
                    candidate=profile,
                    defaults={
                        "cv": profile.cv.name,
                        "cover_letter": "I am interested in this role and believe my background is a strong fit.",
                        "status": status,
                    },
                )

        for i in range(1, guest_n + 1):
            job = rnd.choice(created_jobs)
            guest_email = f"{prefix}_guest_{i}@{DEMO_EMAIL_DOMAIN}"
            if Application.objects.filter(job=job, guest_email=guest_email).exists():
                continue
            Application.objects.create(
                job=job,
                guest_name=f"Guest Applicant {i}",
                guest_email=guest_email,
                guest_phone=f"+40 733 000 {100 + i}",
                cv=self._store_cv(GUEST_CV_PREFIX, cv_bytes),
            )

        invalidate_job_lists()

        self.stdout.write(self.style.SUCCESS("Seeded demo data successfully."))
        self.stdout.write(f"Created/updated employers: {employers_n}")
        self.stdout.write(f"Created/updated candidates: {candidates_n}")
        self.stdout.write(f"Created/updated jobs target: {employers_n * jobs_per_employer}")
        self.stdout.write("")
        self.stdout.write("Sample credentials:")
        for email, pwd in employer_creds[:3]:
            self.stdout.write(f"  {email} / {pwd}")
        for email, pwd in candidate_creds[:3]:
            self.stdout.write(f"  {email} / {pwd}")
