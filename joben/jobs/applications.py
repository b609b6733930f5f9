"""Application submission and status workflow.

Each submission attempt walks a small state machine::

    idle -> validating -> (uploading)? -> submitting -> success | duplicate | failed

Validation failures end in ``invalid`` before any storage or database call.
There is no existence pre-check: the database unique constraints decide
whether an application is a duplicate, and the caller gets a typed result
instead of an exception.
"""
import enum
import logging
from dataclasses import dataclass, field

from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from cvs.storage import GUEST_CV_PREFIX, delete_cv, upload_cv

from .models import Application, ApplicationStatus
from .queries import invalidate_applications
from .utils import is_unique_violation

logger = logging.getLogger(__name__)

DUPLICATE_GUEST_MESSAGE = "You have already applied to this job with this email address."
DUPLICATE_CANDIDATE_MESSAGE = "You have already applied to this job."
JOB_CLOSED_MESSAGE = "This job is no longer accepting applications."


class SubmissionState(str, enum.Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    UPLOADING = "uploading"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    DUPLICATE = "duplicate"
    FAILED = "failed"
    INVALID = "invalid"


TERMINAL_STATES = frozenset(
    {SubmissionState.SUCCESS, SubmissionState.DUPLICATE, SubmissionState.FAILED, SubmissionState.INVALID}
)


@dataclass
class SubmissionResult:
    state: SubmissionState
    application: Application | None = None
    message: str = ""
    errors: dict = field(default_factory=dict)
    trail: list = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.state == SubmissionState.SUCCESS


class _Attempt:
    def __init__(self, kind: str, job):
        self.kind = kind
        self.job = job
        self.trail = [SubmissionState.IDLE]

    @property
    def state(self) -> SubmissionState:
        return self.trail[-1]

    def advance(self, state: SubmissionState) -> None:
        if self.state in TERMINAL_STATES:
            raise RuntimeError(f"Submission already finished in state {self.state.value}")
        self.trail.append(state)

    def finish(self, state: SubmissionState, **kwargs) -> SubmissionResult:
        self.advance(state)
        if state != SubmissionState.SUCCESS:
            logger.info(
                "Application %s: kind=%s job_id=%s message=%s",
                state.value,
                self.kind,
                self.job.pk,
                kwargs.get("message", ""),
            )
        return SubmissionResult(state=state, trail=list(self.trail), **kwargs)


def _insert(attempt: _Attempt, duplicate_message: str, cv_cleanup: str | None, **values) -> SubmissionResult:
    attempt.advance(SubmissionState.SUBMITTING)
    try:
        with transaction.atomic():
            application = Application.objects.create(job=attempt.job, **values)
    except IntegrityError as exc:
        if cv_cleanup:
            delete_cv(cv_cleanup)
        if is_unique_violation(exc):
            return attempt.finish(SubmissionState.DUPLICATE, message=duplicate_message)
        logger.exception("Application insert failed: kind=%s job_id=%s", attempt.kind, attempt.job.pk)
        return attempt.finish(SubmissionState.FAILED, message=f"Could not submit the application: {exc}")
    except DatabaseError as exc:
        if cv_cleanup:
            delete_cv(cv_cleanup)
        logger.exception("Application insert failed: kind=%s job_id=%s", attempt.kind, attempt.job.pk)
        return attempt.finish(SubmissionState.FAILED, message=f"Could not submit the application: {exc}")
    return attempt.finish(
        SubmissionState.SUCCESS, application=application, message="Application submitted successfully!"
    )


def submit_guest_application(job, form) -> SubmissionResult:
    """Validate ``form`` (a GuestApplicationForm), upload the CV and insert the row."""
    attempt = _Attempt("guest", job)
    attempt.advance(SubmissionState.VALIDATING)
    if not job.is_active:
        return attempt.finish(SubmissionState.INVALID, message=JOB_CLOSED_MESSAGE)
    if not form.is_valid():
        return attempt.finish(
            SubmissionState.INVALID, message="Please correct the errors below.", errors=dict(form.errors)
        )

    data = form.cleaned_data
    attempt.advance(SubmissionState.UPLOADING)
    try:
        cv_name = upload_cv(data["cv"], GUEST_CV_PREFIX)
    except OSError as exc:
        logger.exception("Guest CV upload failed: job_id=%s", job.pk)
        return attempt.finish(SubmissionState.FAILED, message=f"CV upload failed: {exc}")

    result = _insert(
        attempt,
        DUPLICATE_GUEST_MESSAGE,
        cv_name,
        candidate=None,
        guest_name=form.full_name,
        guest_email=data["email"],
        guest_phone=data["phone"].strip(),
        guest_linkedin_url=data.get("linkedin_url") or None,
        cv=cv_name,
        cover_letter=(data.get("cover_letter") or "").strip(),
    )
    if result.ok:
        invalidate_applications(employer_id=job.employer_id)
        logger.info("Guest application submitted: app_id=%s job_id=%s", result.application.pk, job.pk)
    return result


def submit_candidate_application(job, profile, form) -> SubmissionResult:
    """One-click path: contact details and CV come from the candidate's profile."""
    attempt = _Attempt("candidate", job)
    attempt.advance(SubmissionState.VALIDATING)
    if profile is None or not profile.is_candidate:
        return attempt.finish(SubmissionState.INVALID, message="Only candidates can apply to jobs.")
    if not job.is_active:
        return attempt.finish(SubmissionState.INVALID, message=JOB_CLOSED_MESSAGE)
    if not profile.cv:
        return attempt.finish(
            SubmissionState.INVALID,
            message="Please upload your CV in your profile before applying.",
            errors={"cv": ["Missing CV."]},
        )
    if not form.is_valid():
        return attempt.finish(
            SubmissionState.INVALID, message="Please correct the errors below.", errors=dict(form.errors)
        )

    result = _insert(
        attempt,
        DUPLICATE_CANDIDATE_MESSAGE,
        None,
        candidate=profile,
        cv=profile.cv.name,
        cover_letter=(form.cleaned_data.get("cover_letter") or "").strip(),
    )
    if result.ok:
        invalidate_applications(candidate_id=profile.pk, employer_id=job.employer_id)
        logger.info(
            "Candidate application submitted: app_id=%s job_id=%s user_id=%s",
            result.application.pk,
            job.pk,
            profile.pk,
        )
    return result


def update_application_status(application: Application, status: str) -> Application:
    """Set any status from any other; only ``viewed`` stamps ``viewed_at``.

    A single-row update with no version check, so the last write wins.
    """
    if status not in ApplicationStatus.values:
        raise ValueError(f"Unknown application status: {status}")

    changes = {"status": status}
    if status == ApplicationStatus.VIEWED:
        changes["viewed_at"] = timezone.now()
    Application.objects.filter(pk=application.pk).update(**changes)
    for name, value in changes.items():
        setattr(application, name, value)

    invalidate_applications(candidate_id=application.candidate_id, employer_id=application.job.employer_id)
    logger.info("Application status updated: app_id=%s status=%s", application.pk, status)
    return application
