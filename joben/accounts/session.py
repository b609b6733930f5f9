"""Session and profile context.

A ``ProfileContext`` is created for every request by
``accounts.middleware.ProfileContextMiddleware`` and torn down when the
response leaves the middleware. Views read the signed-in identity and its
profile row from it instead of querying ``Profile`` themselves.

Both the ``user_logged_in`` signal and the lazy profile read converge on
``ensure_profile``, which is idempotent.
"""
import enum
import logging
from dataclasses import dataclass

from django.contrib.auth import authenticate, login, logout
from django.contrib.auth.models import AnonymousUser
from django.db import DatabaseError, IntegrityError, transaction

from .models import Profile, User

logger = logging.getLogger(__name__)


class EnsureStatus(str, enum.Enum):
    FOUND = "found"
    CREATED = "created"
    FAILED = "failed"


@dataclass(frozen=True)
class EnsureProfileResult:
    status: EnsureStatus
    profile: Profile | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.profile is not None


@dataclass(frozen=True)
class AuthResult:
    user: User | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _profile_defaults(user) -> dict:
    role = user.role or User.Role.CANDIDATE
    return {
        "email": user.email,
        "role": role,
        "full_name": user.full_name or user.get_full_name(),
        "company_name": user.company_name if role == User.Role.EMPLOYER else "",
    }


def ensure_profile(user) -> EnsureProfileResult:
    """Return the user's profile, creating it from sign-up metadata if missing."""
    if user is None or not user.is_authenticated:
        return EnsureProfileResult(EnsureStatus.FAILED, error="Not signed in.")

    try:
        profile = Profile.objects.filter(user_id=user.pk).first()
        if profile is not None:
            return EnsureProfileResult(EnsureStatus.FOUND, profile)

        try:
            with transaction.atomic():
                Profile.objects.create(user_id=user.pk, **_profile_defaults(user))
        except IntegrityError:
            # Another request inserted the same row first.
            pass
        else:
            profile = Profile.objects.filter(user_id=user.pk).first()
            if profile is not None:
                logger.info("Profile created: user_id=%s role=%s", user.pk, profile.role)
                return EnsureProfileResult(EnsureStatus.CREATED, profile)

        profile = Profile.objects.filter(user_id=user.pk).first()
        if profile is not None:
            return EnsureProfileResult(EnsureStatus.FOUND, profile)
        logger.warning("Profile missing after create: user_id=%s", user.pk)
        return EnsureProfileResult(EnsureStatus.FAILED, error="Profile could not be created.")
    except DatabaseError as exc:
        logger.exception("Profile ensure failed: user_id=%s", user.pk)
        return EnsureProfileResult(EnsureStatus.FAILED, error=str(exc))


class ProfileContext:
    """Request-scoped holder for the signed-in user and their profile row."""

    def __init__(self, user=None):
        self.user = user if user is not None else AnonymousUser()
        self.last_result: EnsureProfileResult | None = None
        self._profile: Profile | None = None
        self._loaded = False

    @property
    def is_authenticated(self) -> bool:
        return bool(getattr(self.user, "is_authenticated", False))

    @property
    def profile(self) -> Profile | None:
        if not self._loaded:
            self.refresh()
        return self._profile

    @property
    def role(self) -> str | None:
        if self.profile is not None:
            return self.profile.role
        if self.is_authenticated:
            return self.user.role
        return None

    def bind(self, user) -> None:
        self.user = user
        self._profile = None
        self._loaded = False

    def refresh(self) -> Profile | None:
        self._loaded = True
        if not self.is_authenticated:
            self._profile = None
            return None
        self.last_result = ensure_profile(self.user)
        self._profile = self.last_result.profile
        return self._profile

    def clear(self) -> None:
        self.user = AnonymousUser()
        self.last_result = None
        self._profile = None
        self._loaded = True


def get_context(request) -> ProfileContext:
    ctx = getattr(request, "profile_context", None)
    if ctx is None:
        ctx = ProfileContext(getattr(request, "user", None))
        request.profile_context = ctx
    return ctx


def current_profile(request) -> Profile | None:
    return get_context(request).profile


def sign_up(request, *, email: str, password: str, full_name: str, role: str, company_name: str = "") -> AuthResult:
    """Create the account and sign it in. Single attempt, no retry."""
    email = (email or "").strip().lower()
    if User.objects.filter(email__iexact=email).exists():
        return AuthResult(error="User already registered.")
    try:
        with transaction.atomic():
            user = User.objects.create_user(
                username=email,
                email=email,
                password=password,
                role=role,
                full_name=(full_name or "").strip(),
                company_name=(company_name or "").strip() if role == User.Role.EMPLOYER else "",
            )
    except IntegrityError:
        return AuthResult(error="User already registered.")
    except DatabaseError as exc:
        logger.exception("Sign up failed: email=%s", email)
        return AuthResult(error=str(exc))

    login(request, user, backend="django.contrib.auth.backends.ModelBackend")
    get_context(request).bind(user)
    logger.info("Sign up: user_id=%s role=%s", user.pk, user.role)
    return AuthResult(user=user)


def sign_in(request, *, email: str, password: str) -> AuthResult:
    email = (email or "").strip().lower()
    user = authenticate(request, username=email, password=password)
    if user is None:
        logger.info("Login failed: email=%s", email)
        return AuthResult(error="Invalid login credentials.")
    login(request, user)
    get_context(request).bind(user)
    logger.info("Login success: user_id=%s role=%s", user.pk, user.role)
    return AuthResult(user=user)


def sign_out(request) -> None:
    user_id = request.user.pk if request.user.is_authenticated else None
    logout(request)
    get_context(request).clear()
    if user_id:
        logger.info("Logout: user_id=%s", user_id)
