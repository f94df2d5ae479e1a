"""Application controller: owns the dashboard state of one browser client.

All durable data (users, the logged-in session, modules, announcements)
and all transient UI state (active view, selection pointers, last attempt)
live in one ``AppState``. Views never touch it directly: they build an
intent (see ``study_dashboard.intents``) and call ``dispatch``, which runs
the matching transition, persists the slices it changed in a single store
transaction, and returns an ``Outcome``.
"""

from collections import OrderedDict
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, List, Optional

from pydantic import TypeAdapter
from sqlalchemy.exc import SQLAlchemyError

from study_dashboard import intents
from study_dashboard.auth_utils import hash_password, verify_password
from study_dashboard.logging_config import get_logger, log_with_context
from study_dashboard.models import (
    ADMIN_ROLE,
    STUDENT_ROLE,
    Announcement,
    ExamAttempt,
    Module,
    User,
)
from study_dashboard.seed_data import initial_announcements, initial_modules
from study_dashboard.services.exam_simulator import ExamSimulator
from study_dashboard.services.module_editor import ModuleDraft
from study_dashboard.storage import (
    ANNOUNCEMENTS_KEY,
    CURRENT_USER_KEY,
    MODULES_KEY,
    USERS_KEY,
    KeyValueStore,
)
from study_dashboard.utils import is_blank, sanitize_text

logger = get_logger("controller")

_user_adapter = TypeAdapter(User)
_users_adapter = TypeAdapter(List[User])
_modules_adapter = TypeAdapter(List[Module])
_announcements_adapter = TypeAdapter(List[Announcement])


class View(str, Enum):
    DASHBOARD = "dashboard"
    MODULE = "module"
    EXAM = "exam"
    REVIEW = "review"
    EDIT_PROFILE = "editProfile"
    STUDENT_DETAIL = "studentDetail"
    EDIT_MODULE = "editModule"


AUTH_VIEW = "auth"


class Outcome(str, Enum):
    APPLIED = "applied"
    DENIED = "denied"
    NOT_FOUND = "not_found"
    IGNORED = "ignored"


class AuthError(Exception):
    """Login or registration rejected; the message is shown in the auth view."""


@dataclass
class AppState:
    current_user: Optional[User] = None
    all_users: List[User] = field(default_factory=list)  # only filled for admins
    is_primary_admin: bool = False
    current_view: str = View.DASHBOARD.value

    selected_module: Optional[Module] = None
    selected_student: Optional[User] = None
    module_to_edit: Optional[Module] = None
    last_attempt: Optional[ExamAttempt] = None

    modules: List[Module] = field(default_factory=list)
    announcements: List[Announcement] = field(default_factory=list)  # newest first

    # In-view state of the exam and module editor views
    exam: Optional[ExamSimulator] = None
    module_draft: Optional[ModuleDraft] = None

    ready: bool = False

    @property
    def latest_announcement(self) -> Optional[Announcement]:
        return self.announcements[0] if self.announcements else None


def find_user(users: List[User], email: str) -> int:
    """Index of the user with ``email`` (exact match), or -1."""
    for index, user in enumerate(users):
        if user.email == email:
            return index
    return -1


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AppController:
    # Intents a logged-out client may send
    PUBLIC_INTENTS = (intents.Register, intents.Login)
    ADMIN_INTENTS = (
        intents.SaveModule,
        intents.DeleteModule,
        intents.SaveAnnouncement,
        intents.DeleteAnnouncement,
        intents.SelectStudent,
        intents.EditModule,
    )

    def __init__(self, store: KeyValueStore, clock: Callable[[], datetime] = _utcnow):
        self.store = store
        self.state = AppState()
        self._clock = clock
        self._handlers: Dict[type, Callable] = {
            intents.Register: self._register,
            intents.Login: self._login,
            intents.Logout: self._logout,
            intents.UpdateProfile: self._update_profile,
            intents.CompleteExam: self._complete_exam,
            intents.PromoteUser: self._promote_user,
            intents.SaveModule: self._save_module,
            intents.DeleteModule: self._delete_module,
            intents.SaveAnnouncement: self._save_announcement,
            intents.DeleteAnnouncement: self._delete_announcement,
            intents.SelectModule: self._select_module,
            intents.StartExam: self._start_exam,
            intents.GoToReview: self._go_to_review,
            intents.EditProfile: self._edit_profile,
            intents.SelectStudent: self._select_student,
            intents.EditModule: self._edit_module,
            intents.GoToDashboard: self._go_to_dashboard,
        }

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """Load the catalog and restore a persisted session, once."""
        if self.state.ready:
            return

        self.state.modules = self._load_collection(MODULES_KEY, _modules_adapter, initial_modules)
        self.state.announcements = self._load_collection(
            ANNOUNCEMENTS_KEY, _announcements_adapter, initial_announcements
        )
        self._restore_session()
        self.state.ready = True

    def _load_collection(self, key: str, adapter: TypeAdapter, default_factory: Callable[[], list]) -> list:
        """Stored collection, or the defaults. Defaults are only written by
        the first mutation of the collection, so a visit that changes
        nothing leaves the store untouched."""
        raw = self.store.get(key)
        if raw is not None:
            try:
                return adapter.validate_json(raw)
            except ValueError:
                log_with_context(logger, "WARNING", f"Stored {key} is unreadable, using defaults",
                                 context={"key": key})
        return default_factory()

    def _restore_session(self) -> None:
        raw_user = self.store.get(CURRENT_USER_KEY)
        if raw_user is None:
            return
        try:
            user = _user_adapter.validate_json(raw_user)
            users = self._parse_users(self.store.get(USERS_KEY))
        except ValueError:
            log_with_context(logger, "WARNING", "Stored session is unreadable, logging out",
                             context={"key": CURRENT_USER_KEY})
            with self._persisting("remove stale session"):
                self.store.remove(CURRENT_USER_KEY)
            return
        self._enter_session(user, users)

    # ------------------------------------------------------------------
    # Dispatch and rendering
    # ------------------------------------------------------------------

    def dispatch(self, intent) -> Outcome:
        """Apply one intent. Raises AuthError for rejected credentials."""
        handler = self._handlers.get(type(intent))
        if handler is None:
            raise TypeError(f"Unknown intent: {type(intent).__name__}")

        if self.state.current_user is None and not isinstance(intent, self.PUBLIC_INTENTS):
            outcome = Outcome.DENIED
        elif isinstance(intent, self.ADMIN_INTENTS) and not self.state.current_user.is_admin:
            outcome = Outcome.DENIED
        else:
            outcome = handler(intent)

        log_with_context(logger, "INFO" if outcome == Outcome.APPLIED else "WARNING",
                         f"{type(intent).__name__} -> {outcome.value}",
                         context={"email": self.state.current_user.email if self.state.current_user else None},
                         extra_data={"view": self.state.current_view})
        return outcome

    @property
    def view_name(self) -> Optional[str]:
        """Name of the view to render, or None to render nothing."""
        state = self.state
        if not state.ready:
            return None
        if state.current_user is None:
            return AUTH_VIEW
        try:
            view = View(state.current_view)
        except ValueError:
            view = View.DASHBOARD
        if view == View.MODULE and state.selected_module is None:
            return None
        if view == View.STUDENT_DETAIL and state.selected_student is None:
            return None
        if view == View.EXAM and state.exam is None:
            return None
        if view == View.EDIT_MODULE and state.module_draft is None:
            return None
        if view == View.REVIEW and state.last_attempt is None:
            return None
        return view.value

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _persisting(self, description: str):
        """Run store writes as one transaction; failures are logged."""
        try:
            with self.store.transaction():
                yield
        except SQLAlchemyError:
            log_with_context(logger, "ERROR", f"Storage write failed: {description}", exc_info=True)

    @staticmethod
    def _parse_users(raw: Optional[str]) -> List[User]:
        return [] if raw is None else _users_adapter.validate_json(raw)

    def _read_users(self) -> List[User]:
        try:
            return self._parse_users(self.store.get(USERS_KEY))
        except ValueError:
            log_with_context(logger, "WARNING", "Stored users are unreadable, treating as empty",
                             context={"key": USERS_KEY})
            return []

    def _write_users(self, users: List[User]) -> None:
        self.store.set(USERS_KEY, _users_adapter.dump_json(users).decode())

    def _write_current_user(self, user: User) -> None:
        self.store.set(CURRENT_USER_KEY, _user_adapter.dump_json(user).decode())

    def _write_modules(self) -> None:
        with self._persisting("modules"):
            self.store.set(MODULES_KEY, _modules_adapter.dump_json(self.state.modules).decode())

    def _write_announcements(self) -> None:
        with self._persisting("announcements"):
            self.store.set(ANNOUNCEMENTS_KEY, _announcements_adapter.dump_json(self.state.announcements).decode())

    def now_ms(self) -> int:
        return int(self._clock().timestamp() * 1000)

    # ------------------------------------------------------------------
    # User and session lifecycle
    # ------------------------------------------------------------------

    def _enter_session(self, user: User, users: List[User]) -> None:
        index = find_user(users, user.email)
        self.state.current_user = user
        self.state.is_primary_admin = index != -1 and users[index].is_primary_admin
        self.state.all_users = list(users) if user.is_admin else []

    def _login_success(self, user: User, users: List[User], is_new_user: bool) -> None:
        self._enter_session(user, users)
        self.state.current_view = (View.EDIT_PROFILE if is_new_user else View.DASHBOARD).value

    def _register(self, intent: intents.Register) -> Outcome:
        email = intent.email.strip()
        if is_blank(email) or "@" not in email:
            raise AuthError("Please enter a valid email address.")
        if is_blank(intent.password):
            raise AuthError("Please enter a password.")

        users = self._read_users()
        if find_user(users, email) != -1:
            raise AuthError("An account with this email already exists.")

        # The first account of a store is its primary admin
        first = not users
        user = User(
            email=email,
            password=hash_password(intent.password),
            role=ADMIN_ROLE if first else STUDENT_ROLE,
            is_primary_admin=first,
        )
        users.append(user)
        with self._persisting("register"):
            self._write_users(users)
            self._write_current_user(user)
        self._login_success(user, users, is_new_user=True)
        return Outcome.APPLIED

    def _login(self, intent: intents.Login) -> Outcome:
        users = self._read_users()
        index = find_user(users, intent.email.strip())
        if index == -1 or not verify_password(intent.password, users[index].password):
            raise AuthError("Invalid email or password.")
        user = users[index]
        with self._persisting("login"):
            self._write_current_user(user)
        self._login_success(user, users, is_new_user=False)
        return Outcome.APPLIED

    def _logout(self, intent: intents.Logout) -> Outcome:
        with self._persisting("logout"):
            self.store.remove(CURRENT_USER_KEY)
        state = self.state
        state.current_user = None
        state.all_users = []
        state.is_primary_admin = False
        state.last_attempt = None
        self._clear_selection()
        state.current_view = View.DASHBOARD.value
        return Outcome.APPLIED

    def _update_profile(self, intent: intents.UpdateProfile) -> Outcome:
        updated = intent.user
        if updated.email != self.state.current_user.email:
            return Outcome.DENIED
        users = self._read_users()
        index = find_user(users, updated.email)
        if index == -1:
            users.append(updated)
        else:
            users[index] = updated

        with self._persisting("profile update"):
            self._write_users(users)
            self._write_current_user(updated)

        self.state.current_user = updated
        if updated.is_admin:
            self.state.all_users = users
        self.state.current_view = View.DASHBOARD.value
        return Outcome.APPLIED

    def _complete_exam(self, intent: intents.CompleteExam) -> Outcome:
        current = self.state.current_user
        attempt = intent.attempt.model_copy(update={"date": self._clock()})

        users = self._read_users()
        index = find_user(users, current.email)
        if index != -1:
            history = [*users[index].exam_history, attempt]
            users[index] = users[index].model_copy(update={"exam_history": history})
            updated_current = current.model_copy(update={"exam_history": list(history)})
            with self._persisting("exam history"):
                self._write_users(users)
                self._write_current_user(updated_current)
            self.state.current_user = updated_current
            if current.is_admin:
                self.state.all_users = users
        else:
            log_with_context(logger, "WARNING", "Current user missing from the user collection",
                             context={"email": current.email})

        self.state.last_attempt = attempt
        self.state.exam = None
        self.state.current_view = View.REVIEW.value
        log_with_context(logger, "INFO", f"Exam recorded: {attempt.score}/{attempt.total}",
                         context={"email": current.email}, extra_data={"score": attempt.score})
        return Outcome.APPLIED

    def _promote_user(self, intent: intents.PromoteUser) -> Outcome:
        if not self.state.is_primary_admin:
            return Outcome.DENIED

        users = self._read_users()
        index = find_user(users, intent.email)
        if index == -1:
            return Outcome.NOT_FOUND

        users[index] = users[index].model_copy(update={"role": ADMIN_ROLE})
        with self._persisting("promote"):
            self._write_users(users)
        self.state.all_users = list(users)
        return Outcome.APPLIED

    # ------------------------------------------------------------------
    # Modules and announcements
    # ------------------------------------------------------------------

    def _save_module(self, intent: intents.SaveModule) -> Outcome:
        module = intent.module
        modules = list(self.state.modules)
        for index, existing in enumerate(modules):
            if existing.id == module.id:
                modules[index] = module
                break
        else:
            modules.append(module)
        self.state.modules = modules
        self._write_modules()

        self.state.module_to_edit = None
        self.state.module_draft = None
        self.state.current_view = View.DASHBOARD.value
        return Outcome.APPLIED

    def _delete_module(self, intent: intents.DeleteModule) -> Outcome:
        if not intent.confirmed:
            return Outcome.IGNORED
        remaining = [m for m in self.state.modules if m.id != intent.module_id]
        if len(remaining) == len(self.state.modules):
            return Outcome.NOT_FOUND
        self.state.modules = remaining
        self._write_modules()
        return Outcome.APPLIED

    def _save_announcement(self, intent: intents.SaveAnnouncement) -> Outcome:
        content = sanitize_text(intent.content)
        if not content:
            return Outcome.IGNORED

        now_ms = self.now_ms()
        taken = {a.id for a in self.state.announcements}
        while str(now_ms) in taken:
            now_ms += 1
        announcement = Announcement(id=str(now_ms), content=content, date=self._clock())

        self.state.announcements = [announcement, *self.state.announcements]
        self._write_announcements()
        return Outcome.APPLIED

    def _delete_announcement(self, intent: intents.DeleteAnnouncement) -> Outcome:
        remaining = [a for a in self.state.announcements if a.id != intent.announcement_id]
        if len(remaining) == len(self.state.announcements):
            return Outcome.NOT_FOUND
        self.state.announcements = remaining
        self._write_announcements()
        return Outcome.APPLIED

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def _clear_selection(self) -> None:
        state = self.state
        state.selected_module = None
        state.selected_student = None
        state.module_to_edit = None
        state.exam = None
        state.module_draft = None

    def _select_module(self, intent: intents.SelectModule) -> Outcome:
        module = next((m for m in self.state.modules if m.id == intent.module_id), None)
        if module is None:
            return Outcome.NOT_FOUND
        self.state.selected_module = module
        self.state.current_view = View.MODULE.value
        return Outcome.APPLIED

    def _start_exam(self, intent: intents.StartExam) -> Outcome:
        self.state.exam = ExamSimulator()
        self.state.current_view = View.EXAM.value
        return Outcome.APPLIED

    def _go_to_review(self, intent: intents.GoToReview) -> Outcome:
        if self.state.last_attempt is None:
            return Outcome.IGNORED
        self.state.current_view = View.REVIEW.value
        return Outcome.APPLIED

    def _edit_profile(self, intent: intents.EditProfile) -> Outcome:
        self.state.current_view = View.EDIT_PROFILE.value
        return Outcome.APPLIED

    def _select_student(self, intent: intents.SelectStudent) -> Outcome:
        index = find_user(self.state.all_users, intent.email)
        if index == -1:
            return Outcome.NOT_FOUND
        self.state.selected_student = self.state.all_users[index]
        self.state.current_view = View.STUDENT_DETAIL.value
        return Outcome.APPLIED

    def _edit_module(self, intent: intents.EditModule) -> Outcome:
        module = None
        if intent.module_id is not None:
            module = next((m for m in self.state.modules if m.id == intent.module_id), None)
            if module is None:
                return Outcome.NOT_FOUND
        self.state.module_to_edit = module
        self.state.module_draft = ModuleDraft(module)
        self.state.current_view = View.EDIT_MODULE.value
        return Outcome.APPLIED

    def _go_to_dashboard(self, intent: intents.GoToDashboard) -> Outcome:
        self._clear_selection()
        self.state.current_view = View.DASHBOARD.value
        return Outcome.APPLIED


class ControllerRegistry:
    """One controller per browser client, least recently used first out.

    An evicted client is rebuilt from its store on its next request; only
    the transient view state (current view, selections, an open exam) is
    lost, as after a page reload.
    """

    def __init__(self, engine, clock: Callable[[], datetime] = _utcnow, max_clients: int = 1000):
        self.engine = engine
        self.clock = clock
        self.max_clients = max_clients
        self._controllers: "OrderedDict[str, AppController]" = OrderedDict()

    def get(self, client_id: str) -> AppController:
        controller = self._controllers.get(client_id)
        if controller is not None:
            self._controllers.move_to_end(client_id)
            return controller

        controller = AppController(KeyValueStore(self.engine, client_id), clock=self.clock)
        controller.initialize()
        self._controllers[client_id] = controller
        while len(self._controllers) > self.max_clients:
            evicted, _ = self._controllers.popitem(last=False)
            log_with_context(logger, "DEBUG", "Evicted idle client controller", context={"client_id": evicted})
        return controller

    def __contains__(self, client_id: str) -> bool:
        return client_id in self._controllers

    def __len__(self) -> int:
        return len(self._controllers)
