"""Intent objects: what a view asks the controller to do.

Views never call controller methods directly; they build one of these and
hand it to ``AppController.dispatch``.
"""

from dataclasses import dataclass
from typing import Optional

from study_dashboard.models import ExamAttempt, Module, User


@dataclass(frozen=True)
class Register:
    email: str
    password: str


@dataclass(frozen=True)
class Login:
    email: str
    password: str


@dataclass(frozen=True)
class Logout:
    pass


@dataclass(frozen=True)
class UpdateProfile:
    user: User


@dataclass(frozen=True)
class CompleteExam:
    attempt: ExamAttempt


@dataclass(frozen=True)
class PromoteUser:
    email: str


@dataclass(frozen=True)
class SaveModule:
    module: Module


@dataclass(frozen=True)
class DeleteModule:
    module_id: int
    confirmed: bool = False


@dataclass(frozen=True)
class SaveAnnouncement:
    content: str


@dataclass(frozen=True)
class DeleteAnnouncement:
    announcement_id: str


# Navigation


@dataclass(frozen=True)
class SelectModule:
    module_id: int


@dataclass(frozen=True)
class StartExam:
    pass


@dataclass(frozen=True)
class GoToReview:
    pass


@dataclass(frozen=True)
class EditProfile:
    pass


@dataclass(frozen=True)
class SelectStudent:
    email: str


@dataclass(frozen=True)
class EditModule:
    module_id: Optional[int] = None  # None creates a new module


@dataclass(frozen=True)
class GoToDashboard:
    pass
