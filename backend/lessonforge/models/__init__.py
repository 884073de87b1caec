from lessonforge.models.availability import AvailabilityKind, UserAvailability  # noqa: F401
from lessonforge.models.booth import Booth  # noqa: F401
from lessonforge.models.class_series import ClassSeries, SeriesStatus  # noqa: F401
from lessonforge.models.class_session import ClassSession, SessionStatus  # noqa: F401
from lessonforge.models.person import PersonRole, PersonStatus, Student, Teacher  # noqa: F401
from lessonforge.models.subject import Subject, SubjectType  # noqa: F401
from lessonforge.models.vacation import Vacation  # noqa: F401
