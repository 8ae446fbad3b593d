from timetabler.models.faculty import Faculty  # noqa: F401
from timetabler.models.school_class import SchoolClass  # noqa: F401
from timetabler.models.subject import Subject  # noqa: F401
from timetabler.models.timetable import Timetable  # noqa: F401
