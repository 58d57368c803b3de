# Import all models so Alembic can discover them via Base.metadata
from .certificate import Certificate
from .course import Course
from .course_completion import CourseCompletion
from .user import User

__all__ = [
    "Certificate",
    "Course",
    "CourseCompletion",
    "User",
]
