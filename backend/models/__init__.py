from models.base import Base
from models.change_request import ChangeRequest
from models.conflict import Conflict
from models.course import Course
from models.course_completion import CourseCompletion
from models.course_rule import CourseRule
from models.notification import Notification
from models.rule import Rule
from models.schedule import Schedule, ScheduleCourse
from models.school_settings import SchoolSettings
from models.student import Student
from models.user import User

__all__ = [
	"Base",
	"ChangeRequest",
	"Conflict",
	"Course",
	"CourseCompletion",
	"CourseRule",
	"Notification",
	"Rule",
	"Schedule",
	"ScheduleCourse",
	"SchoolSettings",
	"Student",
	"User",
]
