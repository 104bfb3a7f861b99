from .user import User
from .course import Course, CourseClass
from .enrollment import Enrollment, ClassAccessOverride
from .progress import Progress
from .certificate import Certificate, CertificateSequence
from .fee import FeeRecord
from .audit import AuditLog
