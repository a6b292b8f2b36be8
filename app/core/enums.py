from enum import Enum


class SchoolYearStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class StudentStatus(str, Enum):
    PENDING = "Pending"
    APPROVAL = "Approval"
    APPROVED = "Approved"
    ENROLLED = "Enrolled"
    DENIED = "Denied"


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
