# enrollment_portal/schemas/enrollment_schemas.py
"""Pydantic schemas for the Enrollment entity.

Field names match the stored document keys (camelCase).
"""
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

EnrollmentStatus = Literal['submitted', 'verified', 'printed', 'rejected', 'archived']
EnrollmentType = Literal['junior', 'senior']
Strand = Literal['STEM', 'HUMSS', 'ABM']
Semester = Literal['1st', '2nd']

ENROLLMENT_STATUSES = ('submitted', 'verified', 'printed', 'rejected', 'archived')


class EnrollmentBase(BaseModel):
    model_config = ConfigDict(extra='ignore')

    userId: Optional[str] = None
    userEmail: Optional[str] = None
    schoolYear: str = Field(..., min_length=1, max_length=20)

    # Personal info
    lrn: str
    fullName: str
    birthDate: str
    age: int
    gender: Literal['Male', 'Female']
    religion: str
    address: str

    # Academic info
    lastSchool: str = ''
    generalAverage: float
    isTransferee: bool = False

    # Contact info
    guardianName: str
    guardianRelation: str
    contactNumber: str

    studentSignature: Optional[str] = None
    parentSignature: Optional[str] = None

    @field_validator('gradeLevel', mode='before', check_fields=False)
    @classmethod
    def grade_level_as_string(cls, v):
        return str(v) if isinstance(v, int) else v


class JuniorHighEnrollment(EnrollmentBase):
    type: Literal['junior']
    gradeLevel: Literal['7', '8', '9', '10']

    # Documents
    hasForm10: bool = False
    hasPSA: bool = False
    hasBaptismal: bool = False
    hasGoodMoral: bool = False

    hasAcademicExcellence: bool = False


class SeniorHighEnrollment(EnrollmentBase):
    type: Literal['senior']
    gradeLevel: Literal['11', '12']
    strand: Strand
    semester: Semester
    isESCGrantee: bool = False

    birthPlace: str

    # Parents info
    fatherName: str
    fatherOccupation: str = ''
    motherName: str
    motherOccupation: str = ''

    # Documents
    hasForm9: bool = False
    hasForm10: bool = False
    hasPSA: bool = False
    hasMoral: bool = False
    hasBaptismal: bool = False
    hasCompletionCert: bool = False
    hasESC: bool = False
    hasNCAE: bool = False

    hasAcademicAward: bool = False


EnrollmentCreate = Annotated[
    Union[JuniorHighEnrollment, SeniorHighEnrollment],
    Field(discriminator='type')
]
enrollment_adapter = TypeAdapter(EnrollmentCreate)


class EnrollmentUpdate(BaseModel):
    """Partial update of an enrollment.

    Only declared fields are accepted, so owner, timestamps and the encryption
    envelope cannot be written through this model. ``type`` is accepted only
    to be refused by the repository when it differs from the stored value.
    """
    model_config = ConfigDict(extra='forbid')

    type: Optional[EnrollmentType] = None
    status: Optional[EnrollmentStatus] = None
    adminNotes: Optional[str] = Field(default=None, max_length=2000)
    rejectionReason: Optional[str] = Field(default=None, max_length=500)
    teacherSignature: Optional[str] = None
    principalSignature: Optional[str] = None
    cashierSignature: Optional[str] = None

    # Corrections to the submitted form
    lrn: Optional[str] = None
    fullName: Optional[str] = None
    birthDate: Optional[str] = None
    birthPlace: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[Literal['Male', 'Female']] = None
    religion: Optional[str] = None
    address: Optional[str] = None
    lastSchool: Optional[str] = None
    generalAverage: Optional[float] = None
    isTransferee: Optional[bool] = None
    guardianName: Optional[str] = None
    guardianRelation: Optional[str] = None
    contactNumber: Optional[str] = None
    fatherName: Optional[str] = None
    fatherOccupation: Optional[str] = None
    motherName: Optional[str] = None
    motherOccupation: Optional[str] = None
    gradeLevel: Optional[str] = None
    strand: Optional[Strand] = None
    semester: Optional[Semester] = None
    isESCGrantee: Optional[bool] = None

    hasForm9: Optional[bool] = None
    hasForm10: Optional[bool] = None
    hasPSA: Optional[bool] = None
    hasMoral: Optional[bool] = None
    hasGoodMoral: Optional[bool] = None
    hasBaptismal: Optional[bool] = None
    hasCompletionCert: Optional[bool] = None
    hasESC: Optional[bool] = None
    hasNCAE: Optional[bool] = None

    @field_validator('gradeLevel', mode='before')
    @classmethod
    def grade_level_as_string(cls, v):
        return str(v) if isinstance(v, int) else v


class StatusUpdate(BaseModel):
    status: EnrollmentStatus
    rejectionReason: Optional[str] = Field(default=None, max_length=500)


class BatchUpdateItem(BaseModel):
    id: str = Field(..., min_length=1)
    data: EnrollmentUpdate


class BatchUpdateRequest(BaseModel):
    updates: List[BatchUpdateItem] = Field(..., min_length=1, max_length=500)


class BatchIdsRequest(BaseModel):
    ids: List[str] = Field(..., min_length=1, max_length=250)


class EnrollmentFilters(BaseModel):
    status: Optional[EnrollmentStatus] = None
    type: Optional[EnrollmentType] = None
    schoolYear: Optional[str] = None
    searchTerm: Optional[str] = None

    def store_filters(self) -> Dict[str, Any]:
        """Equality filters pushed to the store (search is applied in memory)."""
        return {
            k: v for k, v in self.model_dump(exclude={'searchTerm'}).items()
            if v is not None
        }


class DashboardStats(BaseModel):
    total: int
    byStatus: Dict[str, int]
    byType: Dict[str, int]
    todayCount: int
    weekCount: int


class DailyActivity(BaseModel):
    date: str
    count: int
    verified: int
    rejected: int
