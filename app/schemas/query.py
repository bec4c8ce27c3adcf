from typing import Optional, List

from app.schemas.common import CamelModel, Pagination


class TopCourse(CamelModel):
    id: int
    name: str
    code: str
    credits: int
    year: int
    enrollment_count: int
    average_score: float
    max_score: float
    min_score: float


class TopStudent(CamelModel):
    id: int
    name: str
    email: str
    institute_name: str
    total_courses: int
    average_score: float
    total_score: float
    highest_score: float
    lowest_score: float
    rank_position: int


class InstitutePerformance(CamelModel):
    id: int
    name: str
    address: Optional[str] = None
    contact: Optional[str] = None
    total_students: int
    total_courses_offered: int
    total_results: int
    # 결과가 없는 기관은 0 이 아니라 null
    average_score: Optional[float] = None
    highest_score: Optional[float] = None
    lowest_score: Optional[float] = None
    median_score: Optional[float] = None


class GradeDistributionEntry(CamelModel):
    grade: str
    count: int
    percentage: float
    average_score: float


class StudentSummary(CamelModel):
    id: int
    name: str
    email: str
    institute_id: int


class CourseSummary(CamelModel):
    id: int
    name: str
    code: str
    credits: int
    year: int


class InstituteSummary(CamelModel):
    id: int
    name: str
    address: Optional[str] = None
    contact: Optional[str] = None


class InstituteResult(CamelModel):
    id: int
    student_id: int
    course_id: int
    institute_id: int
    score: float
    grade: str
    year: int
    student: StudentSummary
    course: CourseSummary
    institute: InstituteSummary


class TopCoursesResponse(CamelModel):
    success: bool = True
    data: List[TopCourse]
    year: int


class TopStudentsResponse(CamelModel):
    success: bool = True
    data: List[TopStudent]
    year: Optional[int] = None


class InstitutePerformanceResponse(CamelModel):
    success: bool = True
    data: List[InstitutePerformance]
    year: Optional[int] = None


class GradeDistributionResponse(CamelModel):
    success: bool = True
    data: List[GradeDistributionEntry]
    total_students: int


class InstituteResultsResponse(CamelModel):
    success: bool = True
    data: List[InstituteResult]
    pagination: Pagination
