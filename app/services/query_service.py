import logging
import math
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import and_, distinct, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from app.core.config import settings
from app.core.exceptions import InternalError, ValidationError
from app.models.course import Course
from app.models.institute import Institute
from app.models.result import Result
from app.models.student import Student
from app.schemas.common import Pagination
from app.schemas.query import (
    GradeDistributionEntry,
    InstitutePerformance,
    InstituteResult,
    TopCourse,
    TopStudent,
)

logger = logging.getLogger(__name__)


@dataclass
class GradeDistribution:
    entries: List[GradeDistributionEntry]
    total_students: int


@dataclass
class InstituteResultsPage:
    rows: List[InstituteResult]
    pagination: Pagination


def _to_float(value) -> Optional[float]:
    # PostgreSQL 은 Decimal, SQLite 는 float 반환
    return None if value is None else float(value)


def _round2(value) -> Optional[float]:
    return None if value is None else round(float(value), 2)


# SQLite INTEGER / PostgreSQL BIGINT 상한
MAX_DB_INT = 2 ** 63 - 1
MIN_YEAR = 1900
MAX_YEAR = 2999


def check_limit(limit: Optional[int]) -> int:
    if limit is None:
        return settings.DEFAULT_PAGE_LIMIT
    if limit < 1:
        raise ValidationError("limit must be a positive integer")
    return min(limit, settings.MAX_PAGE_LIMIT)


def check_page(page: Optional[int], limit: int) -> int:
    if page is None:
        return 1
    if page < 1:
        raise ValidationError("page must be a positive integer")
    if (page - 1) * limit > MAX_DB_INT:
        raise ValidationError("page is out of range")
    return page


def check_year(year: Optional[int]) -> Optional[int]:
    if year is not None and not MIN_YEAR <= year <= MAX_YEAR:
        raise ValidationError(f"year must be between {MIN_YEAR} and {MAX_YEAR}")
    return year


class AggregationEngine:
    """
    성적 통계 조회 (고정된 쿼리 목록).
    모든 집계는 DB 쪽 GROUP BY / window function 으로 계산하고,
    파라미터는 전부 바인딩 파라미터로만 전달한다.
    """

    def __init__(self, db: Session):
        self.db = db

    def _median(self, column):
        if self.db.get_bind().dialect.name == "postgresql":
            return func.percentile_cont(0.5).within_group(column.asc())
        # SQLite 는 app.db.session 에서 등록한 median() 집계 함수 사용
        return func.median(column)

    def _run(self, operation: str, query, **params):
        try:
            return query.all()
        except SQLAlchemyError:
            logger.exception(f"{operation} failed - params={params}")
            raise InternalError()

    def top_courses_by_year(self, year: int, limit: Optional[int] = None) -> List[TopCourse]:
        year = check_year(year)
        limit = check_limit(limit)

        enrollment_count = func.count(Result.id)
        query = (
            self.db.query(
                Course.id,
                Course.name,
                Course.code,
                Course.credits,
                Course.year,
                enrollment_count.label("enrollment_count"),
                func.avg(Result.score).label("average_score"),
                func.max(Result.score).label("max_score"),
                func.min(Result.score).label("min_score"),
            )
            .join(Result, Result.course_id == Course.id)
            .filter(Course.year == year)
            .group_by(Course.id, Course.name, Course.code, Course.credits, Course.year)
            .order_by(enrollment_count.desc(), Course.id.asc())
            .limit(limit)
        )
        rows = self._run("top_courses_by_year", query, year=year, limit=limit)
        return [
            TopCourse(
                id=row.id,
                name=row.name,
                code=row.code,
                credits=row.credits,
                year=row.year,
                enrollment_count=row.enrollment_count,
                average_score=_to_float(row.average_score),
                max_score=_to_float(row.max_score),
                min_score=_to_float(row.min_score),
            )
            for row in rows
        ]

    def top_ranking_students(self, limit: Optional[int] = None, year: Optional[int] = None) -> List[TopStudent]:
        limit = check_limit(limit)
        year = check_year(year)

        average_score = func.avg(Result.score)
        query = (
            self.db.query(
                Student.id,
                Student.name,
                Student.email,
                Institute.name.label("institute_name"),
                func.count(Result.id).label("total_courses"),
                average_score.label("average_score"),
                func.sum(Result.score).label("total_score"),
                func.max(Result.score).label("highest_score"),
                func.min(Result.score).label("lowest_score"),
                func.rank().over(order_by=average_score.desc()).label("rank_position"),
            )
            .join(Result, Result.student_id == Student.id)
            .join(Institute, Student.institute_id == Institute.id)
        )
        # 연도 필터는 집계 이전(WHERE)에 적용 -> 평균과 순위 모집단 자체가 바뀜
        if year is not None:
            query = query.filter(Result.year == year)
        query = (
            query.group_by(Student.id, Student.name, Student.email, Institute.name)
            .order_by(average_score.desc(), Student.id.asc())
            .limit(limit)
        )
        rows = self._run("top_ranking_students", query, year=year, limit=limit)
        return [
            TopStudent(
                id=row.id,
                name=row.name,
                email=row.email,
                institute_name=row.institute_name,
                total_courses=row.total_courses,
                average_score=_to_float(row.average_score),
                total_score=_to_float(row.total_score),
                highest_score=_to_float(row.highest_score),
                lowest_score=_to_float(row.lowest_score),
                rank_position=int(row.rank_position),
            )
            for row in rows
        ]

    def institute_performance(self, year: Optional[int] = None) -> List[InstitutePerformance]:
        year = check_year(year)

        # 연도 조건을 JOIN 조건에 넣어야 결과가 없는 기관도 목록에 남는다
        result_join = Result.student_id == Student.id
        if year is not None:
            result_join = and_(result_join, Result.year == year)

        average_score = func.avg(Result.score)
        query = (
            self.db.query(
                Institute.id,
                Institute.name,
                Institute.address,
                Institute.contact,
                func.count(distinct(Student.id)).label("total_students"),
                func.count(distinct(Result.course_id)).label("total_courses_offered"),
                func.count(Result.id).label("total_results"),
                average_score.label("average_score"),
                func.max(Result.score).label("highest_score"),
                func.min(Result.score).label("lowest_score"),
                self._median(Result.score).label("median_score"),
            )
            .outerjoin(Student, Student.institute_id == Institute.id)
            .outerjoin(Result, result_join)
            .group_by(Institute.id, Institute.name, Institute.address, Institute.contact)
            .order_by(average_score.desc().nulls_last(), Institute.id.asc())
        )
        rows = self._run("institute_performance", query, year=year)
        return [
            InstitutePerformance(
                id=row.id,
                name=row.name,
                address=row.address,
                contact=row.contact,
                total_students=row.total_students,
                total_courses_offered=row.total_courses_offered,
                total_results=row.total_results,
                average_score=_to_float(row.average_score),
                highest_score=_to_float(row.highest_score),
                lowest_score=_to_float(row.lowest_score),
                median_score=_to_float(row.median_score),
            )
            for row in rows
        ]

    def course_grade_distribution(self, course_id: int) -> GradeDistribution:
        grade_count = func.count(Result.id)
        query = (
            self.db.query(
                Result.grade,
                grade_count.label("count"),
                (grade_count * 100.0 / func.sum(grade_count).over()).label("percentage"),
                func.avg(Result.score).label("average_score"),
            )
            .filter(Result.course_id == course_id)
            .group_by(Result.grade)
            .order_by(Result.grade.asc())
        )
        rows = self._run("course_grade_distribution", query, course_id=course_id)

        # 결과가 0건이면 그룹도 없으므로 나눗셈이 일어나지 않는다
        entries = [
            GradeDistributionEntry(
                grade=row.grade,
                count=row.count,
                percentage=_round2(row.percentage),
                average_score=_round2(row.average_score),
            )
            for row in rows
        ]
        return GradeDistribution(entries=entries, total_students=sum(e.count for e in entries))

    def institute_results(
        self,
        institute_id: int,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        year: Optional[int] = None,
    ) -> InstituteResultsPage:
        limit = check_limit(limit)
        page = check_page(page, limit)
        year = check_year(year)

        base = self.db.query(Result).filter(Result.institute_id == institute_id)
        if year is not None:
            base = base.filter(Result.year == year)

        try:
            total = base.with_entities(func.count(Result.id)).scalar()
            rows = (
                base.options(
                    joinedload(Result.student),
                    joinedload(Result.course),
                    joinedload(Result.institute),
                )
                .order_by(Result.score.desc(), Result.id.asc())
                .offset((page - 1) * limit)
                .limit(limit)
                .all()
            )
        except SQLAlchemyError:
            logger.exception(
                f"institute_results failed - institute_id={institute_id}, page={page}, limit={limit}, year={year}"
            )
            raise InternalError()

        return InstituteResultsPage(
            rows=[InstituteResult.model_validate(row) for row in rows],
            pagination=Pagination(
                page=page,
                limit=limit,
                total=total,
                total_pages=math.ceil(total / limit),
            ),
        )
