"""Course, learner and review store backed by MySQL"""
from __future__ import annotations

import asyncio
import json
import logging
from collections import defaultdict
from typing import Any, Dict, FrozenSet, Iterator, List, Optional, Protocol, Sequence, Tuple

import pymysql

from course_recommender.core.database import MySQLClient
from course_recommender.models.domain import (
    Course,
    Learner,
    PeerHistory,
    ReviewCounts,
    ReviewStats,
    VersionedEmbedding,
)

logger = logging.getLogger(__name__)

CLASS_COLUMNS = """
    c.id, c.subject_number, c.aliases, c.subject_title, c.department,
    c.description, c.prerequisites, c.corequisites, c.academic_year,
    c.term, c.offered, c.gir_attributes
"""


class CourseStore(Protocol):
    """Read-only access to the catalog, learners, reviews and stored embeddings"""

    async def get_course(self, course_id: str) -> Optional[Course]: ...

    async def get_learner(self, learner_id: str) -> Optional[Learner]: ...

    async def find_offered_by_subjects(self, subject_numbers: Sequence[str]) -> List[Course]: ...

    async def find_offered_by_ids(self, course_ids: Sequence[str]) -> List[Course]: ...

    async def find_offered_in_departments(
        self, departments: Sequence[str], exclude_ids: Sequence[str] = ()
    ) -> List[Course]: ...

    async def find_by_subject_or_alias(self, subject_number: str) -> Optional[Course]: ...

    async def find_offered_mentioning(self, subject_number: str) -> List[Course]: ...

    async def find_offered_in_year(
        self, academic_year: int, department: Optional[str] = None
    ) -> List[Course]: ...

    async def get_peer_histories(
        self, learner_id: str, subject_numbers: Sequence[str]
    ) -> List[PeerHistory]: ...

    async def get_department_review_stats(self, departments: Sequence[str]) -> List[ReviewStats]: ...

    async def get_embedding(
        self, course_ids: Sequence[str], embedding_type: str
    ) -> Optional[VersionedEmbedding]: ...

    async def count_reviews(self, learner_id: str) -> ReviewCounts: ...


def _split(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item for item in value.split("|") if item]


def row_to_course(row: Dict[str, Any]) -> Course:
    return Course(
        course_id=str(row["id"]),
        subject_number=row.get("subject_number") or "",
        title=row.get("subject_title") or "",
        department=row.get("department") or "",
        description=row.get("description"),
        prerequisites=row.get("prerequisites"),
        corequisites=row.get("corequisites"),
        aliases=_split(row.get("aliases")),
        academic_year=int(row.get("academic_year") or 0),
        term=row.get("term"),
        offered=bool(row.get("offered")),
        gir_attributes=_split(row.get("gir_attributes")),
    )


class MySQLCourseStore:
    """CourseStore implementation; each blocking query runs in a worker thread"""

    def __init__(self, mysql_client: MySQLClient):
        self.mysql_client = mysql_client

    def _fetch_all(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        conn = self.mysql_client.get_connection()
        try:
            with conn.cursor(pymysql.cursors.DictCursor) as cursor:
                cursor.execute(sql, params)
                return list(cursor.fetchall())
        finally:
            conn.close()

    async def _query(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(self._fetch_all, sql, params)

    async def _courses(self, sql: str, params: Sequence[Any] = ()) -> List[Course]:
        return [row_to_course(row) for row in await self._query(sql, params)]

    async def get_course(self, course_id: str) -> Optional[Course]:
        courses = await self._courses(
            f"SELECT {CLASS_COLUMNS} FROM classes c WHERE c.id = %s", (course_id,)
        )
        return courses[0] if courses else None

    async def get_learner(self, learner_id: str) -> Optional[Learner]:
        rows = await self._query(
            "SELECT id, last_grade_report_upload FROM users WHERE id = %s",
            (learner_id,),
        )
        if not rows:
            return None
        user = rows[0]

        taken, departments = await asyncio.gather(
            self._courses(
                f"""
                SELECT {CLASS_COLUMNS}
                FROM user_classes uc JOIN classes c ON c.id = uc.class_id
                WHERE uc.user_id = %s
                ORDER BY uc.id
                """,
                (learner_id,),
            ),
            self._query(
                "SELECT department_code FROM user_departments WHERE user_id = %s",
                (learner_id,),
            ),
        )
        return Learner(
            learner_id=str(user["id"]),
            taken=taken,
            departments=[row["department_code"] for row in departments],
            last_contribution_at=user.get("last_grade_report_upload"),
        )

    async def find_offered_by_subjects(self, subject_numbers: Sequence[str]) -> List[Course]:
        if not subject_numbers:
            return []
        return await self._courses(
            f"""
            SELECT {CLASS_COLUMNS} FROM classes c
            WHERE c.subject_number IN %s AND c.offered = 1
            ORDER BY c.academic_year DESC, c.id
            """,
            (tuple(subject_numbers),),
        )

    async def find_offered_by_ids(self, course_ids: Sequence[str]) -> List[Course]:
        if not course_ids:
            return []
        return await self._courses(
            f"SELECT {CLASS_COLUMNS} FROM classes c WHERE c.id IN %s AND c.offered = 1",
            (tuple(course_ids),),
        )

    async def find_offered_in_departments(
        self, departments: Sequence[str], exclude_ids: Sequence[str] = ()
    ) -> List[Course]:
        if not departments:
            return []
        sql = f"SELECT {CLASS_COLUMNS} FROM classes c WHERE c.department IN %s AND c.offered = 1"
        params: List[Any] = [tuple(departments)]
        if exclude_ids:
            sql += " AND c.id NOT IN %s"
            params.append(tuple(exclude_ids))
        return await self._courses(sql + " ORDER BY c.academic_year DESC, c.id", params)

    async def find_by_subject_or_alias(self, subject_number: str) -> Optional[Course]:
        courses = await self._courses(
            f"""
            SELECT {CLASS_COLUMNS} FROM classes c
            WHERE c.offered = 1
              AND (c.subject_number = %s OR CONCAT('|', c.aliases, '|') LIKE %s)
            ORDER BY c.academic_year DESC
            LIMIT 1
            """,
            (subject_number, f"%|{subject_number}|%"),
        )
        return courses[0] if courses else None

    async def find_offered_mentioning(self, subject_number: str) -> List[Course]:
        pattern = f"%{subject_number}%"
        return await self._courses(
            f"""
            SELECT {CLASS_COLUMNS} FROM classes c
            WHERE c.offered = 1 AND (c.prerequisites LIKE %s OR c.corequisites LIKE %s)
            """,
            (pattern, pattern),
        )

    async def find_offered_in_year(
        self, academic_year: int, department: Optional[str] = None
    ) -> List[Course]:
        sql = f"""
            SELECT {CLASS_COLUMNS} FROM classes c
            WHERE c.academic_year = %s AND c.offered = 1
              AND c.description IS NOT NULL AND c.description <> ''
        """
        params: List[Any] = [academic_year]
        if department:
            sql += " AND c.department = %s"
            params.append(department)
        return await self._courses(sql, params)

    async def get_peer_histories(
        self, learner_id: str, subject_numbers: Sequence[str]
    ) -> List[PeerHistory]:
        if not subject_numbers:
            return []
        rows = await self._query(
            """
            SELECT uc.user_id, c.subject_number
            FROM user_classes uc JOIN classes c ON c.id = uc.class_id
            WHERE uc.user_id IN (
                SELECT DISTINCT uc2.user_id
                FROM user_classes uc2 JOIN classes c2 ON c2.id = uc2.class_id
                WHERE c2.subject_number IN %s AND uc2.user_id <> %s
            )
            ORDER BY uc.user_id, uc.id
            """,
            (tuple(subject_numbers), learner_id),
        )
        histories: Dict[str, List[str]] = defaultdict(list)
        for row in rows:
            histories[str(row["user_id"])].append(row["subject_number"])
        return [
            PeerHistory(learner_id=peer_id, subject_numbers=frozenset(numbers))
            for peer_id, numbers in histories.items()
        ]

    async def get_department_review_stats(self, departments: Sequence[str]) -> List[ReviewStats]:
        if not departments:
            return []
        rows = await self._query(
            """
            SELECT c.subject_number,
                   MIN(c.department) AS department,
                   AVG(r.overall_rating) AS avg_rating,
                   COUNT(*) AS review_count
            FROM class_reviews r JOIN classes c ON c.id = r.class_id
            WHERE c.department IN %s AND c.offered = 1
            GROUP BY c.subject_number
            """,
            (tuple(departments),),
        )
        return [
            ReviewStats(
                subject_number=row["subject_number"],
                department=row["department"],
                average_rating=float(row["avg_rating"] or 0.0),
                review_count=int(row["review_count"]),
            )
            for row in rows
        ]

    async def get_embedding(
        self, course_ids: Sequence[str], embedding_type: str
    ) -> Optional[VersionedEmbedding]:
        if not course_ids:
            return None
        rows = await self._query(
            """
            SELECT class_id, embedding_type, embedding, embedding_model,
                   source_text, source_author_ids, last_updated
            FROM course_embeddings
            WHERE class_id IN %s AND embedding_type = %s
            ORDER BY last_updated DESC
            LIMIT 1
            """,
            (tuple(course_ids), embedding_type),
        )
        if not rows:
            return None
        return row_to_embedding(rows[0])

    async def count_reviews(self, learner_id: str) -> ReviewCounts:
        rows = await self._query(
            """
            SELECT COUNT(*) AS total,
                   COALESCE(SUM(CASE WHEN partial = 1 THEN 0 ELSE 1 END), 0) AS full_reviews
            FROM class_reviews WHERE author_id = %s
            """,
            (learner_id,),
        )
        row = rows[0] if rows else {"total": 0, "full_reviews": 0}
        return ReviewCounts(total=int(row["total"]), full=int(row["full_reviews"]))

    # Offline access used by the embedding indexer

    def iter_embeddings(self, batch_size: int = 500) -> Iterator[Tuple[VersionedEmbedding, str]]:
        """Every stored embedding with a short text label of its course, in batches"""
        offset = 0
        while True:
            rows = self._fetch_all(
                """
                SELECT e.id, e.class_id, e.embedding_type, e.embedding, e.embedding_model,
                       e.source_text, e.source_author_ids, e.last_updated,
                       c.subject_number, c.subject_title
                FROM course_embeddings e JOIN classes c ON c.id = e.class_id
                ORDER BY e.id
                LIMIT %s OFFSET %s
                """,
                (batch_size, offset),
            )
            if not rows:
                return
            for row in rows:
                yield row_to_embedding(row), f"{row['subject_number']} {row['subject_title']}"
            offset += len(rows)

    def opted_out_learner_ids(self) -> FrozenSet[str]:
        rows = self._fetch_all("SELECT id FROM users WHERE ai_embedding_opt_out = 1")
        return frozenset(str(row["id"]) for row in rows)


def row_to_embedding(row: Dict[str, Any]) -> VersionedEmbedding:
    raw_vector = row.get("embedding")
    vector = json.loads(raw_vector) if isinstance(raw_vector, (str, bytes)) else list(raw_vector or [])
    return VersionedEmbedding(
        course_id=str(row["class_id"]),
        embedding_type=row["embedding_type"],
        vector=[float(value) for value in vector],
        model_id=row.get("embedding_model") or "",
        generated_at=row.get("last_updated"),
        source_text=row.get("source_text") or "",
        contributor_ids=frozenset(_split(row.get("source_author_ids"))),
    )
