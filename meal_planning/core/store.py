"""
记录存储
定义服务层依赖的存储接口，以及基于 DuckDB 的实现

服务层只依赖 RecordStore 接口；ID 由存储自行分配，调用方只假定其唯一。
"""

import json
from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .database import DatabaseManager
from .exceptions import DuplicateSubmissionError, DuplicateUsernameError
from ..models.submission import (
    AuditLog,
    MealCount,
    MealCountInput,
    MealSubmissionWithCounts,
    SubmissionStatus,
)
from ..models.user import User, UserRole


class RecordStore(ABC):
    """用户、提交记录和餐段人数的键值存储接口"""

    # 用户
    @abstractmethod
    def get_user(self, user_id: int) -> Optional[User]:
        ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[User]:
        ...

    @abstractmethod
    def create_user(self, username: str, password_hash: str,
                    display_name: str, role: UserRole) -> User:
        ...

    @abstractmethod
    def list_users(self) -> List[User]:
        ...

    # 提交记录
    @abstractmethod
    def create_submission(
        self,
        user_id: int,
        meal_date: date,
        submitted_at: datetime,
        notes: Optional[str],
        counts: Sequence[Tuple[str, MealCountInput]],
        unique_per_date: bool = False,
    ) -> int:
        """原子地写入一条提交和它的全部餐段人数，返回提交ID"""

    @abstractmethod
    def get_submission(self, submission_id: int) -> Optional[MealSubmissionWithCounts]:
        ...

    @abstractmethod
    def list_submissions(
        self,
        user_id: Optional[int] = None,
        meal_date: Optional[date] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[MealSubmissionWithCounts]:
        """按条件筛选提交记录，条件之间为 AND 关系"""

    @abstractmethod
    def update_submission_status(self, submission_id: int, status: SubmissionStatus,
                                 actor_id: Optional[int] = None) -> bool:
        """覆盖提交状态，记录不存在时返回 False"""

    # 日志
    @abstractmethod
    def add_log(self, action: str, user_id: Optional[int] = None,
                actor_id: Optional[int] = None, ref_id: Optional[int] = None,
                detail: Optional[Dict[str, Any]] = None) -> None:
        ...

    @abstractmethod
    def list_logs(self, ref_id: Optional[int] = None,
                  action_prefix: Optional[str] = None) -> List[AuditLog]:
        ...


def _rows_as_dicts(cursor) -> List[Dict[str, Any]]:
    columns = [d[0] for d in cursor.description]
    return [dict(zip(columns, row)) for row in cursor.fetchall()]


def _placeholders(values: Sequence) -> str:
    return ",".join("?" for _ in values)


class DuckDBRecordStore(RecordStore):
    """基于 DuckDB 的存储实现"""

    USER_COLUMNS = "id, username, password_hash, display_name, role"
    SUBMISSION_COLUMNS = "id, user_id, submission_date, meal_date, status, notes"

    def __init__(self, db: DatabaseManager):
        self.db = db

    # ---- 用户 ----

    def get_user(self, user_id: int) -> Optional[User]:
        with self.db.cursor() as conn:
            rows = _rows_as_dicts(conn.execute(
                f"SELECT {self.USER_COLUMNS} FROM users WHERE id = ?", [user_id]))
        return User(**rows[0]) if rows else None

    def get_user_by_username(self, username: str) -> Optional[User]:
        with self.db.cursor() as conn:
            rows = _rows_as_dicts(conn.execute(
                f"SELECT {self.USER_COLUMNS} FROM users WHERE username = ?", [username]))
        return User(**rows[0]) if rows else None

    def create_user(self, username: str, password_hash: str,
                    display_name: str, role: UserRole) -> User:
        with self.db.transaction() as conn:
            existing = conn.execute(
                "SELECT 1 FROM users WHERE username = ?", [username]).fetchone()
            if existing:
                raise DuplicateUsernameError("Username already exists",
                                             details={"username": username})
            row = conn.execute(
                """
                INSERT INTO users (username, password_hash, display_name, role)
                VALUES (?, ?, ?, ?)
                RETURNING id
                """,
                [username, password_hash, display_name, UserRole(role).value]
            ).fetchone()
        return User(id=row[0], username=username, password_hash=password_hash,
                    display_name=display_name, role=role)

    def list_users(self) -> List[User]:
        with self.db.cursor() as conn:
            rows = _rows_as_dicts(conn.execute(
                f"SELECT {self.USER_COLUMNS} FROM users ORDER BY id"))
        return [User(**row) for row in rows]

    # ---- 提交记录 ----

    def create_submission(
        self,
        user_id: int,
        meal_date: date,
        submitted_at: datetime,
        notes: Optional[str],
        counts: Sequence[Tuple[str, MealCountInput]],
        unique_per_date: bool = False,
    ) -> int:
        with self.db.transaction() as conn:
            if unique_per_date:
                existing = conn.execute(
                    "SELECT id FROM meal_submissions WHERE user_id = ? AND meal_date = ?",
                    [user_id, meal_date]
                ).fetchone()
                if existing:
                    raise DuplicateSubmissionError(
                        "A submission for this date already exists",
                        details={"submission_id": existing[0],
                                 "meal_date": meal_date.isoformat()}
                    )

            submission_id = conn.execute(
                """
                INSERT INTO meal_submissions (user_id, submission_date, meal_date, status, notes)
                VALUES (?, ?, ?, ?, ?)
                RETURNING id
                """,
                [user_id, submitted_at, meal_date, SubmissionStatus.PENDING.value, notes]
            ).fetchone()[0]

            for meal_type, count in counts:
                conn.execute(
                    """
                    INSERT INTO meal_counts
                        (submission_id, meal_type, adult_count, child_count, special_requirements)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    [submission_id, meal_type, count.adult_count,
                     count.child_count, count.special_requirements]
                )

            self._insert_log(conn, "submission_create", user_id=user_id, actor_id=user_id,
                             ref_id=submission_id,
                             detail={"meal_date": meal_date.isoformat(),
                                     "meal_types": [m for m, _ in counts]})
        return submission_id

    def get_submission(self, submission_id: int) -> Optional[MealSubmissionWithCounts]:
        with self.db.cursor() as conn:
            rows = _rows_as_dicts(conn.execute(
                f"SELECT {self.SUBMISSION_COLUMNS} FROM meal_submissions WHERE id = ?",
                [submission_id]))
            joined = self._join(conn, rows)
        return joined[0] if joined else None

    def list_submissions(
        self,
        user_id: Optional[int] = None,
        meal_date: Optional[date] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[MealSubmissionWithCounts]:
        conditions = []
        params: List[Any] = []
        if user_id is not None:
            conditions.append("user_id = ?")
            params.append(user_id)
        if meal_date is not None:
            conditions.append("meal_date = ?")
            params.append(meal_date)
        if start_date is not None:
            conditions.append("meal_date >= ?")
            params.append(start_date)
        if end_date is not None:
            conditions.append("meal_date <= ?")
            params.append(end_date)

        query = f"SELECT {self.SUBMISSION_COLUMNS} FROM meal_submissions"
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY id"

        with self.db.cursor() as conn:
            rows = _rows_as_dicts(conn.execute(query, params))
            return self._join(conn, rows)

    def update_submission_status(self, submission_id: int, status: SubmissionStatus,
                                 actor_id: Optional[int] = None) -> bool:
        status = SubmissionStatus(status)
        with self.db.transaction() as conn:
            row = conn.execute(
                "SELECT user_id, status FROM meal_submissions WHERE id = ?",
                [submission_id]
            ).fetchone()
            if not row:
                return False

            owner_id, previous = row
            conn.execute(
                "UPDATE meal_submissions SET status = ? WHERE id = ?",
                [status.value, submission_id]
            )
            self._insert_log(conn, "submission_status_change", user_id=owner_id,
                             actor_id=actor_id, ref_id=submission_id,
                             detail={"from": previous, "to": status.value})
        return True

    def _join(self, conn, rows: List[Dict[str, Any]]) -> List[MealSubmissionWithCounts]:
        """为提交记录补上提交人和餐段人数"""
        if not rows:
            return []

        user_ids = sorted({r["user_id"] for r in rows})
        users = {
            u["id"]: User(**u)
            for u in _rows_as_dicts(conn.execute(
                f"SELECT {self.USER_COLUMNS} FROM users WHERE id IN ({_placeholders(user_ids)})",
                user_ids))
        }

        submission_ids = [r["id"] for r in rows]
        counts: Dict[int, List[MealCount]] = {sid: [] for sid in submission_ids}
        for c in _rows_as_dicts(conn.execute(
            f"""
            SELECT id, submission_id, meal_type, adult_count, child_count, special_requirements
            FROM meal_counts
            WHERE submission_id IN ({_placeholders(submission_ids)})
            ORDER BY id
            """,
            submission_ids
        )):
            counts[c["submission_id"]].append(MealCount(**c))

        joined = []
        for r in rows:
            user = users.get(r["user_id"])
            if user is None:
                continue  # 提交人已不存在的孤儿记录
            joined.append(MealSubmissionWithCounts(**r, user=user, counts=counts[r["id"]]))
        return joined

    # ---- 日志 ----

    def add_log(self, action: str, user_id: Optional[int] = None,
                actor_id: Optional[int] = None, ref_id: Optional[int] = None,
                detail: Optional[Dict[str, Any]] = None) -> None:
        with self.db.transaction() as conn:
            self._insert_log(conn, action, user_id=user_id, actor_id=actor_id,
                             ref_id=ref_id, detail=detail)

    def list_logs(self, ref_id: Optional[int] = None,
                  action_prefix: Optional[str] = None) -> List[AuditLog]:
        conditions = []
        params: List[Any] = []
        if ref_id is not None:
            conditions.append("ref_id = ?")
            params.append(ref_id)
        if action_prefix:
            conditions.append("starts_with(action, ?)")
            params.append(action_prefix)

        query = "SELECT log_id, user_id, actor_id, action, ref_id, detail_json, created_at FROM logs"
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY log_id"

        with self.db.cursor() as conn:
            rows = _rows_as_dicts(conn.execute(query, params))

        logs = []
        for row in rows:
            raw = row.pop("detail_json")
            try:
                detail = json.loads(raw) if raw else {}
            except (json.JSONDecodeError, TypeError):
                detail = {}
            logs.append(AuditLog(**row, detail=detail))
        return logs

    @staticmethod
    def _insert_log(conn, action: str, user_id=None, actor_id=None, ref_id=None, detail=None):
        conn.execute(
            """
            INSERT INTO logs (user_id, actor_id, action, ref_id, detail_json)
            VALUES (?, ?, ?, ?, ?)
            """,
            [user_id, actor_id, action, ref_id,
             json.dumps(detail or {}, ensure_ascii=False, default=str)]
        )
