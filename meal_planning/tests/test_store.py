"""
DuckDB 存储层测试
"""

import threading
from datetime import date, datetime, timedelta

import duckdb
import pytest

from meal_planning.core.database import MEMORY_PATH, resolve_db_path
from meal_planning.core.exceptions import (
    BaseApplicationError,
    ConcurrencyError,
    DatabaseError,
    DuplicateUsernameError,
)
from meal_planning.models.submission import MealCountInput, SubmissionStatus
from meal_planning.models.user import UserRole

from .utils.payloads import MEAL_TYPES


def _counts(*meal_types):
    return [(m, MealCountInput(adult_count=2, child_count=1)) for m in meal_types]


class TestDatabasePath:

    def test_memory(self):
        assert resolve_db_path("duckdb://:memory:") == MEMORY_PATH
        assert resolve_db_path("duckdb://") == MEMORY_PATH

    def test_file_path_creates_parent(self, tmp_path):
        target = tmp_path / "nested" / "meal.duckdb"
        assert resolve_db_path(f"duckdb://{target}") == str(target)
        assert target.parent.exists()


class TestRecordStore:
    """存储接口"""

    def test_user_round_trip(self, store):
        user = store.create_user("alice", "hash", "Alice", UserRole.ADMIN)
        loaded = store.get_user(user.id)
        assert loaded.username == "alice"
        assert loaded.role == UserRole.ADMIN
        assert loaded.password_hash == "hash"
        assert store.get_user_by_username("alice").id == user.id
        assert store.get_user(999) is None

    def test_duplicate_username(self, store):
        store.create_user("alice", "hash", "Alice", UserRole.STAFF)
        with pytest.raises(DuplicateUsernameError):
            store.create_user("alice", "hash2", "Alice 2", UserRole.STAFF)
        assert len(store.list_users()) == 1

    def test_ids_are_unique(self, store):
        user = store.create_user("alice", "hash", "Alice", UserRole.STAFF)
        ids = {
            store.create_submission(user.id, date(2024, 1, 11 + i), datetime(2024, 1, 10, 9), None,
                                    _counts("lunch"))
            for i in range(5)
        }
        assert len(ids) == 5

    def test_failed_batch_leaves_nothing(self, store):
        """同一提交重复的餐段违反唯一约束，整批回滚"""
        user = store.create_user("alice", "hash", "Alice", UserRole.STAFF)

        with pytest.raises(BaseApplicationError):
            store.create_submission(user.id, date(2024, 1, 11), datetime(2024, 1, 10, 9), None,
                                    _counts("lunch", "lunch"))

        assert store.list_submissions() == []
        assert store.list_logs() == []

        # 回滚后连接仍可正常使用
        sid = store.create_submission(user.id, date(2024, 1, 11), datetime(2024, 1, 10, 9), None,
                                      _counts("lunch"))
        assert store.get_submission(sid).counts[0].meal_type == "lunch"

    def test_filters_combine(self, store):
        alice = store.create_user("alice", "hash", "Alice", UserRole.STAFF)
        bob = store.create_user("bob", "hash", "Bob", UserRole.STAFF)
        for user, day in [(alice, 11), (alice, 12), (bob, 12), (bob, 14)]:
            store.create_submission(user.id, date(2024, 1, day), datetime(2024, 1, 10, 9), None,
                                    _counts("lunch"))

        assert len(store.list_submissions(user_id=alice.id)) == 2
        assert len(store.list_submissions(meal_date=date(2024, 1, 12))) == 2
        assert len(store.list_submissions(user_id=bob.id, meal_date=date(2024, 1, 12))) == 1
        in_range = store.list_submissions(start_date=date(2024, 1, 12), end_date=date(2024, 1, 14))
        assert [s.meal_date.day for s in in_range] == [12, 12, 14]

    def test_update_status(self, store):
        user = store.create_user("alice", "hash", "Alice", UserRole.STAFF)
        sid = store.create_submission(user.id, date(2024, 1, 11), datetime(2024, 1, 10, 9), "n",
                                      _counts("lunch"))

        assert store.update_submission_status(sid, SubmissionStatus.APPROVED, actor_id=user.id)
        assert store.get_submission(sid).status == SubmissionStatus.APPROVED
        assert store.update_submission_status(12345, SubmissionStatus.APPROVED) is False

    def test_logs(self, store):
        store.add_log("system_error", detail={"message": "boom"})
        store.add_log("submission_create", ref_id=7)

        assert [log.action for log in store.list_logs()] == ["system_error", "submission_create"]
        assert store.list_logs(action_prefix="system_")[0].detail == {"message": "boom"}
        assert store.list_logs(ref_id=7)[0].action == "submission_create"


class TestTransactions:
    """事务与并发读取"""

    def test_readers_never_see_partial_counts(self, store):
        """写入线程持续创建提交时，读取线程看到的每条提交都带有完整的餐段人数"""
        user = store.create_user("alice", "hash", "Alice", UserRole.STAFF)
        total = 40
        done = threading.Event()
        errors = []
        partial = []

        def writer():
            try:
                for i in range(total):
                    store.create_submission(
                        user.id, date(2024, 1, 11) + timedelta(days=i),
                        datetime(2024, 1, 10, 9), None, _counts(*MEAL_TYPES))
            except Exception as e:
                errors.append(e)
            finally:
                done.set()

        def reader():
            try:
                while True:
                    finished = done.is_set()
                    for record in store.list_submissions():
                        if len(record.counts) != len(MEAL_TYPES):
                            partial.append(record.id)
                    if finished:
                        break
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=writer), threading.Thread(target=reader)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=60)

        assert errors == []
        assert partial == []
        records = store.list_submissions()
        assert len(records) == total
        assert all([c.meal_type for c in r.counts] == MEAL_TYPES for r in records)

    def test_transaction_conflict_maps_to_concurrency_error(self, test_db, store):
        with pytest.raises(ConcurrencyError):
            with test_db.transaction():
                raise duckdb.TransactionException("Conflict on tuple deletion")

        # 回滚后连接仍可用
        assert test_db.ping()

    def test_other_database_errors_map_to_database_error(self, test_db):
        with pytest.raises(DatabaseError):
            with test_db.transaction() as conn:
                conn.execute("SELECT * FROM no_such_table")
        assert test_db.ping()

    def test_application_errors_propagate_unchanged(self, test_db, store):
        user = store.create_user("alice", "hash", "Alice", UserRole.STAFF)
        with pytest.raises(DuplicateUsernameError):
            with test_db.transaction() as conn:
                conn.execute(
                    "INSERT INTO logs (action, ref_id) VALUES (?, ?)", ["submission_create", user.id])
                raise DuplicateUsernameError("Username already exists")
        assert store.list_logs() == []
