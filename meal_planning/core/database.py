"""
数据库连接和管理模块
封装 DuckDB 连接、表结构初始化和事务控制
"""

import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

import duckdb

from .exceptions import BaseApplicationError, ConcurrencyError, DatabaseError

MEMORY_PATH = ":memory:"

# 完整的表结构定义
SCHEMA_SQL = r"""
CREATE SEQUENCE IF NOT EXISTS users_id_seq;
CREATE TABLE IF NOT EXISTS users (
  id INTEGER DEFAULT nextval('users_id_seq') PRIMARY KEY,
  username TEXT UNIQUE NOT NULL,
  password_hash TEXT NOT NULL,
  display_name TEXT NOT NULL,
  role TEXT CHECK(role IN ('staff','admin')) NOT NULL DEFAULT 'staff',
  created_at TIMESTAMP DEFAULT now()
);

CREATE SEQUENCE IF NOT EXISTS meal_submissions_id_seq;
CREATE TABLE IF NOT EXISTS meal_submissions (
  id INTEGER DEFAULT nextval('meal_submissions_id_seq') PRIMARY KEY,
  user_id INTEGER NOT NULL,
  submission_date TIMESTAMP NOT NULL,
  meal_date DATE NOT NULL,
  status TEXT CHECK(status IN ('pending','approved','needs_adjustment')) NOT NULL DEFAULT 'pending',
  notes TEXT
);

CREATE SEQUENCE IF NOT EXISTS meal_counts_id_seq;
CREATE TABLE IF NOT EXISTS meal_counts (
  id INTEGER DEFAULT nextval('meal_counts_id_seq') PRIMARY KEY,
  submission_id INTEGER NOT NULL,
  meal_type TEXT NOT NULL,
  adult_count INTEGER NOT NULL DEFAULT 0 CHECK(adult_count >= 0),
  child_count INTEGER NOT NULL DEFAULT 0 CHECK(child_count >= 0),
  special_requirements TEXT
);

CREATE UNIQUE INDEX IF NOT EXISTS uniq_count_submission_type ON meal_counts(submission_id, meal_type);

CREATE SEQUENCE IF NOT EXISTS logs_id_seq;
CREATE TABLE IF NOT EXISTS logs (
  log_id INTEGER DEFAULT nextval('logs_id_seq') PRIMARY KEY,
  user_id INTEGER,
  actor_id INTEGER,
  action TEXT,
  ref_id INTEGER,
  detail_json JSON,
  created_at TIMESTAMP DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_logs_action ON logs(action);
CREATE INDEX IF NOT EXISTS idx_logs_ref ON logs(ref_id);
"""


def resolve_db_path(database_url: str) -> str:
    """将 duckdb:// 形式的地址转换为 DuckDB 可识别的路径"""
    path = database_url
    if path.startswith("duckdb://"):
        path = path[len("duckdb://"):]
    if not path or path == MEMORY_PATH:
        return MEMORY_PATH

    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    return str(p)


class DatabaseManager:
    """数据库管理器

    所有读写都经过同一把可重入锁，事务内的多条写入对其他读者整体可见。
    """

    def __init__(self, database_url: str):
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._lock = threading.RLock()
        self.db_path = resolve_db_path(database_url)

    @property
    def connection(self) -> duckdb.DuckDBPyConnection:
        """获取数据库连接，首次访问时建表"""
        with self._lock:
            if self._connection is None:
                try:
                    self._connection = duckdb.connect(self.db_path)
                except duckdb.Error as e:
                    raise DatabaseError(f"Failed to open database: {e}")
                self._init_schema()
            return self._connection

    def _init_schema(self):
        """初始化数据库表结构"""
        try:
            self._connection.execute(SCHEMA_SQL)
        except duckdb.Error as e:
            raise DatabaseError(f"Failed to initialize schema: {e}")

    @contextmanager
    def cursor(self) -> Generator[duckdb.DuckDBPyConnection, None, None]:
        """只读操作使用的连接上下文"""
        with self._lock:
            try:
                yield self.connection
            except duckdb.Error as e:
                raise DatabaseError(f"Query execution failed: {e}")

    @contextmanager
    def transaction(self) -> Generator[duckdb.DuckDBPyConnection, None, None]:
        """
        数据库事务上下文管理器

        业务异常会回滚并原样抛出；事务冲突包装为 ConcurrencyError，
        其他数据库异常回滚后包装为 DatabaseError。
        """
        with self._lock:
            conn = self.connection
            conn.execute("BEGIN TRANSACTION")
            try:
                yield conn
            except BaseApplicationError:
                self._rollback(conn)
                raise
            except duckdb.TransactionException as e:
                self._rollback(conn)
                raise ConcurrencyError(f"Transaction conflict, please retry: {e}")
            except duckdb.Error as e:
                self._rollback(conn)
                raise DatabaseError(f"Database operation failed: {e}")
            except Exception:
                self._rollback(conn)
                raise
            else:
                try:
                    conn.execute("COMMIT")
                except duckdb.TransactionException as e:
                    self._rollback(conn)
                    raise ConcurrencyError(f"Transaction conflict, please retry: {e}")
                except duckdb.Error as e:
                    raise DatabaseError(f"Failed to commit transaction: {e}")

    @staticmethod
    def _rollback(conn):
        try:
            conn.execute("ROLLBACK")
        except duckdb.Error:
            pass  # 事务已被 DuckDB 自动中止

    def ping(self) -> bool:
        """检查数据库是否可用"""
        with self.cursor() as conn:
            conn.execute("SELECT 1").fetchone()
        return True

    def close(self):
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None
