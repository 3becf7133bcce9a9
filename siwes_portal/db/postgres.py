"""
PostgreSQL Store - SQLAlchemy engine + text() SQL.

Uniqueness is enforced by the schema (UNIQUE(student_id, date)); lifecycle
transitions are guarded UPDATEs whose WHERE clause restates the required
state, so the database arbitrates concurrent submits and reviews.
"""

import logging
from contextlib import contextmanager
from functools import lru_cache
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from sqlalchemy import bindparam, create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from siwes_portal.core.config import get_settings
from siwes_portal.core.exceptions import DuplicateRecordError, StoreError
from siwes_portal.db.store import Store
from siwes_portal.models import (
    AttendanceRecord,
    LogbookEntry,
    Notification,
    NotificationType,
    ReviewStatus,
    Role,
    Student,
    User,
    utcnow,
)

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).with_name("schema.sql")


@lru_cache()
def get_engine() -> Engine:
    """
    Create engine with connection pool.
    pool_size=5: maintain 5 connections ready
    max_overflow=10: allow 10 extra connections under load
    """
    settings = get_settings()
    return create_engine(
        settings.postgres_url,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        echo=settings.debug,
    )


@lru_cache()
def get_session_factory() -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine())


@contextmanager
def get_db_session():
    """
    Context manager for database sessions.
    Usage:
        with get_db_session() as db:
            db.execute(text("SELECT * FROM users"))
    """
    session = get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_schema() -> None:
    """Create tables and constraints if they do not exist yet."""
    statements = []
    for chunk in SCHEMA_PATH.read_text(encoding="utf-8").split(";"):
        lines = [line for line in chunk.splitlines() if not line.strip().startswith("--")]
        statement = "\n".join(lines).strip()
        if statement:
            statements.append(statement)

    with get_db_session() as db:
        for statement in statements:
            db.execute(text(statement))
    logger.info(f"Database schema ready ({len(statements)} statements)")


# ============================================================
# ROW MAPPERS
# ============================================================

def _user(row) -> User:
    return User(
        id=row["id"], email=row["email"], name=row["name"], role=Role(row["role"]),
        password_hash=row["password_hash"], is_active=row["is_active"], created_at=row["created_at"],
    )


def _student(row) -> Student:
    return Student(
        id=row["id"], department=row["department"], matric_number=row["matric_number"],
        industry_supervisor_id=row["industry_supervisor_id"],
        school_supervisor_id=row["school_supervisor_id"],
    )


def _entry(row) -> LogbookEntry:
    return LogbookEntry(
        id=row["id"], student_id=row["student_id"], date=row["date"],
        description=row["description"], image_url=row["image_url"], submitted=row["submitted"],
        review_status=ReviewStatus(row["review_status"]) if row["review_status"] else None,
        review_comments=row["review_comments"], reviewed_by=row["reviewed_by"],
        reviewed_at=row["reviewed_at"], created_at=row["created_at"], updated_at=row["updated_at"],
    )


def _attendance(row) -> AttendanceRecord:
    return AttendanceRecord(
        id=row["id"], student_id=row["student_id"], supervisor_id=row["supervisor_id"],
        date=row["date"], present=row["present"], notes=row["notes"], created_at=row["created_at"],
    )


def _notification(row) -> Notification:
    return Notification(
        id=row["id"], user_id=row["user_id"], title=row["title"], message=row["message"],
        type=NotificationType(row["type"]), is_read=row["is_read"],
        is_system_generated=row["is_system_generated"], created_at=row["created_at"],
    )


ENTRY_COLUMNS = (
    "id, student_id, date, description, image_url, submitted, review_status, review_comments, "
    "reviewed_by, reviewed_at, created_at, updated_at"
)


class SqlStore(Store):
    """Store backed by PostgreSQL through SQLAlchemy sessions."""

    @contextmanager
    def _session(self, duplicate_message: str = "Record already exists"):
        try:
            with get_db_session() as db:
                yield db
        except IntegrityError as e:
            logger.info(f"Integrity violation: {e.orig}")
            raise DuplicateRecordError(duplicate_message) from e
        except SQLAlchemyError as e:
            logger.error(f"Database error: {e}", exc_info=True)
            raise StoreError() from e

    def _one(self, sql: str, params: dict, mapper):
        with self._session() as db:
            row = db.execute(text(sql), params).mappings().fetchone()
        return mapper(row) if row else None

    def _all(self, sql, params: dict, mapper) -> list:
        statement = sql if not isinstance(sql, str) else text(sql)
        with self._session() as db:
            rows = db.execute(statement, params).mappings().fetchall()
        return [mapper(r) for r in rows]

    def _scalar(self, sql, params: dict) -> int:
        statement = sql if not isinstance(sql, str) else text(sql)
        with self._session() as db:
            return int(db.execute(statement, params).scalar() or 0)

    # ============================================================
    # USERS & STUDENTS
    # ============================================================

    def create_user(self, user: User, student: Optional[Student] = None) -> User:
        with self._session("Email already registered") as db:
            db.execute(
                text("""
                    INSERT INTO users (id, email, name, role, password_hash, is_active, created_at)
                    VALUES (:id, :email, :name, :role, :password_hash, :is_active, :created_at)
                """),
                {
                    "id": user.id, "email": user.email.lower(), "name": user.name,
                    "role": user.role.value, "password_hash": user.password_hash,
                    "is_active": user.is_active, "created_at": user.created_at,
                }
            )
            if student is not None:
                db.execute(
                    text("""
                        INSERT INTO students (id, department, matric_number, industry_supervisor_id, school_supervisor_id)
                        VALUES (:id, :department, :matric, :isid, :ssid)
                    """),
                    {
                        "id": student.id, "department": student.department, "matric": student.matric_number,
                        "isid": student.industry_supervisor_id, "ssid": student.school_supervisor_id,
                    }
                )
        return user

    def get_user(self, user_id: str) -> Optional[User]:
        return self._one("SELECT * FROM users WHERE id = :id", {"id": user_id}, _user)

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self._one("SELECT * FROM users WHERE email = :email", {"email": email.lower()}, _user)

    def get_student(self, student_id: str) -> Optional[Student]:
        return self._one("SELECT * FROM students WHERE id = :id", {"id": student_id}, _student)

    def update_student_supervisors(self, student_id, industry_supervisor_id, school_supervisor_id):
        return self._one(
            """
            UPDATE students SET industry_supervisor_id = :isid, school_supervisor_id = :ssid
            WHERE id = :id RETURNING *
            """,
            {"id": student_id, "isid": industry_supervisor_id, "ssid": school_supervisor_id},
            _student,
        )

    def list_students_for_supervisor(self, supervisor_id: str, role: Optional[Role] = None) -> List[Student]:
        if role == Role.INDUSTRY_SUPERVISOR:
            where = "industry_supervisor_id = :sid"
        elif role == Role.SCHOOL_SUPERVISOR:
            where = "school_supervisor_id = :sid"
        else:
            where = "industry_supervisor_id = :sid OR school_supervisor_id = :sid"
        return self._all(f"SELECT * FROM students WHERE {where} ORDER BY id", {"sid": supervisor_id}, _student)

    def list_users(self, role=None, is_active=None, search=None, limit=None, offset=0):
        clauses = []
        params = {}
        if role is not None:
            clauses.append("role = :role")
            params["role"] = role.value
        if is_active is not None:
            clauses.append("is_active = :is_active")
            params["is_active"] = is_active
        if search:
            clauses.append("(name ILIKE :search OR email ILIKE :search)")
            params["search"] = f"%{search}%"
        where = " WHERE " + " AND ".join(clauses) if clauses else ""

        sql = f"SELECT * FROM users{where} ORDER BY created_at DESC"
        page_params = dict(params)
        if limit is not None:
            sql += " LIMIT :limit OFFSET :offset"
            page_params.update(limit=limit, offset=offset)
        users = self._all(sql, page_params, _user)
        total = self._scalar(f"SELECT COUNT(*) FROM users{where}", params)
        return users, total

    def count_users_by_role(self) -> Dict[Role, int]:
        with self._session() as db:
            rows = db.execute(text("SELECT role, COUNT(*) AS count FROM users GROUP BY role")).mappings().fetchall()
        return {Role(r["role"]): int(r["count"]) for r in rows}

    def delete_user(self, user_id: str) -> bool:
        # students, entries, attendance and notifications cascade; attendance a supervisor marked does not
        with self._session("User is still referenced by attendance records") as db:
            result = db.execute(text("DELETE FROM users WHERE id = :id"), {"id": user_id})
            return result.rowcount > 0

    # ============================================================
    # LOGBOOK ENTRIES
    # ============================================================

    def create_entry(self, entry: LogbookEntry) -> LogbookEntry:
        with self._session("Entry for this date already exists") as db:
            db.execute(
                text(f"""
                    INSERT INTO logbook_entries ({ENTRY_COLUMNS})
                    VALUES (:id, :student_id, :date, :description, :image_url, FALSE, NULL, NULL,
                            NULL, NULL, :created_at, :updated_at)
                """),
                {
                    "id": entry.id, "student_id": entry.student_id, "date": entry.date,
                    "description": entry.description, "image_url": entry.image_url,
                    "created_at": entry.created_at, "updated_at": entry.updated_at,
                }
            )
        return entry

    def get_entry(self, entry_id: str) -> Optional[LogbookEntry]:
        return self._one(f"SELECT {ENTRY_COLUMNS} FROM logbook_entries WHERE id = :id", {"id": entry_id}, _entry)

    def update_entry_content(self, entry_id, description, image_url):
        return self._one(
            f"""
            UPDATE logbook_entries
            SET description = COALESCE(:description, description),
                image_url = COALESCE(:image_url, image_url),
                updated_at = :now
            WHERE id = :id AND submitted = FALSE AND review_status IS NULL
              AND NOT EXISTS (
                  SELECT 1 FROM attendance a
                  WHERE a.student_id = logbook_entries.student_id AND a.date = logbook_entries.date
              )
            RETURNING {ENTRY_COLUMNS}
            """,
            {"id": entry_id, "description": description, "image_url": image_url, "now": utcnow()},
            _entry,
        )

    def mark_entry_submitted(self, entry_id: str) -> Optional[LogbookEntry]:
        return self._one(
            f"""
            UPDATE logbook_entries SET submitted = TRUE, updated_at = :now
            WHERE id = :id AND submitted = FALSE AND review_status IS NULL
            RETURNING {ENTRY_COLUMNS}
            """,
            {"id": entry_id, "now": utcnow()},
            _entry,
        )

    def record_review(self, entry_id, status, comments, reviewer_id, reviewed_at):
        return self._one(
            f"""
            UPDATE logbook_entries
            SET review_status = :status, review_comments = :comments, reviewed_by = :reviewer,
                reviewed_at = :reviewed_at, updated_at = :reviewed_at
            WHERE id = :id AND submitted = TRUE AND review_status IS NULL
            RETURNING {ENTRY_COLUMNS}
            """,
            {
                "id": entry_id, "status": status.value, "comments": comments,
                "reviewer": reviewer_id, "reviewed_at": reviewed_at,
            },
            _entry,
        )

    def list_entries(self, student_id, newest_first=False, limit=None):
        sql = f"SELECT {ENTRY_COLUMNS} FROM logbook_entries WHERE student_id = :sid ORDER BY date"
        sql += " DESC" if newest_first else " ASC"
        params = {"sid": student_id}
        if limit is not None:
            sql += " LIMIT :limit"
            params["limit"] = limit
        return self._all(sql, params, _entry)

    def list_pending_entries(self, student_ids: Iterable[str], limit: int, offset: int):
        ids = list(student_ids)
        where = "WHERE student_id IN :ids AND submitted = TRUE AND review_status IS NULL"
        entries = self._all(
            text(f"""
                SELECT {ENTRY_COLUMNS} FROM logbook_entries {where}
                ORDER BY created_at ASC LIMIT :limit OFFSET :offset
            """).bindparams(bindparam("ids", expanding=True)),
            {"ids": ids, "limit": limit, "offset": offset},
            _entry,
        )
        total = self._scalar(
            text(f"SELECT COUNT(*) FROM logbook_entries {where}").bindparams(bindparam("ids", expanding=True)),
            {"ids": ids},
        )
        return entries, total

    def list_reviewed_entries(self, reviewer_id, status, limit, offset):
        where = "WHERE reviewed_by = :reviewer AND review_status IS NOT NULL"
        params = {"reviewer": reviewer_id}
        if status is not None:
            where += " AND review_status = :status"
            params["status"] = status.value
        entries = self._all(
            f"""
            SELECT {ENTRY_COLUMNS} FROM logbook_entries {where}
            ORDER BY reviewed_at DESC LIMIT :limit OFFSET :offset
            """,
            {**params, "limit": limit, "offset": offset},
            _entry,
        )
        total = self._scalar(f"SELECT COUNT(*) FROM logbook_entries {where}", params)
        return entries, total

    def count_entries(self, student_ids=None, submitted=None, reviewed=None, reviewed_by=None, review_status=None) -> int:
        clauses = []
        params = {}
        expanding = False
        if student_ids is not None:
            clauses.append("student_id IN :ids")
            params["ids"] = list(student_ids)
            expanding = True
        if submitted is not None:
            clauses.append("submitted = :submitted")
            params["submitted"] = submitted
        if reviewed is not None:
            clauses.append("review_status IS NOT NULL" if reviewed else "review_status IS NULL")
        if reviewed_by is not None:
            clauses.append("reviewed_by = :reviewed_by")
            params["reviewed_by"] = reviewed_by
        if review_status is not None:
            clauses.append("review_status = :review_status")
            params["review_status"] = review_status.value

        sql = "SELECT COUNT(*) FROM logbook_entries"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        statement = text(sql)
        if expanding:
            statement = statement.bindparams(bindparam("ids", expanding=True))
        return self._scalar(statement, params)

    # ============================================================
    # ATTENDANCE
    # ============================================================

    def create_attendance(self, record: AttendanceRecord) -> AttendanceRecord:
        with self._session("Attendance already marked for this date") as db:
            db.execute(
                text("""
                    INSERT INTO attendance (id, student_id, supervisor_id, date, present, notes, created_at)
                    VALUES (:id, :student_id, :supervisor_id, :date, :present, :notes, :created_at)
                """),
                {
                    "id": record.id, "student_id": record.student_id, "supervisor_id": record.supervisor_id,
                    "date": record.date, "present": record.present, "notes": record.notes,
                    "created_at": record.created_at,
                }
            )
        return record

    def get_attendance(self, student_id, day):
        return self._one(
            "SELECT * FROM attendance WHERE student_id = :sid AND date = :day",
            {"sid": student_id, "day": day},
            _attendance,
        )

    def list_attendance(self, student_id, start=None, end=None, limit=None):
        sql = "SELECT * FROM attendance WHERE student_id = :sid"
        params = {"sid": student_id}
        if start is not None:
            sql += " AND date >= :start"
            params["start"] = start
        if end is not None:
            sql += " AND date <= :end"
            params["end"] = end
        sql += " ORDER BY date DESC"
        if limit is not None:
            sql += " LIMIT :limit"
            params["limit"] = limit
        return self._all(sql, params, _attendance)

    # ============================================================
    # NOTIFICATIONS
    # ============================================================

    def create_notification(self, notification: Notification) -> Notification:
        with self._session() as db:
            db.execute(
                text("""
                    INSERT INTO notifications (id, user_id, title, message, type, is_read, is_system_generated, created_at)
                    VALUES (:id, :user_id, :title, :message, :type, :is_read, :system, :created_at)
                """),
                {
                    "id": notification.id, "user_id": notification.user_id, "title": notification.title,
                    "message": notification.message, "type": notification.type.value,
                    "is_read": notification.is_read, "system": notification.is_system_generated,
                    "created_at": notification.created_at,
                }
            )
        return notification

    def get_notification(self, notification_id: str) -> Optional[Notification]:
        return self._one("SELECT * FROM notifications WHERE id = :id", {"id": notification_id}, _notification)

    def delete_notification(self, notification_id: str) -> bool:
        with self._session() as db:
            result = db.execute(text("DELETE FROM notifications WHERE id = :id"), {"id": notification_id})
            return result.rowcount > 0

    def list_notifications(self, user_id, unread_only, limit, offset):
        where = "WHERE user_id = :uid"
        if unread_only:
            where += " AND is_read = FALSE"
        items = self._all(
            f"SELECT * FROM notifications {where} ORDER BY created_at DESC LIMIT :limit OFFSET :offset",
            {"uid": user_id, "limit": limit, "offset": offset},
            _notification,
        )
        total = self._scalar(f"SELECT COUNT(*) FROM notifications {where}", {"uid": user_id})
        return items, total

    def count_unread_notifications(self, user_id: str) -> int:
        return self._scalar(
            "SELECT COUNT(*) FROM notifications WHERE user_id = :uid AND is_read = FALSE", {"uid": user_id}
        )

    def mark_notification_read(self, notification_id, user_id):
        return self._one(
            "UPDATE notifications SET is_read = TRUE WHERE id = :id AND user_id = :uid RETURNING *",
            {"id": notification_id, "uid": user_id},
            _notification,
        )

    def mark_all_notifications_read(self, user_id: str) -> int:
        with self._session() as db:
            result = db.execute(
                text("UPDATE notifications SET is_read = TRUE WHERE user_id = :uid AND is_read = FALSE"),
                {"uid": user_id},
            )
            return result.rowcount

    def ping(self) -> bool:
        """
        Test if PostgreSQL is reachable.
        Returns True if connection successful, False otherwise.
        """
        try:
            with get_db_session() as db:
                return db.execute(text("SELECT 1")).scalar() == 1
        except SQLAlchemyError as e:
            logger.warning(f"PostgreSQL connection failed: {e}")
            return False
