from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable

from werkzeug.security import generate_password_hash

from .connection import DatabaseConnection, DBConfig

logger = logging.getLogger(__name__)

DEMO_PASSWORD = "password123"

# (nip, nama, email, telepon, gender, kode unit, peran)
DEMO_USERS = [
    ("196505151990031001", "Dr. H. Ahmad Syahrial, S.Kom, M.Si", "kepala.dinas@pekanbarukota.go.id",
     "+6276142001", "MALE", "KOMINFO", "Kepala Dinas"),
    ("197203101995032001", "Dra. Hj. Siti Nurhaliza, M.AP", "sekretaris@pekanbarukota.go.id",
     "+6276142002", "FEMALE", "SEKRETARIAT", "Sekretaris Dinas"),
    ("198505221010121001", "Rizki Maulana Hakim, S.Kom", "admin.sistem@pekanbarukota.go.id",
     "+628123456789", "MALE", "APLIKASI", "Administrator Sistem"),
    ("198001152005011002", "Ir. Bambang Setiawan, M.T", "kabid.aptika@pekanbarukota.go.id",
     "+6276142003", "MALE", "APTIKA", "Kepala Bidang"),
    ("197809122003121001", "Drs. Agus Salim, M.AP", "kasubag.umum@pekanbarukota.go.id",
     "+6276142004", "MALE", "UMUM", "Kepala Sub Bagian"),
    ("199204281015121002", "Andi Pratama, S.Kom", "andi.pratama@pekanbarukota.go.id",
     "+628123456790", "MALE", "APLIKASI", "Staff/Pelaksana"),
    ("199008151018032001", "Lisa Andriani, S.Sos", "lisa.humas@pekanbarukota.go.id",
     "+628123456791", "FEMALE", "HUMAS", "Staff/Pelaksana"),
    ("199305201020032002", "Maya Sari, S.Si", "maya.statistik@pekanbarukota.go.id",
     "+628123456793", "FEMALE", "STATISTIK-SEKTORAL", "PPPK"),
]

DEPARTMENT_HEADS = {
    "KOMINFO": "kepala.dinas@pekanbarukota.go.id",
    "SEKRETARIAT": "sekretaris@pekanbarukota.go.id",
    "APTIKA": "kabid.aptika@pekanbarukota.go.id",
    "UMUM": "kasubag.umum@pekanbarukota.go.id",
}

WORK_DAYS = ("MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY")


def _strip_create_db_and_use(sql: str) -> str:
    # Keep schema.sql compatible regardless of DB name.
    sql = re.sub(r"(?im)^\s*CREATE\s+DATABASE\b.*?;\s*$", "", sql)
    sql = re.sub(r"(?im)^\s*USE\b.*?;\s*$", "", sql)
    return sql


def _strip_line_comments(sql: str) -> str:
    return "\n".join(line for line in sql.splitlines() if not line.lstrip().startswith("--"))


def iter_sql_statements(sql: str) -> Iterable[str]:
    # Minimal SQL splitter for schema/seed files (handles ';' inside quotes).
    buf: list[str] = []
    in_single = False
    in_double = False
    escape = False

    for ch in sql:
        if escape:
            buf.append(ch)
            escape = False
            continue

        if ch == "\\":
            buf.append(ch)
            escape = True
            continue

        if ch == "'" and not in_double:
            in_single = not in_single
        elif ch == '"' and not in_single:
            in_double = not in_double
        elif ch == ";" and not in_single and not in_double:
            stmt = "".join(buf).strip()
            buf.clear()
            if stmt:
                yield stmt
            continue

        buf.append(ch)

    tail = "".join(buf).strip()
    if tail:
        yield tail


def _exec_sql_file(db_config: dict, path: str | Path) -> int:
    sql = _strip_line_comments(_strip_create_db_and_use(Path(path).read_text(encoding="utf-8")))
    conn = DatabaseConnection(DBConfig.from_dict(db_config)).connect()
    count = 0
    try:
        cur = conn.cursor()
        for stmt in iter_sql_statements(sql):
            cur.execute(stmt)
            count += 1
        conn.commit()
    finally:
        conn.close()
    return count


def ensure_database_exists(db_config: dict) -> None:
    target = DBConfig.from_dict(db_config)
    conn = DatabaseConnection(target).connect(with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{target.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(db_config: dict, *, schema_path: str | Path) -> None:
    ensure_database_exists(db_config)
    count = _exec_sql_file(db_config, schema_path)
    logger.info("Schema applied from %s (%d statements)", schema_path, count)


def apply_seed_sql(db_config: dict, *, seed_path: str | Path) -> None:
    count = _exec_sql_file(db_config, seed_path)
    logger.info("Seed applied from %s (%d statements)", seed_path, count)


def ensure_demo_users(db_config: dict, *, password: str = DEMO_PASSWORD) -> None:
    """Upsert demo employees, department heads and Monday-Friday schedules.

    Requires seed.sql (roles, departments, office locations) to be applied first.
    """
    conn = DatabaseConnection(DBConfig.from_dict(db_config)).connect()
    try:
        cur = conn.cursor(dictionary=True)

        def lookup(sql: str, value: str) -> int:
            cur.execute(sql, (value,))
            row = cur.fetchone()
            if not row:
                raise RuntimeError(f"Missing seed row for {value!r}; apply seed.sql first")
            return int(row["id"])

        password_hash = generate_password_hash(password)
        for nip, name, email, phone, gender, dept_code, role_name in DEMO_USERS:
            dept_id = lookup("SELECT department_id AS id FROM departments WHERE code=%s", dept_code)
            role_id = lookup("SELECT role_id AS id FROM roles WHERE name=%s", role_name)
            cur.execute(
                """
                INSERT INTO users (nip, name, email, password_hash, phone, gender, department_id, role_id, status)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, 'ACTIVE')
                ON DUPLICATE KEY UPDATE
                    nip=VALUES(nip), name=VALUES(name), password_hash=VALUES(password_hash),
                    phone=VALUES(phone), gender=VALUES(gender), department_id=VALUES(department_id),
                    role_id=VALUES(role_id), status='ACTIVE'
                """,
                (nip, name, email, password_hash, phone, gender, dept_id, role_id),
            )

        for dept_code, email in DEPARTMENT_HEADS.items():
            user_id = lookup("SELECT user_id AS id FROM users WHERE email=%s", email)
            cur.execute("UPDATE departments SET head_user_id=%s WHERE code=%s", (user_id, dept_code))

        main_office = lookup("SELECT location_id AS id FROM office_locations WHERE code=%s", "KOMINFO-PKU")
        cur.execute("SELECT user_id FROM users")
        user_ids = [int(r["user_id"]) for r in cur.fetchall()]
        for user_id in user_ids:
            for day in WORK_DAYS:
                cur.execute(
                    """
                    INSERT IGNORE INTO work_schedules (user_id, office_location_id, day_of_week, start_time, end_time)
                    VALUES (%s, %s, %s, '07:30:00', '16:00:00')
                    """,
                    (user_id, main_office, day),
                )

        conn.commit()
        logger.info("Demo users ready (%d users, password %r)", len(DEMO_USERS), password)
    finally:
        conn.close()


def list_tables(db_config: dict) -> list[str]:
    conn = DatabaseConnection(DBConfig.from_dict(db_config)).connect()
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()
