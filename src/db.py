import json
import sqlite3
from datetime import date, datetime, timezone

from config import settings
from src.timezone_utils import to_utc

DB_PATH = settings.DB_PATH


def _connect():
    conn = sqlite3.connect(DB_PATH)
    conn.row_factory = sqlite3.Row
    return conn


def init_db():
    """
    Initialize the database and ensure all tables exist.
    Tables:
      - regions: country, auto RBU toggle, attempt limit, reschedule day policy (JSON)
      - region_auto_accept_windows: auto RBU window in minutes per (region, service)
      - bookings: start time (local ISO + UTC ISO for range queries), provider, counters
      - holidays: observed holiday names per date and country
      - holiday_years: (country, year) pairs already filled from the holiday rules
      - cancellations: cancellation attempts by the CBU pathway, successful or not
      - auto_rbu_cbu_log: one outcome entry per processed booking per pass
    """
    with _connect() as conn:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS regions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                country TEXT NOT NULL,
                auto_rbu_enabled INTEGER NOT NULL DEFAULT 0,
                auto_rbu_attempts INTEGER,
                reschedule_days TEXT NOT NULL DEFAULT '{}'
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS region_auto_accept_windows (
                region_id INTEGER NOT NULL,
                service_id INTEGER NOT NULL,
                auto_rbu_minutes INTEGER NOT NULL,
                PRIMARY KEY (region_id, service_id)
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS bookings (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                region_id INTEGER NOT NULL,
                service_id INTEGER NOT NULL,
                date_start TEXT NOT NULL,
                date_start_utc TEXT NOT NULL,
                confirmed INTEGER NOT NULL DEFAULT 1,
                provider_id INTEGER,
                auto_rbu_count INTEGER NOT NULL DEFAULT 0,
                auto_rbu_attempts INTEGER,
                recurrence_id INTEGER,
                price REAL NOT NULL DEFAULT 0,
                status TEXT NOT NULL DEFAULT 'confirmed',
                recommended_providers TEXT NOT NULL DEFAULT '[]',
                last_reason_id INTEGER
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS holidays (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                date TEXT NOT NULL,
                country TEXT NOT NULL,
                name TEXT NOT NULL,
                observed INTEGER NOT NULL DEFAULT 1
            )
        """)
        conn.execute("""
            CREATE UNIQUE INDEX IF NOT EXISTS idx_holidays_date_country_name
            ON holidays (date, country, name)
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS holiday_years (
                country TEXT NOT NULL,
                year INTEGER NOT NULL,
                loaded_at TEXT NOT NULL,
                PRIMARY KEY (country, year)
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS cancellations (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                booking_id INTEGER NOT NULL,
                reason_id INTEGER NOT NULL,
                refund REAL NOT NULL DEFAULT 0,
                cancellation_type TEXT NOT NULL,
                success INTEGER NOT NULL DEFAULT 1,
                errors TEXT NOT NULL DEFAULT '[]',
                created_at TEXT NOT NULL
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS auto_rbu_cbu_log (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                booking_id INTEGER NOT NULL,
                original_date_start TEXT NOT NULL,
                new_date_start TEXT,
                reason_id INTEGER,
                type TEXT NOT NULL,
                success INTEGER NOT NULL,
                message TEXT NOT NULL,
                logged_at TEXT NOT NULL
            )
        """)


def clear_all():
    """
    Remove all rows from every table (testing only).
    """
    with _connect() as conn:
        for table in ("regions", "region_auto_accept_windows", "bookings", "holidays", "holiday_years",
                      "cancellations", "auto_rbu_cbu_log"):
            conn.execute(f"DELETE FROM {table}")
        conn.commit()


# -------------------
# REGIONS / CONFIG
# -------------------

def add_region(name: str, country: str, auto_rbu_enabled: bool = False,
               auto_rbu_attempts: int = None, reschedule_days: dict = None) -> int:
    """
    Create a region. reschedule_days maps weekday name -> target weekday name.
    Returns: id of the new region
    """
    with _connect() as conn:
        cursor = conn.execute(
            "INSERT INTO regions (name, country, auto_rbu_enabled, auto_rbu_attempts, reschedule_days) "
            "VALUES (?, ?, ?, ?, ?)",
            (name, country, int(auto_rbu_enabled), auto_rbu_attempts, json.dumps(reschedule_days or {})),
        )
        conn.commit()
        return cursor.lastrowid


def _region_row(row) -> dict:
    return {
        "id": row["id"],
        "name": row["name"],
        "country": row["country"],
        "auto_rbu_enabled": bool(row["auto_rbu_enabled"]),
        "auto_rbu_attempts": row["auto_rbu_attempts"],
        "reschedule_days": json.loads(row["reschedule_days"] or "{}"),
    }


def get_region(region_id: int):
    """
    Fetch one region as a dict, or None if it doesn't exist.
    """
    with _connect() as conn:
        row = conn.execute("SELECT * FROM regions WHERE id = ?", (region_id,)).fetchone()
        return _region_row(row) if row else None


def get_regions(auto_rbu_only: bool = False) -> list:
    """
    Fetch regions, optionally only those with auto RBU/CBU turned on.
    """
    query = "SELECT * FROM regions"
    if auto_rbu_only:
        query += " WHERE auto_rbu_enabled = 1"
    with _connect() as conn:
        return [_region_row(row) for row in conn.execute(query + " ORDER BY id").fetchall()]


def set_auto_rbu_window(region_id: int, service_id: int, minutes: int):
    """
    Insert or replace the auto RBU window for a (region, service) pair.
    """
    with _connect() as conn:
        conn.execute(
            "INSERT OR REPLACE INTO region_auto_accept_windows (region_id, service_id, auto_rbu_minutes) "
            "VALUES (?, ?, ?)",
            (region_id, service_id, minutes),
        )
        conn.commit()


def get_auto_rbu_window(region_id: int, service_id: int):
    """
    Returns: configured minutes for (region, service), or None when no row exists
    """
    with _connect() as conn:
        row = conn.execute(
            "SELECT auto_rbu_minutes FROM region_auto_accept_windows WHERE region_id = ? AND service_id = ?",
            (region_id, service_id),
        ).fetchone()
        return row["auto_rbu_minutes"] if row else None


def get_max_auto_rbu_window() -> int:
    """
    Largest configured window across all regions, 0 when nothing is configured.
    """
    with _connect() as conn:
        row = conn.execute("SELECT MAX(auto_rbu_minutes) AS m FROM region_auto_accept_windows").fetchone()
        return int(row["m"] or 0)


# -------------------
# BOOKINGS
# -------------------

def add_booking(user_id: int, region_id: int, service_id: int, date_start: datetime,
                confirmed: bool = True, provider_id: int = None, auto_rbu_count: int = 0,
                auto_rbu_attempts: int = None, recurrence_id: int = None, price: float = 0.0,
                status: str = "confirmed") -> int:
    """
    Add a booking. date_start must be timezone-aware (or local app time).
    Returns: id of the new booking
    """
    with _connect() as conn:
        cursor = conn.execute(
            """
            INSERT INTO bookings (user_id, region_id, service_id, date_start, date_start_utc, confirmed,
                                  provider_id, auto_rbu_count, auto_rbu_attempts, recurrence_id, price, status)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (user_id, region_id, service_id, date_start.isoformat(), to_utc(date_start).isoformat(),
             int(confirmed), provider_id, auto_rbu_count, auto_rbu_attempts, recurrence_id, price, status),
        )
        conn.commit()
        return cursor.lastrowid


def _booking_row(row) -> dict:
    return {
        "id": row["id"],
        "user_id": row["user_id"],
        "region_id": row["region_id"],
        "service_id": row["service_id"],
        "date_start": row["date_start"],
        "confirmed": bool(row["confirmed"]),
        "provider_id": row["provider_id"],
        "auto_rbu_count": row["auto_rbu_count"],
        "auto_rbu_attempts": row["auto_rbu_attempts"],
        "recurrence_id": row["recurrence_id"],
        "price": row["price"],
        "status": row["status"],
        "recommended_providers": json.loads(row["recommended_providers"] or "[]"),
    }


def get_booking(booking_id: int):
    """
    Fetch one booking as a dict, or None.
    """
    with _connect() as conn:
        row = conn.execute("SELECT * FROM bookings WHERE id = ?", (booking_id,)).fetchone()
        return _booking_row(row) if row else None


def get_unfilled_bookings(region_ids: list, start_at: datetime, end_at: datetime) -> list:
    """
    Confirmed, provider-less, not cancelled bookings in the given regions whose
    start falls in [start_at, end_at).
    """
    if not region_ids:
        return []

    placeholders = ", ".join("?" for _ in region_ids)
    with _connect() as conn:
        cursor = conn.execute(
            f"""
            SELECT * FROM bookings
            WHERE confirmed = 1
              AND provider_id IS NULL
              AND status = 'confirmed'
              AND region_id IN ({placeholders})
              AND date_start_utc >= ?
              AND date_start_utc < ?
            ORDER BY date_start_utc
            """,
            (*region_ids, to_utc(start_at).isoformat(), to_utc(end_at).isoformat()),
        )
        return [_booking_row(row) for row in cursor.fetchall()]


def get_next_series_booking(recurrence_id: int, after: datetime, exclude_id: int = None):
    """
    Next active booking in a recurring series starting after the given time.
    """
    with _connect() as conn:
        row = conn.execute(
            """
            SELECT * FROM bookings
            WHERE recurrence_id = ?
              AND status = 'confirmed'
              AND date_start_utc > ?
              AND id != ?
            ORDER BY date_start_utc
            LIMIT 1
            """,
            (recurrence_id, to_utc(after).isoformat(), exclude_id if exclude_id is not None else -1),
        ).fetchone()
        return _booking_row(row) if row else None


def update_booking_start(booking_id: int, new_start: datetime, reason_id: int = None,
                         recommended_providers: list = None) -> int:
    """
    Move a booking to a new start time.
    Returns: number of rows updated (0 if the booking is gone)
    """
    with _connect() as conn:
        cursor = conn.execute(
            """
            UPDATE bookings
            SET date_start = ?, date_start_utc = ?, last_reason_id = ?, recommended_providers = ?
            WHERE id = ?
            """,
            (new_start.isoformat(), to_utc(new_start).isoformat(), reason_id,
             json.dumps(recommended_providers or []), booking_id),
        )
        conn.commit()
        return cursor.rowcount


def increment_auto_rbu_count(booking_id: int) -> int:
    """
    Bump the automatic reschedule counter.
    Returns: the new counter value
    """
    with _connect() as conn:
        conn.execute("UPDATE bookings SET auto_rbu_count = auto_rbu_count + 1 WHERE id = ?", (booking_id,))
        conn.commit()
        row = conn.execute("SELECT auto_rbu_count FROM bookings WHERE id = ?", (booking_id,)).fetchone()
        return row["auto_rbu_count"] if row else 0


def assign_provider(booking_id: int, provider_id: int):
    with _connect() as conn:
        conn.execute("UPDATE bookings SET provider_id = ? WHERE id = ?", (provider_id, booking_id))
        conn.commit()


# -------------------
# CANCELLATIONS
# -------------------

def cancel_booking(booking_id: int, reason_id: int, refund: float, cancellation_type: str) -> int:
    """
    Mark a confirmed booking cancelled and record the cancellation in one transaction.
    Returns: number of bookings updated (0 if it was already cancelled or missing)
    """
    with _connect() as conn:
        cursor = conn.execute(
            "UPDATE bookings SET status = 'cancelled', last_reason_id = ? WHERE id = ? AND status = 'confirmed'",
            (reason_id, booking_id),
        )
        if cursor.rowcount:
            _insert_cancellation(conn, booking_id, reason_id, refund, cancellation_type)
        conn.commit()
        return cursor.rowcount


def add_failed_cancellation(booking_id: int, reason_id: int, refund: float, cancellation_type: str,
                            errors: list):
    """
    Record a cancellation trigger that did not go through, with its errors.
    """
    with _connect() as conn:
        _insert_cancellation(conn, booking_id, reason_id, refund, cancellation_type, success=False, errors=errors)
        conn.commit()


def _insert_cancellation(conn, booking_id, reason_id, refund, cancellation_type, success=True, errors=None):
    conn.execute(
        "INSERT INTO cancellations (booking_id, reason_id, refund, cancellation_type, success, errors, created_at) "
        "VALUES (?, ?, ?, ?, ?, ?, ?)",
        (booking_id, reason_id, refund, cancellation_type, int(success), json.dumps(errors or []),
         datetime.now(timezone.utc).isoformat()),
    )


def get_cancellations(booking_id: int = None) -> list:
    query = "SELECT * FROM cancellations"
    params = ()
    if booking_id is not None:
        query += " WHERE booking_id = ?"
        params = (booking_id,)
    with _connect() as conn:
        rows = conn.execute(query + " ORDER BY id", params).fetchall()
        return [
            dict(row, success=bool(row["success"]), errors=json.loads(row["errors"] or "[]"))
            for row in rows
        ]


# -------------------
# HOLIDAYS
# -------------------

def add_holiday(holiday_date: date, country: str, name: str, observed: bool = True):
    """
    Add a holiday. A (date, country, name) that is already there is left as is.
    """
    with _connect() as conn:
        conn.execute(
            "INSERT OR IGNORE INTO holidays (date, country, name, observed) VALUES (?, ?, ?, ?)",
            (holiday_date.isoformat(), country.lower(), name, int(observed)),
        )
        conn.commit()


def is_holiday_year_loaded(country: str, year: int) -> bool:
    with _connect() as conn:
        row = conn.execute(
            "SELECT 1 FROM holiday_years WHERE country = ? AND year = ?", (country.lower(), year)
        ).fetchone()
        return row is not None


def mark_holiday_year_loaded(country: str, year: int):
    with _connect() as conn:
        conn.execute(
            "INSERT OR REPLACE INTO holiday_years (country, year, loaded_at) VALUES (?, ?, ?)",
            (country.lower(), year, datetime.now(timezone.utc).isoformat()),
        )
        conn.commit()


def get_holidays(holiday_date: date, country: str, observed: bool = True) -> list:
    """
    Holidays for a country on a date.
    observed=True returns observed holidays only.
    Returns: list of dicts {name}
    """
    query = "SELECT name FROM holidays WHERE date = ? AND country = ?"
    if observed:
        query += " AND observed = 1"
    with _connect() as conn:
        cursor = conn.execute(query, (holiday_date.isoformat(), country.lower()))
        return [{"name": name} for (name,) in cursor.fetchall()]


# -------------------
# OUTCOME LOG
# -------------------

def add_outcome_log(entry: dict):
    """
    Append one outcome entry. Entries are never updated or deleted.
    """
    with _connect() as conn:
        conn.execute(
            """
            INSERT INTO auto_rbu_cbu_log (booking_id, original_date_start, new_date_start, reason_id,
                                          type, success, message, logged_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (entry["booking_id"], entry["original_date_start"], entry["new_date_start"], entry["reason_id"],
             entry["type"], int(entry["success"]), entry["message"], entry["logged_at"]),
        )
        conn.commit()


def get_outcome_log(booking_id: int = None) -> list:
    query = "SELECT * FROM auto_rbu_cbu_log"
    params = ()
    if booking_id is not None:
        query += " WHERE booking_id = ?"
        params = (booking_id,)
    with _connect() as conn:
        rows = conn.execute(query + " ORDER BY id", params).fetchall()
        return [
            {
                "booking_id": row["booking_id"],
                "original_date_start": row["original_date_start"],
                "new_date_start": row["new_date_start"],
                "reason_id": row["reason_id"],
                "type": row["type"],
                "success": bool(row["success"]),
                "message": row["message"],
                "logged_at": row["logged_at"],
            }
            for row in rows
        ]
