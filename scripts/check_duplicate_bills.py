"""
Report duplicate bills in a RentMS sqlite database.

Lists every (tenant_id, period) pair stored more than once. Such rows can
only exist in databases created before the ``uq_bill_tenant_period``
constraint, or copied in by hand, and must be cleaned up before
``alembic upgrade`` can add the constraint.

Exit codes: 0 no duplicates, 1 duplicates found, 2 the query failed,
3 usage error.

    python scripts/check_duplicate_bills.py data/app.db
"""

import sqlite3
import sys


def check(db_path):
    conn = sqlite3.connect(db_path)
    cur = conn.cursor()
    try:
        cur.execute(
            "SELECT tenant_id, period, COUNT(*) AS c FROM bill GROUP BY tenant_id, period HAVING c > 1;"
        )
        rows = cur.fetchall()
    except sqlite3.Error as e:
        print("ERROR_SQL:", e)
        return 2
    finally:
        conn.close()
    if not rows:
        print("NO_DUPLICATES")
        return 0
    print("DUPLICATES_FOUND")
    for r in rows:
        print(r)
    return 1


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python check_duplicate_bills.py <path_to_sqlite_db>")
        sys.exit(3)
    sys.exit(check(sys.argv[1]))
