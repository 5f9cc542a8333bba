#!/usr/bin/env python3
"""
Reset an admin's password in the Mixer Rental SQLite database.

This script DOES NOT read or reveal any existing passwords.  It sets a
new PBKDF2 hash for the admin with the given username or e‑mail, using
the database configured through ``DATABASE_URL``.

Usage:
    python reset_admin_password.py --user admin --password "NewStrongPass!234"

If --password is omitted, you will be prompted to enter it securely.
"""

import argparse
import getpass
import sys

from mixer_rental_api.app.core.db import get_connection, get_database_path, init_db
from mixer_rental_api.app.core.security import hash_password


MIN_PASSWORD_LENGTH = 8


def main() -> int:
    ap = argparse.ArgumentParser(description="Reset a Mixer Rental admin password.")
    ap.add_argument("--user", required=True, help="Admin username or email")
    ap.add_argument("--password", help="New password. If omitted, you'll be prompted securely.")
    args = ap.parse_args()

    new_password = args.password or getpass.getpass("Enter NEW password: ")
    if len(new_password) < MIN_PASSWORD_LENGTH:
        print(f"[!] Password must be at least {MIN_PASSWORD_LENGTH} characters.", file=sys.stderr)
        return 1

    init_db()
    conn = get_connection()
    try:
        row = conn.execute(
            "SELECT id, username FROM admin_users WHERE username = ? OR email = ?",
            (args.user, args.user),
        ).fetchone()
        if not row:
            print(f"[!] No admin found: {args.user}", file=sys.stderr)
            return 2
        conn.execute(
            "UPDATE admin_users SET password = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            (hash_password(new_password), row["id"]),
        )
        conn.commit()
    finally:
        conn.close()

    print(f"[+] Password updated for {row['username']} in {get_database_path()}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
