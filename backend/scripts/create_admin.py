"""CLI script to create (or promote) an admin account.
Usage: python scripts/create_admin.py --email admin@example.com --name "Admin" --password 'Secret123'
"""
import sys
import argparse
import pathlib
# Ensure `backend/` is on sys.path so `courseadmin` imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from sqlmodel import Session
from courseadmin.database import create_db_and_tables, engine
from courseadmin.services import AdminService


def main(email: str, name: str, password: str) -> int:
    """Create the tables if needed and ensure `email` is an admin.

    Returns a process exit code; policy violations are printed, not raised.
    """
    create_db_and_tables()
    with Session(engine) as session:
        try:
            user = AdminService(session).ensure_admin(email, name, password)
        except ValueError as e:
            print(f'Invalid password: {e}')
            return 1
        print(f'Admin ready: {user.email} ({user.id})')
    return 0


if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('--email', required=True, help='Admin login email')
    parser.add_argument('--name', required=True, help='Display name')
    parser.add_argument('--password', required=True, help='At least 8 chars with upper, lower and digit')
    args = parser.parse_args()
    sys.exit(main(args.email, args.name, args.password))
