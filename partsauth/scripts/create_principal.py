"""
Create an account (e.g. the first administrator). Run from project root:
  python -m partsauth.scripts.create_principal EMAIL PASSWORD [--type admin] [--role NAME] [--name NAME]
Example:
  python -m partsauth.scripts.create_principal admin@example.com 'a-long-password' --role "Super Admin"
"""
import argparse
import sys

from sqlalchemy import select

from partsauth.core.database import SessionLocal
from partsauth.core.security import EMAIL_MAX_LEN, PASSWORD_MAX_LEN, PASSWORD_MIN_LEN, hash_password
from partsauth.core.tokens import PrincipalType
from partsauth.models import Principal, Role
from partsauth.models.principal import PRINCIPAL_STATUSES
from partsauth.services.auth import normalize_email


def main() -> int:
    parser = argparse.ArgumentParser(description="Create an account (no registration UI).")
    parser.add_argument("email", help="E-mail (unique)")
    parser.add_argument("password", help=f"Password ({PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} chars)")
    parser.add_argument(
        "--type",
        dest="principal_type",
        default=PrincipalType.ADMIN.value,
        choices=[t.value for t in PrincipalType],
    )
    parser.add_argument("--status", default="active", choices=PRINCIPAL_STATUSES)
    parser.add_argument("--role", help="Role name for administrators (created if missing)")
    parser.add_argument("--name", default="", help="Display name")
    args = parser.parse_args()

    email = normalize_email(args.email)
    if "@" not in email or len(email) > EMAIL_MAX_LEN:
        print("Invalid e-mail.", file=sys.stderr)
        return 1
    if len(args.password) < PASSWORD_MIN_LEN or len(args.password) > PASSWORD_MAX_LEN:
        print(
            f"Password must be {PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} characters.",
            file=sys.stderr,
        )
        return 1
    if args.role and args.principal_type != PrincipalType.ADMIN.value:
        print("Only administrators have roles.", file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        existing = db.execute(select(Principal).where(Principal.email == email)).scalar_one_or_none()
        if existing:
            print(f"Account '{email}' already exists.", file=sys.stderr)
            return 1
        role = None
        if args.role:
            role = db.execute(select(Role).where(Role.name == args.role)).scalar_one_or_none()
            if role is None:
                role = Role(name=args.role, status="active")
                db.add(role)
                db.flush()
        principal = Principal(
            email=email,
            name=args.name,
            password_hash=hash_password(args.password),
            principal_type=args.principal_type,
            status=args.status,
            role_id=role.id if role is not None else None,
        )
        db.add(principal)
        db.commit()
        print(f"Created {args.principal_type} '{email}' (status={args.status}).")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
