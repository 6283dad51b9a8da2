from __future__ import annotations

import sys

from sqlalchemy import select

import cityguide.models  # noqa: F401
from cityguide.core.security import get_password_hash
from cityguide.db.base import Base
from cityguide.db.session import engine, session_scope
from cityguide.models.enums import UserRole
from cityguide.models.users import UserAuth


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if len(args) not in (2, 3):
        print("Usage: python -m scripts.create_admin <email> <password> [name]")
        print("An existing account with that email is promoted to admin instead.")
        return 2

    email, password = args[0].lower(), args[1]
    name = args[2] if len(args) == 3 else "Admin User"
    if len(password) < 6:
        print("Password must be at least 6 characters")
        return 2

    Base.metadata.create_all(bind=engine)
    with session_scope() as db:
        user = db.scalar(select(UserAuth).where(UserAuth.email == email))
        if user:
            if user.role == UserRole.admin.value:
                print(f"Admin user already exists: {email}")
                return 0
            user.role = UserRole.admin.value
            db.commit()
            print(f"Role updated: {email} -> admin")
            return 0

        db.add(
            UserAuth(
                name=name,
                email=email,
                password_hash=get_password_hash(password),
                role=UserRole.admin.value,
                is_email_verified=True,
            )
        )
        db.commit()
        print(f"Admin user created: {email}")
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
