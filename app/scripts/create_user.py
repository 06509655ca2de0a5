"""
Create a user (e.g. the first admin). Run from project root:
  python -m app.scripts.create_user NAME EMAIL PASSWORD [role]
Example:
  python -m app.scripts.create_user "Site Admin" admin@example.com your-secure-password admin
"""
import argparse
import logging
import sys

from app.core.database import SessionLocal
from app.core.errors import ConflictError
from app.core.validation import validate
from app.schemas.auth import SignUpRequest
from app.services.auth import register_user

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a Gatekeeper user.")
    parser.add_argument("name", help="Display name (2-255 chars)")
    parser.add_argument("email", help="Email address (unique)")
    parser.add_argument("password", help="Password (6-128 chars)")
    parser.add_argument("role", nargs="?", default="user", choices=["user", "admin"])
    args = parser.parse_args(argv)

    result = validate(
        SignUpRequest,
        {"name": args.name, "email": args.email, "password": args.password, "role": args.role},
    )
    if not result.ok:
        for issue in result.issues:
            print(f"{issue['field']}: {issue['message']}", file=sys.stderr)
        return 1
    body = result.unwrap()

    db = SessionLocal()
    try:
        user = register_user(
            db, name=body.name, email=body.email, password=body.password, role=body.role
        )
    except ConflictError:
        print(f"User '{body.email}' already exists.", file=sys.stderr)
        return 1
    finally:
        db.close()
    print(f"Created user '{user.email}' (id {user.id}) with role '{user.role}'.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
