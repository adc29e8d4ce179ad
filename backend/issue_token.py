"""Print a bearer token for local development.

Usage:
    python -m backend.issue_token --role admin --subject admin-1
    python -m backend.issue_token --role doctor --subject doc-1 --email doc@example.com
"""
import argparse
import sys

from backend.auth.jwt_handler import ROLES, create_access_token


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--role", choices=ROLES, required=True)
    parser.add_argument("--subject", required=True)
    parser.add_argument("--email")
    parser.add_argument("--expires-minutes", type=int)
    args = parser.parse_args(argv)

    token = create_access_token(
        subject=args.subject,
        role=args.role,
        email=args.email,
        expires_minutes=args.expires_minutes,
    )
    sys.stdout.write(token + "\n")


if __name__ == "__main__":
    main()
