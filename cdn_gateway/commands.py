import argparse
import getpass
import sys

from .auth.passwords import get_password_hash


def read_password(args: argparse.Namespace) -> str:
    if args.password:
        return args.password

    password = getpass.getpass("Password: ")
    if password != getpass.getpass("Confirm password: "):
        raise ValueError("Passwords do not match")
    return password


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(
        description="Generate an argon2 hash for the admin password"
    )
    parser.add_argument("password", nargs="?", help="prompted for when omitted")
    args = parser.parse_args(argv)

    try:
        password = read_password(args)
    except ValueError as e:
        print(str(e), file=sys.stderr)
        sys.exit(1)

    if not password:
        print("Password must not be empty", file=sys.stderr)
        sys.exit(1)

    print(f"ADMIN__PASSWORD_HASH={get_password_hash(password)}")


if __name__ == "__main__":
    main()
