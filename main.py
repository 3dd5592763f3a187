"""
Main entrypoint for the employee location tracker.

Usage:
    python main.py serve                  Run the HTTP server (HOST/PORT from the environment)
    python main.py hash-password manager  Print a password.txt line for the given username
"""
import argparse
import getpass
import sys

import uvicorn

from src.auth.credentials import hash_password
from src.config import load_settings


def serve():
    settings = load_settings()
    uvicorn.run("src.api.app:app", host=settings.host, port=settings.port, log_level=settings.log_level.lower())
    return 0


def print_password_line(username):
    if not username or ":" in username:
        print("Username must be non-empty and must not contain ':'", file=sys.stderr)
        return 1
    password = getpass.getpass("Manager password: ")
    if not password:
        print("Password must not be empty", file=sys.stderr)
        return 1
    if getpass.getpass("Repeat password: ") != password:
        print("Passwords do not match", file=sys.stderr)
        return 1

    print("Put this line in password.txt inside DATA_DIR:")
    print(f"{username}:{hash_password(password)}")
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(description="Employee location tracker")
    commands = parser.add_subparsers(dest="command")
    commands.add_parser("serve", help="run the HTTP server")
    hash_cmd = commands.add_parser("hash-password", help="create a password.txt line")
    hash_cmd.add_argument("username", nargs="?", default="manager")

    args = parser.parse_args(argv)

    if args.command == "hash-password":
        return print_password_line(args.username)
    return serve()


if __name__ == "__main__":
    sys.exit(main())
