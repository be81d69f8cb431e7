#!/usr/bin/env python3
"""Print an Argon2 hash of the admin password for ADMIN_PASSWORD in .env.

The login endpoint accepts either the plain value or this hash.
"""
import sys

from geoattend.core.security import get_password_hash

MIN_LENGTH = 8


def main(argv):
    if len(argv) != 2:
        print("Usage: python hash_password.py 'admin-password'", file=sys.stderr)
        return 1

    password = argv[1]
    if len(password) < MIN_LENGTH:
        print(f"Error: admin password must be at least {MIN_LENGTH} characters", file=sys.stderr)
        return 1

    password_hash = get_password_hash(password)

    print(f"ADMIN_PASSWORD={password_hash}")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
