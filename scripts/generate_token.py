#!/usr/bin/env python3
"""
Generate a development JWT for a user id.
Useful for exercising the API by hand: curl -H "Authorization: Bearer <token>" ...
"""

import sys
from datetime import timedelta

from therapist_access.api.auth import generate_token

if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: generate_token.py <user_id> [hours]", file=sys.stderr)
        sys.exit(1)

    user_id = sys.argv[1]
    hours = float(sys.argv[2]) if len(sys.argv) > 2 else 24

    print("=" * 60)
    print("Development Token Generator")
    print("=" * 60)
    print(f"\nUser: {user_id} (valid for {hours:g}h)\n")
    print(generate_token(user_id, expires_in=timedelta(hours=hours)))
    print("\n" + "=" * 60)
