#!/usr/bin/env python
"""Print a session token and CSRF token for an account, for calling the API by hand."""

import os
import sys

sys.path.append(os.path.join(os.path.dirname(__file__), "..", "src"))

from agentcloudapi.auth import create_access_token, csrf_token_for


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python create_token.py <account_id> [hours]")
        print("Example: python create_token.py 66a1f0c2b3d4e5f60718293a 24")
        sys.exit(1)

    account_id = sys.argv[1]
    hours = int(sys.argv[2]) if len(sys.argv) > 2 else 24

    token = create_access_token(account_id, expires_in=hours * 3600)
    print(f"Token for account '{account_id}' (expires in {hours} hours):")
    print(token)
    print("\nUse these headers in your requests:")
    print(f"Authorization: Bearer {token}")
    print(f"X-CSRF-Token: {csrf_token_for(account_id)}")
