#!/usr/bin/env python3
from __future__ import annotations

import argparse
import os
import sys
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen


def request_api_token(api_base: str, master_secret: str) -> str:
    url = f"{api_base.rstrip('/')}/api/gen-token"
    req = Request(url, data=b"", headers={"Authorization": master_secret}, method="POST")
    with urlopen(req, timeout=10) as response:  # nosec - internal utility for local/dev use
        return response.read().decode("utf-8")


def build_policy_header(report_uri: str) -> str:
    return f"Content-Security-Policy-Report-Only: default-src 'self'; report-uri {report_uri}"


def main() -> int:
    parser = argparse.ArgumentParser(description="Issue an API token for the CSP collector read endpoints.")
    parser.add_argument(
        "--api-base",
        default=os.environ.get("CSP_API_BASE_URL", "http://localhost:8080"),
        help="API base URL.",
    )
    parser.add_argument(
        "--secret-key",
        default=os.environ.get("CSP_SECRET_KEY"),
        help="Deployment master secret (defaults to CSP_SECRET_KEY).",
    )
    args = parser.parse_args()
    if not args.secret_key:
        print("A master secret is required (--secret-key or CSP_SECRET_KEY)", file=sys.stderr)
        return 2

    try:
        token = request_api_token(args.api_base, args.secret_key)
    except HTTPError as exc:
        detail = exc.read().decode("utf-8") if exc.fp else str(exc)
        print(f"Token request failed: {detail}", file=sys.stderr)
        return 1
    except URLError as exc:
        print(f"Token request failed: {exc}", file=sys.stderr)
        return 1

    print("Token:", token)
    print("Prefix:", token[:5])
    print("")
    print("This token is shown once. Send it as the Authorization header on /api requests.")
    print("Example policy header pointing browsers at this collector:")
    print(build_policy_header(f"{args.api_base.rstrip('/')}/"))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
