#!/usr/bin/env python3
import argparse
import asyncio
import json
import os
import random
from typing import Any, Dict

import httpx

COLLECTOR_URL = os.environ.get("CSP_COLLECTOR_URL", "http://localhost:8080/")

SAMPLE_VIOLATIONS = [
    ("script-src-elem 'self'", "https://cdn.example.net/widget.js"),
    ("img-src 'self' data:", "https://tracker.example.org/pixel.gif"),
    ("style-src-attr 'none'", "inline"),
    ("connect-src 'self'", "wss://live.example.com/socket"),
    ("font-src 'self'", "https://fonts.example.net/inter.woff2"),
    ("frame-src 'none'", "https://ads.example.com/frame"),
]


def build_report(document_uri: str) -> Dict[str, Any]:
    directive, blocked = random.choice(SAMPLE_VIOLATIONS)
    return {
        "csp-report": {
            "document-uri": document_uri,
            "referrer": "",
            "violated-directive": directive,
            "effective-directive": directive.split(" ")[0],
            "original-policy": "default-src 'self'; report-uri /",
            "disposition": "report",
            "blocked-uri": blocked,
            "line-number": random.randint(1, 400),
            "column-number": random.randint(1, 80),
            "source-file": document_uri,
            "status-code": 200,
            "script-sample": "",
        }
    }


async def send_reports(count: int, document_uri: str):
    async with httpx.AsyncClient(timeout=10.0) as client:
        for _ in range(count):
            resp = await client.post(
                COLLECTOR_URL,
                content=json.dumps(build_report(document_uri)),
                headers={"Content-Type": "application/csp-report"},
            )
            resp.raise_for_status()
    print(f"Sent {count} reports to {COLLECTOR_URL}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Post sample CSP violation reports to a collector.")
    parser.add_argument("--count", type=int, default=20)
    parser.add_argument("--document-uri", default="https://example.com/")
    args = parser.parse_args()
    asyncio.run(send_reports(args.count, args.document_uri))
