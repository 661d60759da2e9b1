#!/usr/bin/env python3
"""
Script to run the CSP collector API
"""
import os
import sys

import uvicorn

# Add the current directory to Python path so we can import csp_collector
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from csp_collector.config import get_settings  # noqa: E402


def main():
    """Serve the collector on the configured host and port"""
    settings = get_settings()
    print(f"Starting CSP collector at {settings.HOST}:{settings.PORT}")
    uvicorn.run("csp_collector.main:app", host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    main()
