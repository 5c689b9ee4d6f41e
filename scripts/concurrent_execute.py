#!/usr/bin/env python3
"""
Send N concurrent POST /api/v1/sql/execute requests and summarize the status codes.

Useful to watch pool behaviour: with DB_USE_POOL=true, DB_POOL_MAX=2 and a slow query
(e.g. PostgreSQL: SELECT pg_sleep(2), 1 AS x), requests queue for a pooled connection;
those that wait longer than DB_POOL_CONNECTION_TIMEOUT_MS come back as HTTP 502.

Usage:
  python scripts/concurrent_execute.py [--url URL] [--dialect D] [--query SQL] [--concurrent N]
  Or set env: API_URL, DIALECT, QUERY, CONCURRENT
"""

import argparse
import os
import time
from concurrent.futures import ThreadPoolExecutor, as_completed

import httpx


def do_request(
    client: httpx.Client,
    url: str,
    body: dict,
    index: int,
) -> tuple[int, int, int | None]:
    """Send one POST; return (index, status_code, executionTime or None)."""
    try:
        r = client.post(url, json=body)
    except httpx.HTTPError:
        return (index, -1, None)  # -1 = transport error
    execution_time = r.json().get("executionTime") if r.status_code == 200 else None
    return (index, r.status_code, execution_time)


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Run the same SQL through the API with N parallel requests."
    )
    parser.add_argument(
        "--url",
        default=os.environ.get("API_URL", "http://localhost:8000/api/v1/sql/execute"),
    )
    parser.add_argument(
        "--dialect",
        default=os.environ.get("DIALECT", "postgresql"),
        help="mysql or postgresql; uses the server's default connection for it",
    )
    parser.add_argument(
        "--query",
        default=os.environ.get("QUERY", "SELECT pg_sleep(2), 1 AS x"),
    )
    parser.add_argument(
        "--concurrent",
        type=int,
        default=int(os.environ.get("CONCURRENT", "10")),
        help="Number of concurrent requests (default 10)",
    )
    args = parser.parse_args()

    body = {"dialect": args.dialect, "query": args.query}
    print(f"Sending {args.concurrent} concurrent requests to {args.url}")
    print("---")

    started = time.monotonic()
    results: list[tuple[int, int, int | None]] = []
    with httpx.Client(timeout=120) as client, ThreadPoolExecutor(
        max_workers=args.concurrent
    ) as executor:
        futures = [
            executor.submit(do_request, client, args.url, body, i)
            for i in range(1, args.concurrent + 1)
        ]
        for fut in as_completed(futures):
            idx, code, ms = fut.result()
            results.append((idx, code, ms))
            code_str = str(code) if code >= 0 else "ERR"
            timing = f" ({ms}ms)" if ms is not None else ""
            print(f"{idx} HTTP {code_str}{timing}")

    wall = int((time.monotonic() - started) * 1000)
    print("---")
    ok = sum(1 for _, c, _ in results if c == 200)
    bad_request = sum(1 for _, c, _ in results if c == 400)
    bad_gateway = sum(1 for _, c, _ in results if c == 502)
    err = sum(1 for _, c, _ in results if c < 0)
    print(
        f"Done in {wall}ms. 200={ok} 400={bad_request} 502={bad_gateway} errors={err}"
    )
    print("400 = query rejected by the database; 502 = no connection (pool wait or connect).")


if __name__ == "__main__":
    main()
