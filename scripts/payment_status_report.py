"""Fetch all payments and print a per-status summary as JSON."""

import argparse
import json
from collections import Counter

import httpx


def summarize(payments: list[dict]) -> dict:
    """Count payments per status and list the ones returned without order data."""

    by_status = Counter(p["status"] for p in payments)
    return {
        "total": len(payments),
        "by_status": dict(sorted(by_status.items())),
        "paid": sum(1 for p in payments if p.get("is_paid")),
        "unenriched_payment_ids": [p["payment_id"] for p in payments if p.get("order") is None],
    }


def main() -> None:
    """CLI entrypoint for payment status reports."""

    parser = argparse.ArgumentParser(description="Summarize payments by lifecycle status.")
    parser.add_argument("--payment-url", default="http://localhost:8400")
    parser.add_argument("--timeout", type=float, default=10.0)
    args = parser.parse_args()

    resp = httpx.get(f"{args.payment_url}/payments", timeout=args.timeout)
    resp.raise_for_status()
    print(json.dumps(summarize(resp.json()), indent=2))


if __name__ == "__main__":
    main()
