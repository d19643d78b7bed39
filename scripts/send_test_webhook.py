"""Sign and post a sample `payment_intent.*` webhook to a running service.

Useful for exercising reconciliation locally without the processor's CLI.
"""

import argparse
import json
import time
from uuid import uuid4

import httpx

from paybridge.services.webhooks.signature import sign_payload


def build_event(event_type: str, intent_id: str, amount: int, currency: str) -> dict:
    """Build a minimal processor-shaped event around one intent."""

    return {
        "id": f"evt_{uuid4().hex[:24]}",
        "type": event_type,
        "created": int(time.time()),
        "data": {
            "object": {
                "id": intent_id,
                "object": "payment_intent",
                "amount": amount,
                "currency": currency,
                "status": "succeeded" if event_type.endswith("succeeded") else "requires_payment_method",
                "metadata": {},
            }
        },
    }


def main() -> None:
    """Parse CLI args, sign one event, and post it."""

    parser = argparse.ArgumentParser(description="Post a signed test webhook.")
    parser.add_argument("--url", default="http://localhost:8080/api/webhook")
    parser.add_argument("--secret", required=True, help="Webhook signing secret")
    parser.add_argument("--intent-id", required=True)
    parser.add_argument(
        "--type",
        dest="event_type",
        default="payment_intent.succeeded",
        help="Event type, e.g. payment_intent.payment_failed",
    )
    parser.add_argument("--amount", type=int, default=2999)
    parser.add_argument("--currency", default="usd")
    parser.add_argument("--timestamp-offset", type=int, default=0, help="Seconds added to the signed timestamp")
    args = parser.parse_args()

    body = json.dumps(build_event(args.event_type, args.intent_id, args.amount, args.currency)).encode("utf-8")
    header = sign_payload(body, args.secret, int(time.time()) + args.timestamp_offset)
    resp = httpx.post(
        args.url,
        content=body,
        headers={"Content-Type": "application/json", "Stripe-Signature": header},
        timeout=10.0,
    )
    print(f"{resp.status_code} {resp.text}")


if __name__ == "__main__":
    main()
