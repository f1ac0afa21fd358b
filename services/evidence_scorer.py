"""Peer-to-peer receipt scoring through an OpenAI vision model."""

import base64
import json
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, Overflow

from flask import current_app
from openai import OpenAI, OpenAIError

from services.errors import ServiceUnavailable

CONFIDENCE_LEVELS = ("high", "medium", "low")

_SYSTEM_PROMPT = """You are checking a screenshot that a customer says shows a Venmo payment.

Decide:
- isAuthentic: true only if this is a genuine screenshot of a completed Venmo payment
  (not an edited image, a request, a pending transfer, or some other app).
- recipientMatches: true only if the payment was sent to {payee}.
- amount: the amount SENT/PAID as a number (e.g. 345.00), not a balance. null if unclear.
- confidence: "high", "medium" or "low" for the amount.
- rawText: the text you read that shows the payment.

Respond with JSON only:
{{"isAuthentic": true, "recipientMatches": true, "amount": 345.00, "confidence": "high", "rawText": "You paid Foam Works $345.00"}}
"""


@dataclass
class EvidenceScore:
    is_authentic: bool
    recipient_matches: bool
    amount_cents: int | None
    confidence: str
    raw_text: str


def dollars_to_cents(value) -> int | None:
    if value is None or value == "":
        return None
    try:
        amount = Decimal(str(value).replace("$", "").replace(",", "").strip())
        if not amount.is_finite() or amount < 0:
            return None
        return int((amount * 100).quantize(Decimal("1")))
    except (InvalidOperation, Overflow):
        return None


def parse_score(content: str) -> EvidenceScore:
    data = json.loads(content)
    confidence = str(data.get("confidence") or "low").lower()
    if confidence not in CONFIDENCE_LEVELS:
        confidence = "low"
    return EvidenceScore(
        is_authentic=data.get("isAuthentic") is True,
        recipient_matches=data.get("recipientMatches") is True,
        amount_cents=dollars_to_cents(data.get("amount")),
        confidence=confidence,
        raw_text=str(data.get("rawText") or ""),
    )


def score_evidence(image_bytes: bytes, mime_type: str = "image/jpeg") -> EvidenceScore:
    cfg = current_app.config
    if not cfg.get("OPENAI_API_KEY"):
        raise ServiceUnavailable("Receipt verification is not configured")

    client = OpenAI(api_key=cfg["OPENAI_API_KEY"], timeout=cfg.get("OPENAI_TIMEOUT_SECONDS", 30), max_retries=0)
    image_b64 = base64.b64encode(image_bytes).decode("ascii")
    try:
        response = client.chat.completions.create(
            model=cfg["OPENAI_EVIDENCE_MODEL"],
            messages=[
                {"role": "system", "content": _SYSTEM_PROMPT.format(payee=cfg["P2P_PAYEE_HANDLE"])},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": "Please analyze this Venmo payment screenshot."},
                        {"type": "image_url", "image_url": {"url": f"data:{mime_type};base64,{image_b64}"}},
                    ],
                },
            ],
            response_format={"type": "json_object"},
            max_tokens=500,
        )
    except OpenAIError as exc:
        current_app.logger.error("Receipt analysis failed: %s", exc)
        raise ServiceUnavailable("Receipt verification is unavailable, please try again") from exc

    content = response.choices[0].message.content if response.choices else None
    if not content:
        raise ServiceUnavailable("Receipt verification returned no result, please try again")
    try:
        return parse_score(content)
    except (ValueError, AttributeError) as exc:
        current_app.logger.error("Unreadable receipt analysis: %r", content[:200])
        raise ServiceUnavailable("Receipt verification returned no result, please try again") from exc
