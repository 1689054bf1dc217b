import hashlib
import hmac
import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

import requests

from headway.core.config import settings
from headway.core.errors import GatewayError

logger = logging.getLogger(__name__)

SANDBOX_URL = "https://sandbox-merchant.revolut.com/api"
PROD_URL = "https://merchant.revolut.com/api"

@dataclass
class RevolutConfig:
    secret_key: str          # Merchant API secret key (Bearer)
    sandbox: bool = False
    api_version: str = "2024-09-01"
    timeout: int = 25

    @property
    def base_url(self) -> str:
        return SANDBOX_URL if self.sandbox else PROD_URL

@dataclass
class RevolutOrder:
    id: str
    state: str
    checkout_url: str

def to_minor_units(amount: Decimal | int | float | str) -> int:
    """Decimal amount -> integer cents, rounding half up."""
    cents = (Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(cents)

def verify_webhook_signature(raw_payload: str | bytes, signature_header: str, timestamp: str, secret: str) -> bool:
    """Check a Revolut-Signature header against HMAC-SHA256("v1.{timestamp}.{payload}").

    The header may carry several comma separated ``v1=<hex>`` candidates while
    signing keys rotate; any single match is enough.
    """
    if not signature_header or not timestamp or not secret:
        return False
    if isinstance(raw_payload, str):
        raw_payload = raw_payload.encode("utf-8")

    # signed over the exact bytes received
    signed = b"v1." + timestamp.encode("utf-8") + b"." + raw_payload
    expected = "v1=" + hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()

    matched = False
    for candidate in signature_header.split(","):
        # no short-circuit: every candidate is compared
        if hmac.compare_digest(expected.encode("utf-8"), candidate.strip().encode("utf-8")):
            matched = True
    return matched

class RevolutClient:
    def __init__(self, cfg: RevolutConfig):
        self.cfg = cfg

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.cfg.secret_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Revolut-Api-Version": self.cfg.api_version,
        }

    def request(self, method: str, path: str, payload: dict | None = None) -> dict:
        url = f"{self.cfg.base_url}{path}"
        try:
            r = requests.request(method=method.upper(), url=url, json=payload, headers=self._headers(), timeout=self.cfg.timeout)
        except requests.RequestException as e:
            logger.error("Revolut %s %s failed: %s", method.upper(), path, e)
            raise GatewayError(f"Revolut API unreachable: {e}") from e
        if r.status_code >= 400:
            logger.error("Revolut %s %s returned %s: %s", method.upper(), path, r.status_code, r.text)
            raise GatewayError(f"Revolut API error: {r.status_code} - {r.text}", upstream_status=r.status_code, body=r.text)
        try:
            return r.json() if r.text else {}
        except ValueError:
            return {"raw": r.text}

    def create_order(self, amount: Decimal, currency: str, description: str, redirect_url: str | None = None) -> RevolutOrder:
        payload = {
            "amount": to_minor_units(amount),
            "currency": currency.upper(),
            "description": description,
        }
        if redirect_url:
            payload["redirect_url"] = redirect_url
        data = self.request("POST", "/orders", payload)
        return RevolutOrder(
            id=str(data.get("id") or ""),
            state=str(data.get("state") or ""),
            checkout_url=str(data.get("checkout_url") or ""),
        )

    def get_order(self, order_id: str) -> dict:
        return self.request("GET", f"/orders/{order_id}")

def get_revolut_client() -> RevolutClient:
    """FastAPI dependency; tests override it with a stub."""
    return RevolutClient(RevolutConfig(
        secret_key=settings.REVOLUT_SECRET_KEY,
        sandbox=settings.REVOLUT_SANDBOX,
        api_version=settings.REVOLUT_API_VERSION,
        timeout=settings.REVOLUT_TIMEOUT_SECONDS,
    ))
