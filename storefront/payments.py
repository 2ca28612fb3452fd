from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional
import base64
import hashlib
import hmac
import json
import logging
import uuid
from collections import OrderedDict

import stripe

from .errors import WebhookVerificationError
from .helpers import ct_equal, now_ts

log = logging.getLogger("storefront.payments")

SIGNATURE_HEADER = "stripe-signature"
MAX_MOCK_SESSIONS = 1000


# ----------------------------
# Payment Provider Interface
# ----------------------------
class PaymentProvider(ABC):
    """Everything the relay needs from a payment provider.

    Implementations are synchronous; the server calls them from a
    threadpool.
    """

    @abstractmethod
    def find_active_price(self, provider_product_id: str) -> str:
        """Id of the first active price of a registered product.

        Raises if the product is unknown or has no active price.
        """

    @abstractmethod
    def create_session(self, params: Dict[str, Any]) -> Mapping[str, Any]:
        ...

    @abstractmethod
    def retrieve_session(self, session_id: str) -> Mapping[str, Any]:
        ...

    @abstractmethod
    def verify_webhook(self, payload: bytes, signature: str) -> Mapping[str, Any]:
        """Parsed event, or WebhookVerificationError."""


# ----------------------------
# Stripe implementation
# ----------------------------
class StripeProvider(PaymentProvider):

    def __init__(self, secret_key: str, webhook_secret: str,
                 stripe_module: Any = None):
        self._stripe = stripe_module or stripe
        self._stripe.api_key = secret_key
        self.webhook_secret = webhook_secret

    def find_active_price(self, provider_product_id: str) -> str:
        # raises if the product does not exist
        self._stripe.Product.retrieve(provider_product_id)
        prices = self._stripe.Price.list(
            product=provider_product_id, active=True, limit=1,
        )
        if not prices.data:
            raise LookupError(
                f"No active price found for product {provider_product_id}"
            )
        return prices.data[0].id

    def create_session(self, params: Dict[str, Any]) -> Mapping[str, Any]:
        return self._stripe.checkout.Session.create(**params)

    def retrieve_session(self, session_id: str) -> Mapping[str, Any]:
        return self._stripe.checkout.Session.retrieve(session_id)

    def verify_webhook(self, payload: bytes, signature: str) -> Mapping[str, Any]:
        if not self.webhook_secret:
            raise WebhookVerificationError("webhook secret not configured")
        try:
            return self._stripe.Webhook.construct_event(
                payload, signature, self.webhook_secret
            )
        except ValueError as e:
            raise WebhookVerificationError(f"Invalid payload: {e}") from e
        except stripe.SignatureVerificationError as e:
            raise WebhookVerificationError(str(e)) from e


# ----------------------------
# Mock implementation (local dev / tests)
# ----------------------------
class MockProvider(PaymentProvider):
    """In-process stand-in for Stripe.

    Sessions live in a bounded dict, oldest evicted first. Webhooks are
    signed with base64(HMAC-SHA256) of the raw body, sent in the same header
    Stripe uses.
    """

    def __init__(self, secret: str, prices: Optional[Dict[str, str]] = None,
                 max_sessions: int = MAX_MOCK_SESSIONS):
        self.secret = secret
        self.prices = dict(prices or {})
        self.max_sessions = max_sessions
        self.sessions: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()

    def sign(self, payload: bytes) -> str:
        mac = hmac.new(self.secret.encode(), payload, hashlib.sha256).digest()
        return base64.b64encode(mac).decode()

    def find_active_price(self, provider_product_id: str) -> str:
        price_id = self.prices.get(provider_product_id)
        if price_id is None:
            raise LookupError(
                f"No active price found for product {provider_product_id}"
            )
        return price_id

    def create_session(self, params: Dict[str, Any]) -> Mapping[str, Any]:
        sid = f"cs_mock_{uuid.uuid4().hex}"
        session = {
            "id": sid,
            "object": "checkout.session",
            "status": "open",
            "payment_status": "unpaid",
            "created": int(now_ts()),
            "url": f"/mockpay/{sid}",
            **params,
        }
        self.sessions[sid] = session
        while len(self.sessions) > self.max_sessions:
            self.sessions.popitem(last=False)
        return session

    def retrieve_session(self, session_id: str) -> Mapping[str, Any]:
        try:
            return self.sessions[session_id]
        except KeyError:
            raise LookupError(f"No such checkout.session: {session_id}")

    def verify_webhook(self, payload: bytes, signature: str) -> Mapping[str, Any]:
        expected = self.sign(payload)
        if not signature or not ct_equal(expected, signature):
            raise WebhookVerificationError("Invalid signature")
        try:
            event = json.loads(payload.decode())
        except (UnicodeDecodeError, json.JSONDecodeError):
            raise WebhookVerificationError("Invalid JSON")
        if not isinstance(event, dict):
            raise WebhookVerificationError("Invalid event")
        return event


def new_provider(settings) -> PaymentProvider:
    if settings.uses_stripe:
        return StripeProvider(
            settings.stripe_secret_key, settings.stripe_webhook_secret
        )
    log.warning("payments.mock_provider_enabled (STRIPE_SECRET_KEY not set)")
    return MockProvider(settings.mock_secret)
