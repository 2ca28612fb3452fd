"""
Checkout relay: validates purchase requests against the catalog and hands
session creation to the payment provider.

Nothing here is stateful. The catalog is read-only and every call is
independent, so one relay instance is shared by all requests.
"""
from __future__ import annotations
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from .catalog import (
    PRODUCTS, Product, cancel_page, get_product, inline_line_item,
    price_line_item,
)
from .config import (
    DEVELOPMENT_SITE_BASE, PRODUCTION_DOMAIN, PRODUCTION_SITE_BASE,
)
from .errors import ProviderError, UnknownProductError
from .helpers import origin_of, to_minor_units
from .payments import PaymentProvider

log = logging.getLogger("storefront.relay")

EventHandler = Callable[[Mapping[str, Any]], None]


def site_base_for(origin: Optional[str], referer: Optional[str] = None) -> str:
    origin = origin or origin_of(referer) or DEVELOPMENT_SITE_BASE
    if PRODUCTION_DOMAIN in origin:
        return PRODUCTION_SITE_BASE
    return DEVELOPMENT_SITE_BASE


def _on_checkout_completed(obj: Mapping[str, Any]) -> None:
    log.info("relay.webhook.payment_successful session=%s", obj.get("id"))


def _on_payment_intent_succeeded(obj: Mapping[str, Any]) -> None:
    log.info("relay.webhook.payment_intent_succeeded intent=%s", obj.get("id"))


EVENT_HANDLERS: Dict[str, EventHandler] = {
    "checkout.session.completed": _on_checkout_completed,
    "payment_intent.succeeded": _on_payment_intent_succeeded,
}


class CheckoutRelay:

    def __init__(self, provider: PaymentProvider,
                 catalog: Dict[str, Product] = PRODUCTS,
                 handlers: Optional[Dict[str, EventHandler]] = None):
        self.provider = provider
        self.catalog = catalog
        self.handlers = dict(EVENT_HANDLERS if handlers is None else handlers)

    # ----------------------------
    # Checkout sessions
    # ----------------------------
    def session_amount(self, product_id: str, product: Product, amount) -> int:
        """Amount to charge, in minor units.

        The catalog price is authoritative. A client-supplied amount is only
        compared against it.
        """
        if amount is not None:
            try:
                requested = to_minor_units(amount)
            except (TypeError, ValueError, OverflowError):
                requested = None
            if requested != product.price:
                log.warning(
                    "relay.checkout.amount_mismatch product=%s "
                    "requested=%r catalog=%d",
                    product_id, amount, product.price,
                )
        return product.price

    def line_items(self, product: Product, product_name: Optional[str],
                   unit_amount: int) -> List[dict]:
        if product.provider_product_id is None:
            return [inline_line_item(product, product_name, unit_amount)]
        try:
            price_id = self.provider.find_active_price(
                product.provider_product_id
            )
        except Exception as e:
            log.warning(
                "relay.checkout.price_lookup_failed product=%s: %s",
                product.provider_product_id, e,
            )
            log.info(
                "relay.checkout.inline_price_fallback product=%s",
                product.name,
            )
            return [inline_line_item(product, product_name, unit_amount)]
        return [price_line_item(price_id)]

    def create_checkout_session(self, product_id, amount=None,
                                product_name: Optional[str] = None,
                                site_base: str = DEVELOPMENT_SITE_BASE) -> str:
        product = get_product(product_id, self.catalog)
        if product is None:
            raise UnknownProductError(product_id)

        unit_amount = self.session_amount(product_id, product, amount)
        try:
            session = self.provider.create_session({
                "payment_method_types": ["card"],
                "line_items": self.line_items(
                    product, product_name, unit_amount
                ),
                "mode": "payment",
                "success_url": (
                    f"{site_base}/success.html"
                    "?session_id={CHECKOUT_SESSION_ID}"
                ),
                "cancel_url": f"{site_base}/{cancel_page(product_id)}",
                "metadata": {"productId": product_id},
            })
            session_id = session["id"]
        except Exception as e:
            log.exception("relay.checkout.create_failed product=%s", product_id)
            raise ProviderError(str(e)) from e

        log.info("relay.checkout.created product=%s session=%s",
                 product_id, session_id)
        return session_id

    def inspect_session(self, session_id: Optional[str]) -> Optional[Mapping[str, Any]]:
        """Best-effort lookup for the success page; never raises."""
        if not session_id:
            return None
        try:
            session = self.provider.retrieve_session(session_id)
        except Exception as e:
            log.warning("relay.success.retrieve_failed session=%s: %s",
                        session_id, e)
            return None
        log.info("relay.success.session session=%s payment_status=%s",
                 session_id, session.get("payment_status"))
        return session

    # ----------------------------
    # Webhooks
    # ----------------------------
    def handle_webhook(self, payload: bytes, signature: str) -> dict:
        # raises WebhookVerificationError before any handler runs
        try:
            event = self.provider.verify_webhook(payload, signature or "")
        except Exception as e:
            log.warning("relay.webhook.verification_failed: %s", e)
            raise

        event_type = event.get("type")
        handler = (self.handlers.get(event_type)
                   if isinstance(event_type, str) else None)
        if handler is None:
            log.info("relay.webhook.unhandled type=%s", event_type)
        else:
            data = event.get("data")
            obj = data.get("object") if isinstance(data, Mapping) else None
            handler(obj if isinstance(obj, Mapping) else {})
        return {"received": True}
