from __future__ import annotations

import pytest

from conftest import FakeProvider
from storefront.catalog import PRODUCTS, Product
from storefront.errors import (
    ProviderError, UnknownProductError, WebhookVerificationError,
)
from storefront.relay import CheckoutRelay, site_base_for

REGISTERED = {
    "tier1": Product(name="TIER 1 Firmware EAC/ACE", price=15000),
    "tier2": Product(name="TIER 2 Firmware EAC/BE/ACE/VGK", price=25000,
                     provider_product_id="prod_T2"),
}


@pytest.mark.parametrize("product_id", ["tier3", "", None, 7, "TIER1"])
def test_unknown_product_never_reaches_provider(provider, product_id):
    relay = CheckoutRelay(provider)

    with pytest.raises(UnknownProductError) as ei:
        relay.create_checkout_session(product_id, 150, "x")

    assert ei.value.status_code == 400
    assert ei.value.message == "Invalid product ID"
    assert provider.created == []
    assert provider.lookups == []


def test_inline_price_for_product_without_registered_price(provider):
    relay = CheckoutRelay(provider)

    sid = relay.create_checkout_session("tier1", 150, "My Tier 1")

    assert sid == "cs_test_1"
    params = provider.created[0]
    assert params["mode"] == "payment"
    assert params["payment_method_types"] == ["card"]
    assert params["metadata"] == {"productId": "tier1"}
    assert params["line_items"] == [{
        "price_data": {
            "currency": "usd",
            "product_data": {
                "name": "My Tier 1",
                "description": "Purchase TIER 1 Firmware EAC/ACE",
            },
            "unit_amount": 15000,
        },
        "quantity": 1,
    }]
    assert provider.lookups == []


def test_registered_price_is_requested_exactly():
    provider = FakeProvider(prices={"prod_T2": "price_T2_default"})
    relay = CheckoutRelay(provider, catalog=REGISTERED)

    relay.create_checkout_session("tier2", 250, "ignored")

    assert provider.lookups == ["prod_T2"]
    assert provider.created[0]["line_items"] == [
        {"price": "price_T2_default", "quantity": 1}
    ]


def test_price_lookup_failure_falls_back_to_catalog_name():
    provider = FakeProvider(prices={})
    relay = CheckoutRelay(provider, catalog=REGISTERED)

    relay.create_checkout_session("tier2", 250, None)

    item = provider.created[0]["line_items"][0]
    assert "price" not in item
    data = item["price_data"]
    assert data["product_data"]["name"] == "TIER 2 Firmware EAC/BE/ACE/VGK"
    assert data["product_data"]["description"] == (
        "Purchase TIER 2 Firmware EAC/BE/ACE/VGK"
    )
    assert data["unit_amount"] == 25000


def test_amount_comes_from_catalog_not_client(provider, caplog):
    relay = CheckoutRelay(provider)

    with caplog.at_level("WARNING", logger="storefront.relay"):
        relay.create_checkout_session("tier1", 1, "cheap")

    unit = provider.created[0]["line_items"][0]["price_data"]["unit_amount"]
    assert unit == PRODUCTS["tier1"].price
    assert "amount_mismatch" in caplog.text


def test_matching_client_amount_is_not_flagged(provider, caplog):
    relay = CheckoutRelay(provider)

    with caplog.at_level("WARNING", logger="storefront.relay"):
        relay.create_checkout_session("tier2", 250, None)

    assert "amount_mismatch" not in caplog.text


@pytest.mark.parametrize("amount", [
    "1e400", float("inf"), float("nan"), "abc", {"x": 1}, [1],
])
def test_unusable_client_amount_falls_back_to_catalog(provider, caplog, amount):
    relay = CheckoutRelay(provider)

    with caplog.at_level("WARNING", logger="storefront.relay"):
        assert relay.create_checkout_session("tier1", amount, None) == "cs_test_1"

    unit = provider.created[0]["line_items"][0]["price_data"]["unit_amount"]
    assert unit == 15000
    assert "amount_mismatch" in caplog.text


def test_redirect_urls_follow_site_base_and_product(provider):
    relay = CheckoutRelay(provider)

    relay.create_checkout_session("tier1", 150, None,
                                  site_base="https://stealthdma.com")
    relay.create_checkout_session("tier2", 250, None)

    first, second = provider.created
    assert first["success_url"] == (
        "https://stealthdma.com/success.html?session_id={CHECKOUT_SESSION_ID}"
    )
    assert first["cancel_url"] == "https://stealthdma.com/product.html"
    assert second["cancel_url"] == "http://localhost:3000/product2.html"


def test_provider_failure_becomes_server_error(provider):
    provider.fail_create = RuntimeError("card declined upstream")
    relay = CheckoutRelay(provider)

    with pytest.raises(ProviderError) as ei:
        relay.create_checkout_session("tier1", 150, None)

    assert ei.value.status_code == 500
    assert ei.value.message == "card declined upstream"


@pytest.mark.parametrize("origin,referer,expected", [
    ("https://www.stealthdma.com", None, "https://stealthdma.com"),
    (None, "https://stealthdma.com/product2.html", "https://stealthdma.com"),
    ("http://127.0.0.1:3000", None, "http://localhost:3000"),
    (None, None, "http://localhost:3000"),
    (None, "not a url", "http://localhost:3000"),
])
def test_site_base_for(origin, referer, expected):
    assert site_base_for(origin, referer) == expected


def test_invalid_signature_runs_no_handler(provider):
    seen = []
    relay = CheckoutRelay(provider, handlers={
        "checkout.session.completed": seen.append,
    })
    provider.fail_verify = WebhookVerificationError("Invalid signature")
    provider.event = {"type": "checkout.session.completed",
                      "data": {"object": {"id": "cs_1"}}}

    with pytest.raises(WebhookVerificationError):
        relay.handle_webhook(b"{}", "bogus")

    assert seen == []


def test_known_event_dispatches_to_handler(provider):
    seen = []
    relay = CheckoutRelay(provider, handlers={
        "checkout.session.completed": seen.append,
    })
    provider.event = {"type": "checkout.session.completed",
                      "data": {"object": {"id": "cs_1"}}}

    assert relay.handle_webhook(b"{}", "sig") == {"received": True}
    assert seen == [{"id": "cs_1"}]


@pytest.mark.parametrize("data", ["x", None, ["cs_1"], {"object": "cs_1"}])
def test_event_without_object_mapping_dispatches_empty(provider, data):
    seen = []
    relay = CheckoutRelay(provider, handlers={
        "checkout.session.completed": seen.append,
    })
    provider.event = {"type": "checkout.session.completed", "data": data}

    assert relay.handle_webhook(b"{}", "sig") == {"received": True}
    assert seen == [{}]


def test_non_string_event_type_is_unhandled(provider, caplog):
    relay = CheckoutRelay(provider)
    provider.event = {"type": ["checkout.session.completed"], "data": {}}

    with caplog.at_level("INFO", logger="storefront.relay"):
        assert relay.handle_webhook(b"{}", "sig") == {"received": True}

    assert "unhandled" in caplog.text


def test_unknown_event_is_acknowledged(provider, caplog):
    relay = CheckoutRelay(provider)
    provider.event = {"type": "customer.created", "data": {"object": {}}}

    with caplog.at_level("INFO", logger="storefront.relay"):
        assert relay.handle_webhook(b"{}", "sig") == {"received": True}

    assert "unhandled type=customer.created" in caplog.text


def test_inspect_session_is_best_effort(provider):
    relay = CheckoutRelay(provider)

    assert relay.inspect_session(None) is None
    assert provider.retrieved == []
    assert relay.inspect_session("cs_1")["payment_status"] == "paid"

    provider.fail_retrieve = LookupError("No such checkout.session")
    assert relay.inspect_session("cs_2") is None
