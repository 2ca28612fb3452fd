from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Optional

CURRENCY = "usd"


@dataclass(frozen=True)
class Product:
    name: str
    price: int  # minor units (cents)
    # pre-registered provider product, e.g. "prod_..."; None -> inline price
    provider_product_id: Optional[str] = None


# ----------------------------
# Catalog (read-only, loaded once)
# ----------------------------
PRODUCTS: Dict[str, Product] = {
    "tier1": Product(name="TIER 1 Firmware EAC/ACE", price=15000),
    "tier2": Product(name="TIER 2 Firmware EAC/BE/ACE/VGK", price=25000),
}


def get_product(product_id, catalog: Dict[str, Product] = PRODUCTS) -> Optional[Product]:
    if not isinstance(product_id, str):
        return None
    return catalog.get(product_id)


def cancel_page(product_id: str) -> str:
    # tier1 lives on product.html, everything else on product2.html
    return "product.html" if product_id == "tier1" else "product2.html"


def inline_line_item(product: Product, product_name: Optional[str],
                     unit_amount: int) -> dict:
    return {
        "price_data": {
            "currency": CURRENCY,
            "product_data": {
                "name": product_name or product.name,
                "description": f"Purchase {product.name}",
            },
            "unit_amount": unit_amount,
        },
        "quantity": 1,
    }


def price_line_item(price_id: str) -> dict:
    return {"price": price_id, "quantity": 1}
