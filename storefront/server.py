from __future__ import annotations
import logging
import os
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, ORJSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from .config import CORS_ORIGINS, Settings, load_env_file
from .errors import RelayError, WebhookVerificationError
from .logs import configure_logging
from .payments import (
    SIGNATURE_HEADER, MockProvider, PaymentProvider, new_provider,
)
from .relay import CheckoutRelay, site_base_for

log = logging.getLogger("storefront.server")

TEMPLATE_DIR = os.path.join(os.path.dirname(__file__), "templates")
templates = Jinja2Templates(directory=TEMPLATE_DIR)


def get_relay(request: Request) -> CheckoutRelay:
    return request.app.state.relay


# ----------------------------
# Error rendering
# ----------------------------
async def _relay_error(request: Request, exc: RelayError):
    if isinstance(exc, WebhookVerificationError):
        return PlainTextResponse(
            f"Webhook Error: {exc.message}", status_code=exc.status_code
        )
    return ORJSONResponse({"error": exc.message}, status_code=exc.status_code)


def create_app(settings: Optional[Settings] = None,
               provider: Optional[PaymentProvider] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    provider = provider or new_provider(settings)

    app = FastAPI(
        title="Storefront Checkout",
        default_response_class=ORJSONResponse,
    )
    app.state.settings = settings
    app.state.relay = CheckoutRelay(provider)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RelayError, _relay_error)

    @app.on_event("startup")
    async def _say_hello():
        P = 'MockPay' if isinstance(provider, MockProvider) else 'Stripe'
        print('=' * 50)
        print('Storefront checkout relay is starting up...')
        print(f'   - Payment Provider: {P}')
        print(f'   - Port: {settings.port}')
        print(f'   - Static site: {settings.site_dir or "-"}')
        print('=' * 50)

    # ----------------------------
    # API: create checkout session
    # ----------------------------
    @app.post("/api/create-checkout-session")
    async def create_checkout_session(
        payload: dict,
        request: Request,
        relay: CheckoutRelay = Depends(get_relay),
    ):
        base = site_base_for(
            request.headers.get("origin"), request.headers.get("referer")
        )
        session_id = await run_in_threadpool(
            relay.create_checkout_session,
            payload.get("productId"),
            payload.get("amount"),
            payload.get("productName"),
            base,
        )
        return {"id": session_id}

    # ----------------------------
    # Success page
    # ----------------------------
    @app.get("/success.html", response_class=HTMLResponse)
    async def success_page(
        request: Request,
        session_id: Optional[str] = None,
        relay: CheckoutRelay = Depends(get_relay),
    ):
        # the page never depends on the lookup
        await run_in_threadpool(relay.inspect_session, session_id)
        return templates.TemplateResponse(request, "success.html", {})

    # ----------------------------
    # Webhook endpoint
    # ----------------------------
    @app.post("/webhook")
    async def webhook(
        request: Request,
        relay: CheckoutRelay = Depends(get_relay),
    ):
        payload = await request.body()
        signature = request.headers.get(SIGNATURE_HEADER, "")
        return await run_in_threadpool(
            relay.handle_webhook, payload, signature
        )

    # static site last, so it never shadows the routes above
    if settings.site_dir:
        app.mount(
            "/", StaticFiles(directory=settings.site_dir, html=True),
            name="site",
        )

    return app


def main():
    import uvicorn

    load_env_file()
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    if not settings.uses_stripe:
        print("Make sure to set STRIPE_SECRET_KEY in your .env file")
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
