"""
FastAPI cart application.

This is the cart mutation code the promotion handler is written for: every
change to a cart runs the handler, which activates whatever promotions now
apply.

Run with:
    uv run uvicorn api.main:app --reload

Then visit http://localhost:8000/docs for interactive API documentation.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from api.models import ActivationResponse, AddLineItemRequest
from promotion_handler import CartPromotionHandler
from shared.config import get_settings
from shared.data_store import PromotionStore, get_promotion_store
from shared.errors import ExclusionProviderFailure, StorageError
from shared.models import Adjustment, Order, Promotion

# Configure logging
logging.basicConfig(
    level=get_settings().LOG_LEVEL,
    format="%(asctime)s | %(name)-24s | %(levelname)-5s | %(message)s",
    datefmt="%H:%M:%S",
)

logger = logging.getLogger("cart_api")

# Module-level instances (replaced in tests via reset_api_state)
_store: Optional[PromotionStore] = None
_handler: Optional[CartPromotionHandler] = None


def get_store() -> PromotionStore:
    """Get the promotion store instance."""
    global _store
    if _store is None:
        _store = get_promotion_store()
    return _store


def get_handler(store: PromotionStore = Depends(get_store)) -> CartPromotionHandler:
    """Get the cart promotion handler, built from settings on first use."""
    global _handler
    if _handler is None:
        _handler = CartPromotionHandler.from_settings(store=store)
    return _handler


def reset_api_state(
    store: Optional[PromotionStore] = None,
    handler: Optional[CartPromotionHandler] = None,
) -> None:
    """Reset API state (for testing)."""
    global _store, _handler
    _store = store
    _handler = handler


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    logging.info("Starting cart promotions API")
    yield
    logging.info("Shutting down")


app = FastAPI(
    title="Cart Promotions",
    description="""
    Cart endpoints that run the promotion handler after every change.

    - `POST /orders/{order_id}/line_items` adds a product and activates promotions for the new line item
    - `POST /orders/{order_id}/promotions/activate` re-runs activation for the whole order
    - `GET /orders/{order_id}/adjustments` lists the discounts created so far
    """,
    version="1.0.0",
    lifespan=lifespan,
)


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    logger.error(f"Storage error on {request.url.path}: {exc}")
    return JSONResponse(status_code=503, content={"detail": f"Promotion data unavailable: {exc}"})


@app.exception_handler(ExclusionProviderFailure)
async def exclusion_failure_handler(request: Request, exc: ExclusionProviderFailure):
    logger.error(f"Aborting {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": str(exc), "provider": exc.provider})


# =============================================================================
# Health Check
# =============================================================================

@app.get("/health", tags=["Health"])
def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "cart-promotions"}


# =============================================================================
# Cart Endpoints
# =============================================================================

def _get_order_or_404(store: PromotionStore, order_id: str) -> Order:
    order = store.get_order(order_id)
    if not order:
        raise HTTPException(status_code=404, detail=f"Order not found: {order_id}")
    return order


@app.get("/orders/{order_id}", response_model=Order, tags=["Cart"])
def get_order(order_id: str, store: PromotionStore = Depends(get_store)):
    return _get_order_or_404(store, order_id)


@app.post("/orders/{order_id}/line_items", response_model=ActivationResponse, tags=["Cart"])
def add_line_item(
    order_id: str,
    request: AddLineItemRequest,
    store: PromotionStore = Depends(get_store),
    handler: CartPromotionHandler = Depends(get_handler),
):
    """
    Add a product to the cart, then activate promotions for the new line item.
    """
    _get_order_or_404(store, order_id)
    line_item = store.add_line_item(order_id, request.product_id, request.quantity)
    if not line_item:
        raise HTTPException(status_code=404, detail=f"Product not found: {request.product_id}")

    order = store.get_order(order_id)
    outcomes = handler.activate(order, line_item)
    return ActivationResponse(
        order=order,
        line_item=line_item,
        outcomes=outcomes,
        adjustments=store.get_adjustments(order_id),
    )


@app.post("/orders/{order_id}/promotions/activate", response_model=ActivationResponse, tags=["Cart"])
def activate_promotions(
    order_id: str,
    store: PromotionStore = Depends(get_store),
    handler: CartPromotionHandler = Depends(get_handler),
):
    """Run the promotion handler for the whole order."""
    order = _get_order_or_404(store, order_id)
    outcomes = handler.activate(order)
    return ActivationResponse(
        order=order,
        outcomes=outcomes,
        adjustments=store.get_adjustments(order_id),
    )


@app.get("/orders/{order_id}/adjustments", response_model=list[Adjustment], tags=["Cart"])
def list_adjustments(order_id: str, store: PromotionStore = Depends(get_store)):
    _get_order_or_404(store, order_id)
    return store.get_adjustments(order_id)


# =============================================================================
# Data Endpoints
# =============================================================================

@app.get("/data/promotions", response_model=list[Promotion], tags=["Data"])
def list_promotions(store: PromotionStore = Depends(get_store)):
    """All promotions, active or not."""
    return store.get_promotions()
