"""
Request-level entry points.

Each handler returns `(status, body)`; errors in the checkout taxonomy
become structured bodies, anything else is logged and reported as Internal.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional, Tuple

from order_pipeline.errors import CheckoutError, InvalidOrderError
from order_pipeline.models import AuthenticatedUser, CheckoutRequest
from order_pipeline.pipeline import OrderPipeline
from order_pipeline.reviews import ReviewLikes

logger = logging.getLogger(__name__)

Response = Tuple[int, Dict[str, Any]]


def error_body(error: CheckoutError) -> Response:
    return error.status, {"error": error.code, "message": error.message}


def handle_errors(action: Callable[[], Response]) -> Response:
    try:
        return action()
    except CheckoutError as e:
        if e.status >= 500:
            logger.error("%s: %s", e.code, e.message)
        return error_body(e)
    except Exception:
        logger.exception("unhandled error")
        return 500, {"error": "Internal", "message": "Unexpected error"}


def place_order(
    pipeline: OrderPipeline,
    basket_id: Any,
    payload: Dict[str, Any],
    user: Optional[AuthenticatedUser],
) -> Response:
    """`POST /rest/basket/{id}/checkout`: returns `{orderConfirmation: orderId}`."""

    def action() -> Response:
        try:
            request = CheckoutRequest.from_payload(int(basket_id), payload or {})
        except (TypeError, ValueError) as e:
            raise InvalidOrderError(f"Malformed checkout request: {e}") from e
        result = pipeline.execute(request, user)
        return 200, {"orderConfirmation": result.order_id}

    return handle_errors(action)


def like_review(likes: ReviewLikes, payload: Dict[str, Any], user: Optional[AuthenticatedUser]) -> Response:
    """`POST /rest/products/reviews`: body `{id}`."""
    if user is None:
        return 401, {"error": "Unauthorized", "message": "Unauthorized"}

    def action() -> Response:
        review = likes.like((payload or {}).get("id"), user.email)
        return 200, {"id": review.id, "likesCount": review.likes_count, "likedBy": list(review.liked_by)}

    return handle_errors(action)
