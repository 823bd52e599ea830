from __future__ import annotations

import time

from order_pipeline.challenges import ChallengeTriggerHooks
from order_pipeline.config import ShopConfig
from order_pipeline.errors import NotAllowedError, NotFoundError
from order_pipeline.models import Review
from order_pipeline.pipeline import strip_newlines
from order_pipeline.store import Store


class ReviewLikes:
    """
    One like per user and review.

    The duplicate check and the write are separated by `delay`, so
    concurrent requests from one user can all pass the check; the hooks see
    the resulting list and flag it.
    """

    def __init__(self, store: Store, hooks: ChallengeTriggerHooks, delay: float = 0.15):
        self.store = store
        self.hooks = hooks
        self.delay = delay

    @classmethod
    def from_config(cls, store: Store, hooks: ChallengeTriggerHooks, config: ShopConfig) -> "ReviewLikes":
        return cls(store, hooks, delay=config.like_delay)

    def like(self, review_id: str, email: str) -> Review:
        review_id = strip_newlines(str(review_id)) or ""
        email = strip_newlines(str(email)) or ""

        review = self.store.find_review(review_id)
        if review is None:
            raise NotFoundError(f"Review {review_id} not found")
        if email in review.liked_by:
            raise NotAllowedError(f"{email} already liked review {review_id}")

        self.store.increment_likes(review_id)
        time.sleep(self.delay)
        liked_by = self.store.append_liked_by(review_id, email)
        self.store.log(f"[review={review_id}] liked by {email} (likes={review.likes_count})")

        self.hooks.after_like(email, liked_by)
        return review
