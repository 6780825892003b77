"""
Professional rating aggregation.

The ``rating``/``total_reviews`` aggregate on a professional is recomputed
from every stored review rather than incremented. The read of the review set
and the write of the aggregate are separate store calls, so two reviews
submitted for the same professional at the same time can interleave and the
later write can carry a count that misses the other review (last write wins).
The next review submitted for that professional repairs the aggregate.
"""

import logging
from dataclasses import dataclass

from database import DocumentStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RatingSummary:
    rating: float
    total_reviews: int


def recompute_rating(store: DocumentStore, professional_id: str) -> RatingSummary:
    reviews = store.query("reviews", [("professional_id", "==", professional_id)])
    total = len(reviews)
    if total == 0:
        return RatingSummary(rating=0.0, total_reviews=0)
    return RatingSummary(
        rating=sum(float(r["rating"]) for r in reviews) / total,
        total_reviews=total,
    )


def persist_rating(store: DocumentStore, professional_id: str, summary: RatingSummary) -> bool:
    return store.update(
        "professionals",
        professional_id,
        {"rating": summary.rating, "total_reviews": summary.total_reviews},
    )


def refresh_professional_rating(store: DocumentStore, professional_id: str) -> RatingSummary:
    summary = recompute_rating(store, professional_id)
    persist_rating(store, professional_id, summary)
    logger.info(
        f"Professional {professional_id} rating is now {summary.rating:.2f} "
        f"over {summary.total_reviews} reviews"
    )
    return summary
