"""
Commend / Recommend / Challenge selection.

A criterion lives in at most one bucket. ``toggle`` is pure: it returns new
buckets and never mutates its input.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from shared_utils.constants import FeedbackBucket


class TagBuckets(BaseModel):
    """Immutable snapshot of the three buckets."""

    model_config = ConfigDict(frozen=True)

    commend: Tuple[str, ...] = ()
    recommend: Tuple[str, ...] = ()
    challenge: Tuple[str, ...] = ()

    def get(self, bucket: FeedbackBucket) -> Tuple[str, ...]:
        return getattr(self, bucket.value)

    def total(self) -> int:
        return len(self.commend) + len(self.recommend) + len(self.challenge)

    def is_empty(self) -> bool:
        return self.total() == 0

    def as_payload(self) -> Dict[str, List[str]]:
        """Field names used by the evaluation API."""
        return {
            "commend_tags": list(self.commend),
            "recommend_tags": list(self.recommend),
            "challenge_tags": list(self.challenge),
        }


def bucket_of(buckets: TagBuckets, item: str) -> Optional[FeedbackBucket]:
    """Bucket currently holding ``item``, if any."""
    for bucket in FeedbackBucket:
        if item in buckets.get(bucket):
            return bucket
    return None


def toggle(buckets: TagBuckets, item: str, target: FeedbackBucket) -> TagBuckets:
    """Move ``item`` into ``target``, or take it out if it is already there.

    Args:
        buckets: Current selection.
        item: Criterion text.
        target: Bucket the user clicked.

    Returns:
        New buckets; the three tuples stay pairwise disjoint.
    """
    already_there = item in buckets.get(target)

    updated = {
        bucket.value: tuple(i for i in buckets.get(bucket) if i != item)
        for bucket in FeedbackBucket
    }
    if not already_there:
        updated[target.value] = updated[target.value] + (item,)

    return TagBuckets(**updated)
