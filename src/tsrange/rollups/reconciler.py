"""Map pipelined replies back onto the buckets of a query plan."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from ..core.errors import MalformedReplyError
from ..observability import get_logger
from .samples import NAN, Sample, Samples

if TYPE_CHECKING:
    from .planner import QueryPlan

__all__ = ["reconcile"]

log = get_logger("planner")


def reconcile(query_plan: QueryPlan, replies: Sequence[Any]) -> Samples:
    """Flatten replies into one sample sequence in bucket order.

    Parameters
    ----------
    query_plan
        Plan whose sub-queries produced ``replies``, position for position
    replies
        Raw pipeline replies: lists of ``[timestamp, value]`` rows, or
        exception instances for calls the server rejected

    Returns
    -------
    Samples
        Samples and in-band error markers. For calendar plans with
        ``include_empty``, a bucket without rows yields one NaN sample at the
        bucket start.
    """
    by_bucket: dict[int, list[Any]] = defaultdict(list)
    for sub, reply in zip(query_plan.subqueries, replies):
        items = by_bucket[sub.bucket_index]
        if isinstance(reply, BaseException):
            log.warning(f"{sub.command} {sub.request.key} failed: {reply}")
            items.append(reply)
            continue
        for row in reply or ():
            try:
                items.append(Sample.from_reply(row))
            except MalformedReplyError as exc:
                log.warning(str(exc))
                items.append(exc)

    request = query_plan.request
    fill_empty = query_plan.is_calendar and request.include_empty

    result = Samples(metadata={"key": request.key})
    for index in range(query_plan.bucket_count):
        items = by_bucket.get(index)
        if not items and fill_empty:
            result.append(Sample(query_plan.buckets[index].start, NAN))
            continue
        result.extend(items or ())

    if query_plan.reverse_result:
        result.reverse()
    return result
