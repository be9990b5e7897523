"""
Token usage accounting for codexstat.

Session logs report usage as periodic snapshots: a cumulative total for the
session and the usage of the last turn. The cumulative counter is not
monotonic (context compaction resets it), so deltas are computed per field
against the previous cumulative snapshot and clamped at zero, with the
last-turn snapshot added back in when a reset is detected.
"""

from typing import Optional

from codexstat.models.entities import TokenUsage


def _present(usage: Optional[TokenUsage]) -> bool:
    return usage is not None and not usage.is_empty()


class UsageAccumulator:
    """Running token totals for one file."""

    def __init__(self):
        self.totals = TokenUsage()
        self.last_cumulative: Optional[TokenUsage] = None

    def observe(
        self,
        total: Optional[TokenUsage],
        last: Optional[TokenUsage]
    ) -> Optional[TokenUsage]:
        """
        Fold one usage report into the running totals.

        Returns the delta that was added, or None when the report carried
        no usable snapshot.
        """
        if _present(total):
            previous = self.last_cumulative
            if previous is not None:
                delta = total.delta_from(previous)
                # Counter reset: usage since the reset is only visible in `last`
                if total.total_tokens < previous.total_tokens and _present(last):
                    delta.add(last)
            elif _present(last):
                delta = last.copy()
            else:
                delta = total.copy()

            self.totals.add(delta)
            self.last_cumulative = total.copy()
            return delta

        if _present(last):
            delta = last.copy()
            self.totals.add(delta)
            return delta

        return None
