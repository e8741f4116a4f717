"""Human-readable order numbers.

Order identities are UUIDs; what customers and vendors see is
``ORD-<year>-<n>``, where ``n`` counts orders placed in that year and is
zero-padded to at least three digits. One ``OrderSequence`` row exists per
year and is bumped inside the placing unit of work.
"""

from datetime import UTC, datetime

from protean.exceptions import ObjectNotFoundError
from protean.fields import Integer, String
from protean.utils.globals import current_domain

from marketplace.domain import marketplace


@marketplace.aggregate
class OrderSequence:
    year: String(identifier=True, max_length=4)
    last_number: Integer(default=0, min_value=0)

    def next_number(self) -> str:
        self.last_number += 1
        return f"ORD-{self.year}-{self.last_number:03d}"


def next_order_number(now: datetime | None = None) -> str:
    """Reserve the next number for the current year and stage the bump."""
    year = str((now or datetime.now(UTC)).year)
    repo = current_domain.repository_for(OrderSequence)
    try:
        sequence = repo.get(year)
    except ObjectNotFoundError:
        sequence = OrderSequence(year=year, last_number=0)

    number = sequence.next_number()
    repo.add(sequence)
    return number
