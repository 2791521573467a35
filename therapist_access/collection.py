"""
Collection filtering and pagination for browse and management listings.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from therapist_access.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from therapist_access.models import Actor, Decision, TherapistRecord
from therapist_access.visibility import evaluate

Entry = Tuple[TherapistRecord, Decision]


@dataclass
class Page:
    """One page of an already-filtered listing."""
    items: List
    total_count: int
    page_number: int
    page_size: int
    has_next: bool = field(init=False)

    def __post_init__(self):
        self.has_next = (self.page_number + 1) * self.page_size < self.total_count

    def to_dict(self, serialize: Optional[Callable] = None) -> dict:
        items = [serialize(i) for i in self.items] if serialize else list(self.items)
        return {
            "items": items,
            "total_count": self.total_count,
            "page_number": self.page_number,
            "page_size": self.page_size,
            "has_next": self.has_next,
        }


def filter_visible(actor: Actor, records: Iterable[TherapistRecord]) -> List[Entry]:
    """Evaluate every record and keep the visible ones, in input order."""
    entries = []
    for record in records:
        decision = evaluate(actor, record)
        if decision.visible:
            entries.append((record, decision))
    return entries


def filter_visible_for(
    actor_for: Callable[[Optional[str]], Actor],
    records: Iterable[TherapistRecord],
) -> List[Entry]:
    """
    Like filter_visible, for listings that span several organisations.

    ``actor_for(organisation_id)`` is asked once per distinct organisation
    during this call; nothing is kept afterwards.
    """
    actors: Dict[Optional[str], Actor] = {}
    entries = []
    for record in records:
        org_id = record.organisation_id if isinstance(record, TherapistRecord) else None
        if org_id not in actors:
            actors[org_id] = actor_for(org_id)
        decision = evaluate(actors[org_id], record)
        if decision.visible:
            entries.append((record, decision))
    return entries


def clamp_page(page_number, page_size) -> Tuple[int, int]:
    """Normalise paging arguments; bad input falls back to defaults."""
    try:
        page_number = int(page_number)
    except (TypeError, ValueError):
        page_number = 0
    try:
        page_size = int(page_size)
    except (TypeError, ValueError):
        page_size = DEFAULT_PAGE_SIZE
    return max(0, page_number), min(max(1, page_size), MAX_PAGE_SIZE)


def paginate(entries: List, page_number=0, page_size=DEFAULT_PAGE_SIZE) -> Page:
    """Slice filtered *entries*. total_count is the post-filter length."""
    page_number, page_size = clamp_page(page_number, page_size)
    start = page_number * page_size
    return Page(
        items=entries[start:start + page_size],
        total_count=len(entries),
        page_number=page_number,
        page_size=page_size,
    )


def browse(
    actor: Actor,
    records: Iterable[TherapistRecord],
    page_number=0,
    page_size=DEFAULT_PAGE_SIZE,
) -> Page:
    """Public listing: visible records only, no capability flags."""
    entries = filter_visible(actor, records)
    page = paginate(entries, page_number, page_size)
    page.items = [record for record, _ in page.items]
    return page


def manage(
    actor: Actor,
    records: Iterable[TherapistRecord],
    page_number=0,
    page_size=DEFAULT_PAGE_SIZE,
) -> Page:
    """Management listing: visible records plus the actor's capabilities."""
    entries = filter_visible(actor, records)
    page = paginate(entries, page_number, page_size)
    page.items = [
        {"record": record, "capabilities": decision}
        for record, decision in page.items
    ]
    return page
