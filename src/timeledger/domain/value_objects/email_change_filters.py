from dataclasses import dataclass, field
from typing import List, Optional

from timeledger.domain.entities.email_change_request import EmailChangeRequest, RequestStatus


@dataclass(frozen=True)
class EmailChangeListFilters:
    """Listing criteria for email-change requests.

    Completed requests are excluded unless `include_completed` is set or the
    status filter asks for them explicitly.
    """

    user_id: Optional[str] = None
    status: Optional[RequestStatus] = None
    limit: int = 20
    cursor: Optional[str] = None
    include_completed: bool = False
    sort_by: str = "requested_at"
    sort_order: str = "desc"


@dataclass
class EmailChangeRequestPage:
    items: List[EmailChangeRequest] = field(default_factory=list)
    next_cursor: Optional[str] = None

    @property
    def has_more(self) -> bool:
        return self.next_cursor is not None
