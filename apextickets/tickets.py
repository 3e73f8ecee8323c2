import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional


@dataclass(frozen=True)
class Ticket:
    id: str
    event_id: str
    category_id: str
    sub_category: str
    price: float
    stock: int
    status: Optional[str] = None


@dataclass
class TicketGroup:
    event_id: str
    category_id: str
    sub_category: str
    min_price: float
    max_price: float
    total_stock: int
    tickets: List[Ticket] = field(default_factory=list)

    @property
    def key(self) -> str:
        return f"{self.event_id}__{self.category_id}__{self.sub_category}"

    def as_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "event_id": self.event_id,
            "category_id": self.category_id,
            "sub_category": self.sub_category,
            "ticket_type": format_ticket_type(self.sub_category),
            "min_price": self.min_price,
            "max_price": self.max_price,
            "total_stock": self.total_stock,
            "tickets": [t.__dict__ for t in self.tickets],
        }


def normalize_ticket(raw: Dict[str, Any]) -> Optional[Ticket]:
    ticket_id = raw.get("id") or raw.get("ticket_id")
    if ticket_id is None:
        return None
    try:
        price = float(raw.get("price", raw.get("face_value", 0)) or 0)
        stock = int(raw.get("stock", raw.get("quantity", 0)) or 0)
    except (TypeError, ValueError):
        return None
    return Ticket(
        id=str(ticket_id),
        event_id=str(raw.get("event_id") or ""),
        category_id=str(raw.get("category_id") or ""),
        sub_category=str(raw.get("sub_category") or ""),
        price=price,
        stock=stock,
        status=raw.get("ticket_status") or raw.get("status"),
    )


def is_available(t: Ticket) -> bool:
    return (t.status or "").lower() == "available" and t.stock > 0


def group_tickets(tickets: Iterable[Ticket]) -> List[TicketGroup]:
    groups: Dict[str, TicketGroup] = {}
    for t in tickets:
        key = f"{t.event_id}__{t.category_id}__{t.sub_category}"
        g = groups.get(key)
        if g is None:
            groups[key] = TicketGroup(
                event_id=t.event_id,
                category_id=t.category_id,
                sub_category=t.sub_category,
                min_price=t.price,
                max_price=t.price,
                total_stock=t.stock,
                tickets=[t],
            )
            continue
        g.tickets.append(t)
        g.min_price = min(g.min_price, t.price)
        g.max_price = max(g.max_price, t.price)
        g.total_stock += t.stock
    return sorted(groups.values(), key=lambda g: g.min_price)


def format_ticket_type(sub_category: str) -> str:
    raw = (sub_category or "").lower()
    fri, sat, sun = "fri" in raw, "sat" in raw, "sun" in raw
    if "weekend" in raw or (fri and sat and sun):
        return "Friday—Sunday"
    if sat and sun and not fri:
        return "Saturday—Sunday"
    if fri and not sat and not sun:
        return "Friday"
    if sat and not fri and not sun:
        return "Saturday"
    if sun and not fri and not sat:
        return "Sunday"
    return re.sub(
        r"\b\w", lambda m: m.group(0).upper(), sub_category.replace("_", " ")
    )
