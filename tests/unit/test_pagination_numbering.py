from datetime import datetime

from bizhub.db import models
from bizhub.utils import numbering
from bizhub.utils.pagination import MAX_LIMIT, clamp, page_payload


def test_clamp_bounds():
    assert clamp(0, 0) == (1, 10)
    assert clamp(-3, 5) == (1, 5)
    assert clamp(2, 1000) == (2, MAX_LIMIT)


def test_page_payload_shape():
    payload = page_payload(["a", "b"], 21, 2, 10)
    assert payload == {"items": ["a", "b"], "total_items": 21, "total_pages": 3, "page": 2, "limit": 10}
    assert page_payload([], 0, 1, 10)["total_pages"] == 0


def _ticket(db, number, department):
    ticket = models.Ticket(
        number=number,
        subject="s",
        description="d",
        priority="LOW",
        status="OPEN",
        requester_name="r",
        requester_email="r@example.com",
        department_id=department.id,
        opened_at=datetime(2025, 1, 1),
    )
    db.add(ticket)
    db.commit()


def test_ticket_number_uses_highest_suffix_for_year(db_session):
    department = models.Department(name="Support")
    db_session.add(department)
    db_session.commit()
    now = datetime(2025, 3, 1)
    assert numbering.ticket_number(db_session, models.Ticket.number, now) == "2025001"
    _ticket(db_session, "2025001", department)
    _ticket(db_session, "2025007", department)
    _ticket(db_session, "2024999", department)
    assert numbering.ticket_number(db_session, models.Ticket.number, now) == "2025008"
    assert numbering.ticket_number(db_session, models.Ticket.number, datetime(2026, 1, 1)) == "2026001"


def test_monthly_and_quotation_numbers(db_session):
    now = datetime(2025, 2, 10)
    assert numbering.monthly_number(db_session, models.ServiceOrder.number, "OS", now) == "OS2025020001"
    assert numbering.monthly_number(db_session, models.Quote.number, "ORC", now) == "ORC2025020001"
    assert numbering.quotation_number(datetime(2025, 1, 1)).startswith("COT-")
