"""Application tests for the partner response audit trail."""

from datetime import UTC, datetime

from dispatch.order.events import DeliveryRequestAccepted
from dispatch.partner import responses
from dispatch.partner.responses import PartnerResponseRecorder, responses_for


def _accepted_event(order_id="ord-1"):
    return DeliveryRequestAccepted(
        order_id=order_id,
        request_id="req-1",
        partner_id="part-1",
        request_status="accepted",
        delivery_status="approved",
        revision=4,
        accepted_at=datetime.now(UTC),
    )


class _BrokenRepository:
    def add(self, _record):
        raise RuntimeError("audit store unavailable")


class _BrokenDomain:
    def repository_for(self, _cls):
        return _BrokenRepository()


class TestPartnerResponseRecorder:
    def test_records_accept(self):
        PartnerResponseRecorder().on_request_accepted(_accepted_event())

        records = responses_for("ord-1")
        assert len(records) == 1
        assert records[0].action == "accepted"

    def test_write_failure_is_swallowed(self, monkeypatch):
        monkeypatch.setattr(responses, "current_domain", _BrokenDomain())

        PartnerResponseRecorder().on_request_accepted(_accepted_event())

    def test_responses_are_ordered(self, world, vendor_id):
        first = world.partner((12.98, 77.602), full_name="First")
        second = world.partner((12.99, 77.61), full_name="Second")
        order_id = world.place(vendor_id)
        world.approve(order_id, vendor_id)

        from dispatch.order.partner_response import DeclineDeliveryRequest

        request = world.order(order_id).current_request
        world.process(DeclineDeliveryRequest(order_id=order_id, request_id=str(request.id), partner_id=first))
        world.accept(order_id, second)

        assert [(str(r.partner_id), r.action) for r in responses_for(order_id)] == [
            (first, "rejected"),
            (second, "accepted"),
        ]
