import pytest

from control_numbers import FixedControlNumbers
from envelope_settings import EnvelopeSettings
from inbound_parsers import PurchaseOrderParser
from outbound_generators import PurchaseOrderGenerator
from transaction_models import (
    AdvanceShipNotice, ChangeLineItem, FunctionalAcknowledgment, LineItem, Party, PurchaseOrder,
    PurchaseOrderChange, TransactionSetResponse,
)
from translation_service import TranslationService
from x12_defs import AckStatus

pytestmark = pytest.mark.integration


@pytest.fixture
def service(fixed_control_numbers) -> TranslationService:
    return TranslationService(control_numbers=FixedControlNumbers(fixed_control_numbers))


def _round_trip(service: TranslationService, tx_type: str, document):
    x12 = service.process_transaction(tx_type, "ACME", "RETAILER", document)
    return service.process_transaction(tx_type, "ACME", "RETAILER", x12)


def test_purchase_order_round_trip(service, sample_purchase_order):
    parsed = _round_trip(service, "850", sample_purchase_order)

    assert parsed.po_number == sample_purchase_order.po_number
    assert parsed.po_date == sample_purchase_order.po_date
    assert [p.model_dump() for p in parsed.parties] == [p.model_dump() for p in sample_purchase_order.parties]
    assert [i.model_dump() for i in parsed.items] == [i.model_dump() for i in sample_purchase_order.items]


def test_purchase_order_round_trip_with_identifiers(service):
    order = PurchaseOrder(
        po_number="PO-7",
        po_date="2024-02-29",
        release_number="R1",
        items=[LineItem(line_number=1, sku="SKU-1", upc="0001", buyer_part_number="B1",
                        description="Thing", quantity=2.5, uom="CS", price=3.25)],
    )
    parsed = _round_trip(service, "850", order)
    assert parsed.release_number == "R1"
    assert parsed.items[0].model_dump() == order.items[0].model_dump()


def test_purchase_order_change_round_trip(service):
    change = PurchaseOrderChange(
        po_number="PO-12345",
        change_order_number="CO-7",
        change_date="2023-11-01",
        parties=[Party(role="ST", name="Main Warehouse", id_qualifier="92", code="DC01")],
        items=[ChangeLineItem(line_number=1, sku="SKU-123", change_code="QD", quantity=8, price=15.5)],
    )
    assert _round_trip(service, "860", change).model_dump() == change.model_dump()


def test_functional_ack_round_trip(service):
    ack = FunctionalAcknowledgment(
        received_control_number="101",
        functional_identifier="PO",
        status=AckStatus.ACCEPTED_WITH_CHANGES,
        transaction_responses=[
            TransactionSetResponse(transaction_set_code="850", control_number="0001"),
            TransactionSetResponse(transaction_set_code="850", control_number="0002", status=AckStatus.REJECTED),
        ],
    )
    parsed = _round_trip(service, "997", ack)

    assert parsed.status == ack.status
    assert parsed.received_control_number == "101"
    assert parsed.functional_identifier == "PO"
    assert [r.model_dump() for r in parsed.transaction_responses] == [r.model_dump() for r in ack.transaction_responses]
    assert (parsed.transaction_sets_included, parsed.transaction_sets_received, parsed.transaction_sets_accepted) == (2, 2, 1)


def test_accepted_functional_ack_round_trip(service):
    parsed = _round_trip(service, "997", FunctionalAcknowledgment(received_control_number="9"))
    assert parsed.accepted is True


def test_ship_notice_round_trip(service):
    asn = AdvanceShipNotice(
        shipment_id="SHIP-001",
        po_number="PO-12345",
        ship_date="2023-10-28T14:30",
        carrier="UPSN",
        tracking_number="1Z999",
        ship_to=Party(name="Main Warehouse", address1="100 Industrial Way", city="Springfield", state="IL", zip="62701"),
        items=[LineItem(line_number=1, sku="SKU-123", quantity=10), LineItem(line_number=2, sku="SKU-456", quantity=5, uom="CS")],
    )
    parsed = _round_trip(service, "856", asn)

    assert (parsed.shipment_id, parsed.po_number, parsed.ship_date) == ("SHIP-001", "PO-12345", "2023-10-28T14:30")
    assert (parsed.carrier, parsed.tracking_number) == ("UPSN", "1Z999")
    assert parsed.ship_to.model_dump() == asn.ship_to.model_dump()
    assert [(i.line_number, i.sku, i.quantity, i.uom) for i in parsed.items] == [(1, "SKU-123", 10.0, "EA"), (2, "SKU-456", 5.0, "CS")]


def test_purchase_order_round_trip_with_newline_terminator(fixed_control_numbers, sample_purchase_order):
    settings = EnvelopeSettings(segment_terminator="\n", line_break="")
    x12 = PurchaseOrderGenerator(fixed_control_numbers, settings).generate(sample_purchase_order, "ACME", "RETAILER")
    assert "~" not in x12

    parsed = PurchaseOrderParser(settings).parse(x12)
    assert parsed.po_number == sample_purchase_order.po_number
    assert [i.model_dump() for i in parsed.items] == [i.model_dump() for i in sample_purchase_order.items]
