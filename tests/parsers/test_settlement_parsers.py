import pytest

from inbound_parsers import CarrierStatusParser, RemittanceParser, ReturnAuthorizationParser

pytestmark = pytest.mark.unit


# --- 820 ---

def test_remittance_header(remittance_x12):
    remittance = RemittanceParser().parse(remittance_x12)
    assert remittance.payment_number == "PAY-2023-88"
    assert remittance.payment_date == "2023-11-05"
    assert remittance.total_amount == 150.0
    assert remittance.payer == "Big Retail Inc"


def test_remittance_only_collects_invoice_lines(remittance_x12):
    invoices = RemittanceParser().parse(remittance_x12).invoices
    assert [(inv.invoice_number, inv.amount_paid) for inv in invoices] == [("INV-1001", 100.0), ("INV-1002", 50.0)]


def test_remittance_without_effective_date():
    remittance = RemittanceParser().parse("BPR*C*75.25*C*ACH~TRN*1*PAY-1~")
    assert remittance.payment_date is None
    assert remittance.total_amount == 75.25
    assert remittance.payment_number == "PAY-1"
    assert remittance.invoices == []


def test_remittance_ignores_non_payment_trace():
    assert RemittanceParser().parse("TRN*2*REF-9~").payment_number == ""


# --- 214 ---

def test_carrier_status_header(carrier_status_x12):
    status = CarrierStatusParser().parse(carrier_status_x12)
    assert status.shipment_id == "SHIP-2023-01"
    assert status.carrier_code == "ABCD"
    assert status.status_date == "20231102"
    assert status.status_time == "0830"


def test_carrier_status_details(carrier_status_x12):
    details = CarrierStatusParser().parse(carrier_status_x12).status_details
    # the trailing LX without AT7 is not a detail
    assert len(details) == 2
    assert (details[0].code, details[0].city, details[0].state) == ("X6", "Chicago", "IL")
    assert details[0].description == "NS"
    assert (details[0].date, details[0].time) == ("20231102", "0830")
    assert (details[1].code, details[1].city) == ("D1", "Springfield")


def test_carrier_status_trailing_detail_without_location():
    status = CarrierStatusParser().parse("B10*PRO-1~LX*1~AT7*AF*NS***20231101*0900~")
    assert status.shipment_id == "PRO-1"
    assert len(status.status_details) == 1
    assert status.status_details[0].code == "AF"
    assert status.status_details[0].city == ""


def test_carrier_status_empty_input():
    status = CarrierStatusParser().parse("")
    assert status.shipment_id == ""
    assert status.status_details == []


# --- 180 ---

def test_return_authorization_header(return_authorization_x12):
    rma = ReturnAuthorizationParser().parse(return_authorization_x12)
    assert rma.rma_number == "RMA-778"
    assert rma.rma_date == "2023-11-10"
    assert rma.order_number == "PO-12345"
    assert (rma.customer.name, rma.customer.id) == ("Big Retail Inc", "BR01")


def test_return_authorization_items(return_authorization_x12):
    items = ReturnAuthorizationParser().parse(return_authorization_x12).items
    assert len(items) == 2
    assert (items[0].sku, items[0].quantity, items[0].reason_code) == ("SKU-123", 2.0, "DAMAGED")
    # LIN*2*UP*012345678905 has no VN qualifier: the positional value is used
    assert (items[1].sku, items[1].quantity, items[1].reason_code) == ("012345678905", 1.0, None)


def test_return_authorization_without_customer():
    rma = ReturnAuthorizationParser().parse("BGN*00*RMA-1*20231110~N1*ST*Somewhere~")
    assert rma.customer.name is None
    assert rma.items == []
