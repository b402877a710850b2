# Canonical business documents exchanged with the translator.
# One shape per transaction type; legacy shapes are converted in legacy_adapters.py.
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import List, Optional

from x12_defs import AckStatus, ChangeType, ItemAckStatus, LineChangeCode


class DocumentModel(BaseModel):
    """Snake_case in Python, camelCase on the wire; both accepted on input."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Shared loops ---

class Party(DocumentModel):
    """One N1 loop: name plus optional street and geographic address."""
    role: str = Field("ST", min_length=2, max_length=3, description="N101 entity identifier code")
    name: str = Field(..., min_length=1)
    code: Optional[str] = Field(None, description="Location id, e.g. store or DC number")
    id_qualifier: Optional[str] = None
    address1: Optional[str] = None
    address2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = Field(None, min_length=2, max_length=2)
    zip: Optional[str] = None
    country: Optional[str] = Field(None, min_length=2, max_length=2)

    @property
    def has_street_address(self) -> bool:
        return bool(self.address1)

    @property
    def has_geography(self) -> bool:
        return bool(self.city and self.state and self.zip)


class LineItem(DocumentModel):
    line_number: Optional[int] = Field(None, gt=0)
    sku: str = Field(..., min_length=1, description="Vendor part number (VN)")
    upc: Optional[str] = None
    buyer_part_number: Optional[str] = None
    description: Optional[str] = None
    quantity: float = Field(..., gt=0)
    uom: str = Field("EA", min_length=2, max_length=2)
    price: Optional[float] = Field(None, gt=0)


# --- 850 Purchase Order ---

class PurchaseOrder(DocumentModel):
    po_number: str = Field(..., min_length=1)
    po_date: Optional[str] = None
    purpose: str = "00"
    po_type: str = "NE"
    release_number: Optional[str] = None
    parties: List[Party] = Field(default_factory=list)
    items: List[LineItem] = Field(default_factory=list)
    transaction_set_control_number: Optional[str] = Field(None, pattern=r"^\d{4,9}$")


class PurchaseOrderBatch(DocumentModel):
    """Several 850 transaction sets sharing one functional group."""
    transaction_sets: List[PurchaseOrder] = Field(..., min_length=1)

    @field_validator("transaction_sets")
    @classmethod
    def _unique_control_numbers(cls, orders: List[PurchaseOrder]) -> List[PurchaseOrder]:
        numbers = [o.transaction_set_control_number for o in orders if o.transaction_set_control_number]
        if len(numbers) != len(set(numbers)):
            raise ValueError(f"duplicate transactionSetControlNumber in batch: {numbers}")
        return orders


# --- 860 Purchase Order Change ---

class ChangeLineItem(DocumentModel):
    line_number: Optional[int] = Field(None, gt=0)
    sku: str = Field(..., min_length=1)
    change_code: LineChangeCode
    quantity: Optional[float] = Field(None, ge=0)
    uom: str = Field("EA", min_length=2, max_length=2)
    price: Optional[float] = Field(None, ge=0)


class PurchaseOrderChange(DocumentModel):
    po_number: str = Field(..., min_length=1)
    change_order_number: Optional[str] = None
    change_date: Optional[str] = None
    change_type: ChangeType = ChangeType.CHANGE
    po_type: str = "NE"
    parties: List[Party] = Field(default_factory=list)
    items: List[ChangeLineItem] = Field(default_factory=list)


# --- 940 Warehouse Shipping Order ---

class WarehouseShippingOrder(DocumentModel):
    po_number: str = Field(..., min_length=1)
    ship_to: Party
    parties: List[Party] = Field(default_factory=list, description="Parties other than ship-to")
    items: List[LineItem] = Field(default_factory=list)


# --- 997 Functional Acknowledgment ---

class TransactionSetResponse(DocumentModel):
    transaction_set_code: str = Field(..., min_length=3, max_length=3)
    control_number: str = Field(..., min_length=1)
    status: AckStatus = AckStatus.ACCEPTED


class FunctionalAcknowledgment(DocumentModel):
    received_control_number: str = Field(..., min_length=1, description="GS06 of the acknowledged group")
    functional_identifier: str = Field("OW", min_length=2, max_length=2, description="GS01 of the acknowledged group")
    status: AckStatus = AckStatus.ACCEPTED
    transaction_responses: List[TransactionSetResponse] = Field(default_factory=list)
    transaction_sets_included: Optional[int] = Field(None, ge=0)
    transaction_sets_received: Optional[int] = Field(None, ge=0)
    transaction_sets_accepted: Optional[int] = Field(None, ge=0)

    @property
    def accepted(self) -> bool:
        return self.status != AckStatus.REJECTED


# --- 855 Purchase Order Acknowledgment ---

class AckLineItem(DocumentModel):
    line_number: Optional[int] = Field(None, gt=0)
    sku: str = Field(..., min_length=1)
    quantity: float = Field(..., ge=0)
    uom: str = Field("EA", min_length=2, max_length=2)
    status: ItemAckStatus = ItemAckStatus.ACCEPTED


class PurchaseOrderAcknowledgment(DocumentModel):
    po_number: str = Field(..., min_length=1)
    ack_status: AckStatus
    ack_date: Optional[str] = None
    items: List[AckLineItem] = Field(default_factory=list)


# --- 856 Advance Ship Notice ---

class AdvanceShipNotice(DocumentModel):
    shipment_id: str = Field(..., min_length=1)
    po_number: str = Field(..., min_length=1)
    ship_date: str
    carrier: str
    tracking_number: str
    ship_to: Party
    items: List[LineItem] = Field(default_factory=list)


# --- 810 Invoice ---

class InvoiceLineItem(DocumentModel):
    sku: str = Field(..., min_length=1)
    quantity: float = Field(..., gt=0)
    unit_price: float = Field(..., ge=0)
    uom: str = Field("EA", min_length=2, max_length=2)


class Invoice(DocumentModel):
    invoice_number: str = Field(..., min_length=1)
    po_number: str = Field(..., min_length=1)
    invoice_date: str
    terms: Optional[str] = None
    parties: List[Party] = Field(default_factory=list)
    items: List[InvoiceLineItem] = Field(default_factory=list)
    total_amount: float


# --- 846 Inventory Inquiry/Advice ---

class InventoryItem(DocumentModel):
    sku: str = Field(..., min_length=1)
    quantity: float = Field(..., ge=0)
    uom: str = Field("EA", min_length=2, max_length=2)
    quantity_qualifier: str = Field("33", min_length=2, max_length=2, description="QTY01, 33 = quantity available")
    location: Optional[str] = None


class InventoryAdvice(DocumentModel):
    advice_number: str = Field(..., min_length=1)
    date: str
    items: List[InventoryItem] = Field(default_factory=list)


# --- 820 Remittance Advice (inbound) ---

class RemittedInvoice(DocumentModel):
    invoice_number: str
    amount_paid: float = 0.0


class Remittance(DocumentModel):
    payment_number: str = ""
    payment_date: Optional[str] = None
    total_amount: float = 0.0
    payer: str = ""
    invoices: List[RemittedInvoice] = Field(default_factory=list)


# --- 214 Carrier Shipment Status (inbound) ---

class StatusDetail(DocumentModel):
    code: str
    city: str = ""
    state: str = ""
    description: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None


class CarrierStatus(DocumentModel):
    shipment_id: str = ""
    carrier_code: str = ""
    status_date: str = ""
    status_time: Optional[str] = None
    status_details: List[StatusDetail] = Field(default_factory=list)


# --- 180 Return Merchandise Authorization (inbound) ---

class ReturnCustomer(DocumentModel):
    name: Optional[str] = None
    id: Optional[str] = None


class ReturnItem(DocumentModel):
    sku: str
    quantity: float = 0
    reason_code: Optional[str] = None


class ReturnAuthorization(DocumentModel):
    rma_number: str = ""
    rma_date: Optional[str] = None
    order_number: Optional[str] = None
    customer: ReturnCustomer = Field(default_factory=ReturnCustomer)
    items: List[ReturnItem] = Field(default_factory=list)
