from enum import Enum
from typing import Dict


class TransactionType(str, Enum):
    """Transaction set identifier codes handled by the translator."""
    PURCHASE_ORDER = "850"
    PURCHASE_ORDER_CHANGE = "860"
    WAREHOUSE_SHIPPING_ORDER = "940"
    FUNCTIONAL_ACKNOWLEDGMENT = "997"
    PURCHASE_ORDER_ACKNOWLEDGMENT = "855"
    ADVANCE_SHIP_NOTICE = "856"
    INVOICE = "810"
    INVENTORY_ADVICE = "846"
    REMITTANCE_ADVICE = "820"
    CARRIER_SHIPMENT_STATUS = "214"
    RETURN_AUTHORIZATION = "180"


class Direction(str, Enum):
    INBOUND = "IN"
    OUTBOUND = "OUT"


class AckStatus(str, Enum):
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"
    ACCEPTED_WITH_CHANGES = "AcceptedWithChanges"


class ItemAckStatus(str, Enum):
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"
    ACCEPTED_WITH_CHANGES = "AcceptedWithChanges"
    BACKORDERED = "Backordered"


class ChangeType(str, Enum):
    CANCEL = "01"
    CHANGE = "04"


class LineChangeCode(str, Enum):
    ADD_ITEM = "AI"
    DELETE_ITEM = "DI"
    CHANGE = "CA"
    QUANTITY_DECREASE = "QD"


# GS01 functional identifier code per transaction set.
FUNCTIONAL_IDENTIFIERS: Dict[TransactionType, str] = {
    TransactionType.PURCHASE_ORDER: "PO",
    TransactionType.PURCHASE_ORDER_CHANGE: "PC",
    TransactionType.WAREHOUSE_SHIPPING_ORDER: "OW",
    TransactionType.FUNCTIONAL_ACKNOWLEDGMENT: "FA",
    TransactionType.PURCHASE_ORDER_ACKNOWLEDGMENT: "PR",
    TransactionType.ADVANCE_SHIP_NOTICE: "SH",
    TransactionType.INVOICE: "IN",
    TransactionType.INVENTORY_ADVICE: "IB",
    TransactionType.REMITTANCE_ADVICE: "RA",
    TransactionType.CARRIER_SHIPMENT_STATUS: "QM",
    TransactionType.RETURN_AUTHORIZATION: "AN",
}

# BAK02 acknowledgment type
BAK_STATUS_CODES: Dict[AckStatus, str] = {
    AckStatus.ACCEPTED: "AT",
    AckStatus.REJECTED: "RD",
    AckStatus.ACCEPTED_WITH_CHANGES: "AC",
}

# ACK01 line item status
ACK_ITEM_STATUS_CODES: Dict[ItemAckStatus, str] = {
    ItemAckStatus.ACCEPTED: "IA",
    ItemAckStatus.REJECTED: "IR",
    ItemAckStatus.ACCEPTED_WITH_CHANGES: "IC",
    ItemAckStatus.BACKORDERED: "IB",
}

# AK9 / AK5 acknowledgment codes. "E" is "accepted, but errors were noted".
FUNCTIONAL_ACK_CODES: Dict[AckStatus, str] = {
    AckStatus.ACCEPTED: "A",
    AckStatus.REJECTED: "R",
    AckStatus.ACCEPTED_WITH_CHANGES: "E",
}


def ack_status_from_code(code: str) -> AckStatus:
    """Maps an AK5/AK9 code back onto the tri-state acknowledgment status."""
    code = (code or "").strip()
    if code == "A":
        return AckStatus.ACCEPTED
    if code in ("E", "P"):
        return AckStatus.ACCEPTED_WITH_CHANGES
    return AckStatus.REJECTED
