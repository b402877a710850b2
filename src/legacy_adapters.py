# Converts older payload shapes into the canonical document shapes.
# Adapters run before validation and never see X12 text.
import logging
from typing import Any, Dict, List

from x12_defs import AckStatus, TransactionType

logger = logging.getLogger(__name__)

LEGACY_ITEM_ACK_STATUSES = {
    "ItemAccepted": "Accepted",
    "ItemRejected": "Rejected",
}


def _first(values: Any) -> Dict[str, Any]:
    if isinstance(values, list) and values:
        return values[0] or {}
    return {}


def _segment_named_order(order: Dict[str, Any]) -> Dict[str, Any]:
    """An 850 in the segment-named shape (BEG / N1Loop / P01Loop) to a canonical order."""
    beg = _first(order.get("beginningSegmentForPurchaseOrder"))
    st = _first(order.get("transactionSetHeader"))

    parties: List[Dict[str, Any]] = []
    for loop in order.get("N1Loop") or []:
        n1 = _first(loop.get("partyIdentification"))
        if not n1:
            continue
        party = {
            "role": n1.get("entityIdentifierCode"),
            "name": n1.get("name"),
            "idQualifier": n1.get("identificationCodeQualifier"),
            "code": n1.get("identificationCode"),
        }
        n4 = _first(loop.get("geographicLocation"))
        if n4:
            party.update({
                "city": n4.get("cityName"),
                "state": n4.get("stateOrProvinceCode"),
                "zip": n4.get("postalCode"),
                "country": n4.get("countryCode"),
            })
        parties.append({k: v for k, v in party.items() if v is not None})

    items: List[Dict[str, Any]] = []
    for index, loop in enumerate(order.get("P01Loop") or []):
        po1 = _first(loop.get("baselineItemData"))
        if not po1:
            continue
        line_number = po1.get("assignedIdentification")
        item = {
            "lineNumber": int(line_number) if str(line_number or "").isdigit() else index + 1,
            "sku": po1.get("productServiceID"),
            "quantity": po1.get("quantityOrdered"),
            "uom": po1.get("unitOfMeasurementCode"),
            "price": po1.get("unitPrice"),
        }
        items.append({k: v for k, v in item.items() if v is not None})

    canonical = {
        "poNumber": beg.get("purchaseOrderNumber"),
        "poDate": beg.get("date"),
        "poType": beg.get("purchaseOrderTypeCode"),
        "releaseNumber": beg.get("releaseNumber"),
        "transactionSetControlNumber": st.get("transactionSetControlNumber"),
        "parties": parties,
        "items": items,
    }
    return {k: v for k, v in canonical.items() if v is not None}


def adapt_purchase_order(payload: Any) -> Any:
    """
    Accepts a canonical batch, a single canonical order, or the segment-named
    batch shape, and returns a canonical batch.
    """
    if not isinstance(payload, dict):
        return payload
    transaction_sets = payload.get("transactionSets", payload.get("transaction_sets"))
    if transaction_sets is None:
        return {"transactionSets": [payload]}
    if not isinstance(transaction_sets, list):
        return payload

    adapted = []
    for order in transaction_sets:
        if isinstance(order, dict) and "beginningSegmentForPurchaseOrder" in order:
            logger.debug("Converting segment-named 850 transaction set to canonical shape")
            adapted.append(_segment_named_order(order))
        else:
            adapted.append(order)
    return {"transactionSets": adapted}


def adapt_functional_acknowledgment(payload: Any) -> Any:
    """Boolean `accepted` becomes the tri-state `status`."""
    if not isinstance(payload, dict) or "accepted" not in payload:
        return payload
    adapted = {k: v for k, v in payload.items() if k != "accepted"}
    if "status" not in adapted:
        adapted["status"] = (AckStatus.ACCEPTED if payload["accepted"] else AckStatus.REJECTED).value
    return adapted


def adapt_po_acknowledgment(payload: Any) -> Any:
    """`ItemAccepted` / `ItemRejected` item statuses become `Accepted` / `Rejected`."""
    if not isinstance(payload, dict) or not isinstance(payload.get("items"), list):
        return payload
    items = []
    for item in payload["items"]:
        if isinstance(item, dict) and item.get("status") in LEGACY_ITEM_ACK_STATUSES:
            item = {**item, "status": LEGACY_ITEM_ACK_STATUSES[item["status"]]}
        items.append(item)
    return {**payload, "items": items}


def adapt_warehouse_order(payload: Any) -> Any:
    """The first 940 shape carried the street line as `shipTo.address`."""
    if not isinstance(payload, dict):
        return payload
    ship_to = payload.get("shipTo")
    if not isinstance(ship_to, dict) or "address" not in ship_to:
        return payload
    adapted_ship_to = {k: v for k, v in ship_to.items() if k != "address"}
    adapted_ship_to.setdefault("address1", ship_to["address"])
    return {**payload, "shipTo": adapted_ship_to}


LEGACY_ADAPTERS = {
    TransactionType.PURCHASE_ORDER: adapt_purchase_order,
    TransactionType.FUNCTIONAL_ACKNOWLEDGMENT: adapt_functional_acknowledgment,
    TransactionType.PURCHASE_ORDER_ACKNOWLEDGMENT: adapt_po_acknowledgment,
    TransactionType.WAREHOUSE_SHIPPING_ORDER: adapt_warehouse_order,
}


def adapt_payload(transaction_type: TransactionType, payload: Any) -> Any:
    adapter = LEGACY_ADAPTERS.get(transaction_type)
    if adapter is None:
        return payload
    return adapter(payload)
