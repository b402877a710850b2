import logging
from typing import Any, Callable, Dict, List, Optional

from envelope_settings import DEFAULT_SETTINGS, EnvelopeSettings
from transaction_models import (
    AdvanceShipNotice, CarrierStatus, ChangeLineItem, FunctionalAcknowledgment, LineItem, Party,
    PurchaseOrder, PurchaseOrderChange, RemittedInvoice, Remittance, ReturnAuthorization,
    ReturnCustomer, ReturnItem, StatusDetail, TransactionSetResponse,
)
from x12_defs import AckStatus, ChangeType, LineChangeCode, TransactionType, ack_status_from_code
from x12_segment import element, iso_date, qualified_value, to_float, to_int, tokenize

logger = logging.getLogger(__name__)

VENDOR_PART_QUALIFIER = "VN"


class HierarchicalLevel:
    """One HL segment: its parent id and level code (S, O, I, ...)."""

    def __init__(self, hl_id: str, parent_id: str, level_code: str):
        self.hl_id = hl_id
        self.parent_id = parent_id
        self.level_code = level_code


class ScanState:
    """
    Accumulator for a single parse call. Holds header fields, the party loop
    currently receiving N3/N4 segments, the pending multi-segment item and the
    HL hierarchy seen so far. Discarded when the parse returns.
    """

    def __init__(self):
        self.fields: Dict[str, Any] = {}
        self.parties: List[Dict[str, Any]] = []
        self.current_party: Optional[Dict[str, Any]] = None
        self.items: List[Dict[str, Any]] = []
        self.pending: Optional[Dict[str, Any]] = None
        self.hierarchy: Dict[str, HierarchicalLevel] = {}
        self.current_level: Optional[HierarchicalLevel] = None

    def open_party(self, elements: List[str]) -> Dict[str, Any]:
        party = {
            "role": element(elements, 1),
            "name": element(elements, 2),
            "id_qualifier": element(elements, 3) or None,
            "code": element(elements, 4) or None,
        }
        self.parties.append(party)
        self.current_party = party
        return party

    def add_street_address(self, elements: List[str]):
        if self.current_party is None:
            return
        self.current_party["address1"] = element(elements, 1) or None
        self.current_party["address2"] = element(elements, 2) or None

    def add_geography(self, elements: List[str]):
        if self.current_party is None:
            return
        self.current_party["city"] = element(elements, 1) or None
        self.current_party["state"] = element(elements, 2) or None
        self.current_party["zip"] = element(elements, 3) or None
        self.current_party["country"] = element(elements, 4) or None

    def open_item(self, item: Dict[str, Any]):
        self.flush_item()
        self.pending = item

    def flush_item(self):
        if self.pending is not None:
            self.items.append(self.pending)
            self.pending = None

    def party_models(self) -> List[Party]:
        return [Party.model_construct(**party) for party in self.parties]


SegmentHandler = Callable[[ScanState, List[str]], None]


class TransactionParser:
    """
    Base class for inbound parsers. Scans the segments once, in order, and hands
    each one to the handler registered for its tag. Unknown tags are ignored and
    short segments yield empty values; parse() never raises on malformed input.
    """
    transaction_type: TransactionType
    segment_handlers: Dict[str, str] = {}

    def __init__(self, settings: EnvelopeSettings = DEFAULT_SETTINGS):
        self.settings = settings
        self._handlers: Dict[str, SegmentHandler] = {
            tag: getattr(self, method_name) for tag, method_name in self.segment_handlers.items()
        }

    def parse(self, x12: str):
        state = ScanState()
        ignored = set()
        for elements in tokenize(x12, self.settings):
            tag = elements[0]
            handler = self._handlers.get(tag)
            if handler is None:
                ignored.add(tag)
                continue
            handler(state, elements)
        self._finish(state)
        if ignored:
            logger.debug(f"{self.transaction_type.value} parser ignored segments: {sorted(ignored)}")
        document = self._build(state)
        logger.info(f"Parsed {self.transaction_type.value} document with {len(state.items)} items")
        return document

    def _finish(self, state: ScanState):
        """End of stream: commit the item still pending."""
        state.flush_item()

    def _build(self, state: ScanState):
        raise NotImplementedError

    # --- handlers shared by several transaction sets ---

    def _on_n1(self, state: ScanState, elements: List[str]):
        state.open_party(elements)

    def _on_n3(self, state: ScanState, elements: List[str]):
        state.add_street_address(elements)

    def _on_n4(self, state: ScanState, elements: List[str]):
        state.add_geography(elements)


class PurchaseOrderParser(TransactionParser):
    """850"""
    transaction_type = TransactionType.PURCHASE_ORDER
    segment_handlers = {
        'ST': '_on_st', 'BEG': '_on_beg', 'N1': '_on_n1', 'N3': '_on_n3', 'N4': '_on_n4',
        'PO1': '_on_po1', 'PID': '_on_pid',
    }

    def _on_st(self, state: ScanState, elements: List[str]):
        state.fields["transaction_set_control_number"] = element(elements, 2) or None

    def _on_beg(self, state: ScanState, elements: List[str]):
        # BEG*00*SA*PO-12345**20231027
        state.fields["purpose"] = element(elements, 1)
        state.fields["po_type"] = element(elements, 2)
        state.fields["po_number"] = element(elements, 3)
        state.fields["release_number"] = element(elements, 4) or None
        state.fields["po_date"] = iso_date(element(elements, 5)) or None

    def _on_po1(self, state: ScanState, elements: List[str]):
        # PO1*1*10*EA*15.50**VN*SKU-123*UP*012345678905
        state.open_item({
            "line_number": to_int(element(elements, 1)),
            "quantity": to_float(element(elements, 2), 0.0),
            "uom": element(elements, 3) or self.settings.default_uom,
            "price": to_float(element(elements, 4)),
            "sku": qualified_value(elements, VENDOR_PART_QUALIFIER, 7),
            "upc": qualified_value(elements, 'UP', -1) or None,
            "buyer_part_number": qualified_value(elements, 'BP', -1) or None,
        })

    def _on_pid(self, state: ScanState, elements: List[str]):
        if state.pending is not None:
            state.pending["description"] = element(elements, 5) or None

    def _build(self, state: ScanState) -> PurchaseOrder:
        return PurchaseOrder.model_construct(
            po_number=state.fields.get("po_number", ""),
            po_date=state.fields.get("po_date"),
            purpose=state.fields.get("purpose") or "00",
            po_type=state.fields.get("po_type") or "NE",
            release_number=state.fields.get("release_number"),
            transaction_set_control_number=state.fields.get("transaction_set_control_number"),
            parties=state.party_models(),
            items=[LineItem.model_construct(**item) for item in state.items],
        )


class PurchaseOrderChangeParser(TransactionParser):
    """860"""
    transaction_type = TransactionType.PURCHASE_ORDER_CHANGE
    segment_handlers = {
        'BCH': '_on_bch', 'N1': '_on_n1', 'N3': '_on_n3', 'N4': '_on_n4', 'POC': '_on_poc',
    }

    def _on_bch(self, state: ScanState, elements: List[str]):
        # BCH*04*NE*PO123*RELEASE*20231027
        change_type = element(elements, 1)
        if change_type in (ChangeType.CANCEL.value, ChangeType.CHANGE.value):
            state.fields["change_type"] = ChangeType(change_type)
        state.fields["po_type"] = element(elements, 2)
        state.fields["po_number"] = element(elements, 3)
        state.fields["change_order_number"] = element(elements, 4)
        state.fields["change_date"] = iso_date(element(elements, 5)) or None

    def _on_poc(self, state: ScanState, elements: List[str]):
        # POC*LINE*CHANGECODE*QTY*QTYLEFT*UOM*PRICE*BASIS*VN*SKU
        change_code = element(elements, 2)
        if change_code not in {code.value for code in LineChangeCode}:
            change_code = LineChangeCode.CHANGE.value
        state.open_item({
            "line_number": to_int(element(elements, 1)),
            "change_code": LineChangeCode(change_code),
            "quantity": to_float(element(elements, 3)),
            "uom": element(elements, 5) or self.settings.default_uom,
            "price": to_float(element(elements, 6)),
            "sku": qualified_value(elements, VENDOR_PART_QUALIFIER, 9) or "UNKNOWN",
        })

    def _build(self, state: ScanState) -> PurchaseOrderChange:
        po_number = state.fields.get("po_number", "")
        change_order_number = state.fields.get("change_order_number") or f"{po_number}-CHANGE"
        return PurchaseOrderChange.model_construct(
            po_number=po_number,
            change_order_number=change_order_number,
            change_date=state.fields.get("change_date"),
            change_type=state.fields.get("change_type", ChangeType.CHANGE),
            po_type=state.fields.get("po_type") or "NE",
            parties=state.party_models(),
            items=[ChangeLineItem.model_construct(**item) for item in state.items],
        )


class RemittanceParser(TransactionParser):
    """820"""
    transaction_type = TransactionType.REMITTANCE_ADVICE
    segment_handlers = {'BPR': '_on_bpr', 'TRN': '_on_trn', 'N1': '_on_n1', 'RMR': '_on_rmr'}

    def _on_bpr(self, state: ScanState, elements: List[str]):
        # BPR*I*150.00*C*... BPR16 is the effective entry date
        state.fields["total_amount"] = to_float(element(elements, 2), 0.0)
        effective_date = element(elements, 16)
        if len(effective_date) == 8:
            state.fields["payment_date"] = iso_date(effective_date)

    def _on_trn(self, state: ScanState, elements: List[str]):
        if element(elements, 1) == '1':
            state.fields["payment_number"] = element(elements, 2)

    def _on_n1(self, state: ScanState, elements: List[str]):
        if element(elements, 1) == 'PR':
            state.fields["payer"] = element(elements, 2)

    def _on_rmr(self, state: ScanState, elements: List[str]):
        # RMR*IV*INV-1001**50.00
        if element(elements, 1) == 'IV':
            state.items.append({
                "invoice_number": element(elements, 2),
                "amount_paid": to_float(element(elements, 4), 0.0),
            })

    def _build(self, state: ScanState) -> Remittance:
        return Remittance.model_construct(
            payment_number=state.fields.get("payment_number", ""),
            payment_date=state.fields.get("payment_date"),
            total_amount=state.fields.get("total_amount", 0.0),
            payer=state.fields.get("payer", ""),
            invoices=[RemittedInvoice.model_construct(**invoice) for invoice in state.items],
        )


class CarrierStatusParser(TransactionParser):
    """214. LX opens a status detail, MS1 closes it."""
    transaction_type = TransactionType.CARRIER_SHIPMENT_STATUS
    segment_handlers = {'B10': '_on_b10', 'LX': '_on_lx', 'AT7': '_on_at7', 'MS1': '_on_ms1'}

    def _on_b10(self, state: ScanState, elements: List[str]):
        # B10*PRO*BOL*SCAC
        state.fields["shipment_id"] = element(elements, 2) or element(elements, 1)
        state.fields["carrier_code"] = element(elements, 3)

    def _on_lx(self, state: ScanState, elements: List[str]):
        self._flush_detail(state)
        state.pending = {}

    def _on_at7(self, state: ScanState, elements: List[str]):
        # AT7*STATUS*REASON***DATE*TIME
        status_date = element(elements, 5)
        status_time = element(elements, 6)
        if not state.fields.get("status_date") and status_date:
            state.fields["status_date"] = status_date
            state.fields["status_time"] = status_time or None
        if state.pending is None:
            state.pending = {}
        state.pending["code"] = element(elements, 1)
        state.pending["description"] = element(elements, 2) or None
        state.pending["date"] = status_date or None
        state.pending["time"] = status_time or None

    def _on_ms1(self, state: ScanState, elements: List[str]):
        # MS1*CITY*STATE*COUNTRY
        if state.pending is None:
            return
        state.pending["city"] = element(elements, 1)
        state.pending["state"] = element(elements, 2)
        self._flush_detail(state)

    def _flush_detail(self, state: ScanState):
        if state.pending and state.pending.get("code"):
            state.flush_item()
        state.pending = None

    def _finish(self, state: ScanState):
        # a trailing detail without MS1 is kept only when it carries a status code
        self._flush_detail(state)

    def _build(self, state: ScanState) -> CarrierStatus:
        return CarrierStatus.model_construct(
            shipment_id=state.fields.get("shipment_id", ""),
            carrier_code=state.fields.get("carrier_code", ""),
            status_date=state.fields.get("status_date", ""),
            status_time=state.fields.get("status_time"),
            status_details=[StatusDetail.model_construct(**detail) for detail in state.items],
        )


class ReturnAuthorizationParser(TransactionParser):
    """180. LIN opens an item; QTY and PID fill it in until the next LIN."""
    transaction_type = TransactionType.RETURN_AUTHORIZATION
    segment_handlers = {
        'BGN': '_on_bgn', 'N1': '_on_n1', 'REF': '_on_ref', 'LIN': '_on_lin', 'QTY': '_on_qty', 'PID': '_on_pid',
    }

    def _on_bgn(self, state: ScanState, elements: List[str]):
        # BGN*00*RMA123*20231027
        state.fields["rma_number"] = element(elements, 2)
        state.fields["rma_date"] = iso_date(element(elements, 3)) or None

    def _on_n1(self, state: ScanState, elements: List[str]):
        # BY = buying party, RM = party remitting
        if element(elements, 1) in ('BY', 'RM'):
            state.fields["customer"] = {
                "name": element(elements, 2) or None,
                "id": element(elements, 4) or None,
            }

    def _on_ref(self, state: ScanState, elements: List[str]):
        if element(elements, 1) in ('PO', 'ON'):
            state.fields["order_number"] = element(elements, 2) or None

    def _on_lin(self, state: ScanState, elements: List[str]):
        # LIN**VN*SKU
        state.open_item({
            "sku": qualified_value(elements, VENDOR_PART_QUALIFIER, 3),
            "quantity": 0,
            "reason_code": None,
        })

    def _on_qty(self, state: ScanState, elements: List[str]):
        # QTY*21*10*EA, 21 = return quantity
        if state.pending is not None:
            state.pending["quantity"] = to_float(element(elements, 2), 0)

    def _on_pid(self, state: ScanState, elements: List[str]):
        if state.pending is not None:
            state.pending["reason_code"] = element(elements, 5) or None

    def _build(self, state: ScanState) -> ReturnAuthorization:
        return ReturnAuthorization.model_construct(
            rma_number=state.fields.get("rma_number", ""),
            rma_date=state.fields.get("rma_date"),
            order_number=state.fields.get("order_number"),
            customer=ReturnCustomer.model_construct(**state.fields.get("customer", {})),
            items=[ReturnItem.model_construct(**item) for item in state.items if item["sku"]],
        )


class FunctionalAcknowledgmentParser(TransactionParser):
    """997. AK2 opens a transaction set response, AK5 gives its status."""
    transaction_type = TransactionType.FUNCTIONAL_ACKNOWLEDGMENT
    segment_handlers = {'GS': '_on_gs', 'AK1': '_on_ak1', 'AK2': '_on_ak2', 'AK5': '_on_ak5', 'AK9': '_on_ak9'}

    def _on_gs(self, state: ScanState, elements: List[str]):
        functional_id = element(elements, 1)
        if functional_id != 'FA':
            logger.warning(f"997 parser received a group with functional identifier '{functional_id}'")

    def _on_ak1(self, state: ScanState, elements: List[str]):
        state.fields["functional_identifier"] = element(elements, 1)
        state.fields["received_control_number"] = element(elements, 2)

    def _on_ak2(self, state: ScanState, elements: List[str]):
        state.open_item({
            "transaction_set_code": element(elements, 1),
            "control_number": element(elements, 2),
            "status": AckStatus.ACCEPTED,
        })

    def _on_ak5(self, state: ScanState, elements: List[str]):
        if state.pending is not None:
            state.pending["status"] = ack_status_from_code(element(elements, 1))
            state.flush_item()

    def _on_ak9(self, state: ScanState, elements: List[str]):
        state.flush_item()
        state.fields["status"] = ack_status_from_code(element(elements, 1))
        state.fields["transaction_sets_included"] = to_int(element(elements, 2))
        state.fields["transaction_sets_received"] = to_int(element(elements, 3))
        state.fields["transaction_sets_accepted"] = to_int(element(elements, 4))

    def _build(self, state: ScanState) -> FunctionalAcknowledgment:
        return FunctionalAcknowledgment.model_construct(
            received_control_number=state.fields.get("received_control_number", ""),
            functional_identifier=state.fields.get("functional_identifier", ""),
            status=state.fields.get("status", AckStatus.REJECTED),
            transaction_responses=[TransactionSetResponse.model_construct(**r) for r in state.items],
            transaction_sets_included=state.fields.get("transaction_sets_included"),
            transaction_sets_received=state.fields.get("transaction_sets_received"),
            transaction_sets_accepted=state.fields.get("transaction_sets_accepted"),
        )


class AdvanceShipNoticeParser(TransactionParser):
    """856. HL segments build the shipment -> order -> item hierarchy."""
    transaction_type = TransactionType.ADVANCE_SHIP_NOTICE
    segment_handlers = {
        'BSN': '_on_bsn', 'HL': '_on_hl', 'TD5': '_on_td5', 'REF': '_on_ref', 'N1': '_on_n1',
        'N3': '_on_n3', 'N4': '_on_n4', 'PRF': '_on_prf', 'LIN': '_on_lin', 'SN1': '_on_sn1',
    }

    def _on_bsn(self, state: ScanState, elements: List[str]):
        # BSN*00*SHIP123*20231027*1200
        state.fields["shipment_id"] = element(elements, 2)
        ship_date = iso_date(element(elements, 3))
        ship_time = element(elements, 4)
        if ship_date and len(ship_time) == 4:
            ship_date = f"{ship_date}T{ship_time[:2]}:{ship_time[2:]}"
        state.fields["ship_date"] = ship_date

    def _on_hl(self, state: ScanState, elements: List[str]):
        # HL*ID*PARENT*LEVEL
        state.flush_item()
        level = HierarchicalLevel(element(elements, 1), element(elements, 2), element(elements, 3))
        if level.parent_id and level.parent_id not in state.hierarchy:
            logger.warning(f"HL {level.hl_id} references unknown parent {level.parent_id}")
        state.hierarchy[level.hl_id] = level
        state.current_level = level

    def _level_code(self, state: ScanState) -> str:
        return state.current_level.level_code if state.current_level else ""

    def _on_td5(self, state: ScanState, elements: List[str]):
        state.fields["carrier"] = element(elements, 3)

    def _on_ref(self, state: ScanState, elements: List[str]):
        if element(elements, 1) == 'CN':
            state.fields["tracking_number"] = element(elements, 2)

    def _on_prf(self, state: ScanState, elements: List[str]):
        state.fields["po_number"] = element(elements, 1)

    def _on_lin(self, state: ScanState, elements: List[str]):
        if self._level_code(state) != 'I':
            logger.debug("LIN outside an item level, ignored")
            return
        state.open_item({
            "line_number": len(state.items) + 1,
            "sku": qualified_value(elements, VENDOR_PART_QUALIFIER, 3),
            "quantity": 0.0,
            "uom": self.settings.default_uom,
        })

    def _on_sn1(self, state: ScanState, elements: List[str]):
        # SN1**QTY*UOM
        if state.pending is not None:
            state.pending["quantity"] = to_float(element(elements, 2), 0.0)
            state.pending["uom"] = element(elements, 3) or self.settings.default_uom

    def _build(self, state: ScanState) -> AdvanceShipNotice:
        ship_to = next((p for p in state.parties if p["role"] == 'ST'), None)
        return AdvanceShipNotice.model_construct(
            shipment_id=state.fields.get("shipment_id", ""),
            po_number=state.fields.get("po_number", ""),
            ship_date=state.fields.get("ship_date", ""),
            carrier=state.fields.get("carrier", ""),
            tracking_number=state.fields.get("tracking_number", ""),
            ship_to=Party.model_construct(**ship_to) if ship_to else None,
            items=[LineItem.model_construct(**item) for item in state.items],
        )
