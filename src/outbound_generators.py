import logging
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional

from control_numbers import ControlNumbers
from envelope_settings import DEFAULT_SETTINGS, EnvelopeSettings
from transaction_models import (
    AdvanceShipNotice, FunctionalAcknowledgment, InventoryAdvice, Invoice, Party,
    PurchaseOrder, PurchaseOrderAcknowledgment, PurchaseOrderBatch, PurchaseOrderChange,
    WarehouseShippingOrder,
)
from x12_builder import X12Builder
from x12_defs import (
    ACK_ITEM_STATUS_CODES, BAK_STATUS_CODES, FUNCTIONAL_ACK_CODES, FUNCTIONAL_IDENTIFIERS,
    AckStatus, TransactionType,
)
from x12_segment import x12_date, x12_time

logger = logging.getLogger(__name__)

VENDOR_PART_QUALIFIER = "VN"


class TransactionGenerator:
    """
    Base class for outbound generators. A generator turns one validated document
    into a complete ISA/GS/ST ... SE/GE/IEA interchange.
    """
    transaction_type: TransactionType

    def __init__(
        self,
        control_numbers: Optional[ControlNumbers] = None,
        settings: EnvelopeSettings = DEFAULT_SETTINGS,
        timestamp: Optional[datetime] = None,
    ):
        self.control_numbers = control_numbers
        self.settings = settings
        self.timestamp = timestamp

    def generate(self, document, sender: str, receiver: str) -> str:
        builder = X12Builder(self.control_numbers, self.settings, self.timestamp)
        builder.add_isa(sender, receiver)
        builder.add_gs(FUNCTIONAL_IDENTIFIERS[self.transaction_type], sender, receiver)
        self._add_transaction_sets(builder, document)
        builder.add_ge()
        builder.add_iea()
        logger.info(f"Generated {self.transaction_type.value} interchange {builder.control_numbers.interchange_control_number}")
        return builder.to_string()

    def _add_transaction_sets(self, builder: X12Builder, document):
        builder.add_st(self.transaction_type.value)
        self._add_body(builder, document)
        builder.add_se()

    def _add_body(self, builder: X12Builder, document):
        raise NotImplementedError

    # --- shared loops ---

    def _document_date(self, builder: X12Builder, value: Optional[str]) -> str:
        return x12_date(value) if value else x12_date(builder.timestamp)

    def _uom(self, value: Optional[str]) -> str:
        return value or self.settings.default_uom

    def _add_party_loop(self, builder: X12Builder, party: Party):
        """N1, then N3 when a street address is present, then N4 only when city, state and zip are all present."""
        id_qualifier = party.id_qualifier or ("92" if party.code else None)
        builder.add_segment('N1', party.role, party.name, id_qualifier, party.code)
        if party.has_street_address:
            if party.address2:
                builder.add_segment('N3', party.address1, party.address2)
            else:
                builder.add_segment('N3', party.address1)
        if party.has_geography:
            if party.country:
                builder.add_segment('N4', party.city, party.state, party.zip, party.country)
            else:
                builder.add_segment('N4', party.city, party.state, party.zip)
        else:
            logger.debug(f"Party {party.role} '{party.name}' has incomplete geography, N4 omitted")

    def _add_party_loops(self, builder: X12Builder, parties: List[Party]):
        for party in parties:
            self._add_party_loop(builder, party)


class PurchaseOrderGenerator(TransactionGenerator):
    """850. One ST/SE per order in the batch, all inside one functional group."""
    transaction_type = TransactionType.PURCHASE_ORDER

    def generate(self, document, sender: str, receiver: str) -> str:
        if isinstance(document, PurchaseOrder):
            document = PurchaseOrderBatch(transaction_sets=[document])
        return super().generate(document, sender, receiver)

    def _add_transaction_sets(self, builder: X12Builder, document: PurchaseOrderBatch):
        builder.reserve_transaction_numbers(o.transaction_set_control_number for o in document.transaction_sets)
        for order in document.transaction_sets:
            builder.add_st(self.transaction_type.value, order.transaction_set_control_number)
            self._add_body(builder, order)
            builder.add_se()

    def _add_body(self, builder: X12Builder, order: PurchaseOrder):
        # BEG*00*NE*PO123**20231027~
        builder.add_segment(
            'BEG', order.purpose, order.po_type, order.po_number,
            order.release_number, self._document_date(builder, order.po_date),
        )
        self._add_party_loops(builder, order.parties)

        for index, item in enumerate(order.items):
            elements = [
                item.line_number or index + 1, item.quantity, self._uom(item.uom), item.price, '',
                VENDOR_PART_QUALIFIER, item.sku,
            ]
            if item.upc:
                elements += ['UP', item.upc]
            if item.buyer_part_number:
                elements += ['BP', item.buyer_part_number]
            builder.add_segment('PO1', *elements)
            if item.description:
                builder.add_segment('PID', 'F', '', '', '', item.description)

        builder.add_segment('CTT', len(order.items))


class PurchaseOrderChangeGenerator(TransactionGenerator):
    """860"""
    transaction_type = TransactionType.PURCHASE_ORDER_CHANGE

    def _add_body(self, builder: X12Builder, change: PurchaseOrderChange):
        # BCH*04*NE*PO123*RELEASE*20231027~
        builder.add_segment(
            'BCH', change.change_type.value, change.po_type, change.po_number,
            change.change_order_number, self._document_date(builder, change.change_date),
        )
        self._add_party_loops(builder, change.parties)

        for index, item in enumerate(change.items):
            # POC*LINE*CHANGECODE*QTY*QTYLEFT*UOM*PRICE*BASIS*VN*SKU
            builder.add_segment(
                'POC', item.line_number or index + 1, item.change_code.value,
                item.quantity or 0, 0, self._uom(item.uom), item.price or 0, '',
                VENDOR_PART_QUALIFIER, item.sku,
            )

        builder.add_segment('CTT', len(change.items))


class WarehouseShippingOrderGenerator(TransactionGenerator):
    """940"""
    transaction_type = TransactionType.WAREHOUSE_SHIPPING_ORDER

    def _add_body(self, builder: X12Builder, order: WarehouseShippingOrder):
        # W05*N*PO123~  (N = new order)
        builder.add_segment('W05', 'N', order.po_number)
        self._add_party_loop(builder, order.ship_to)
        self._add_party_loops(builder, order.parties)

        for item in order.items:
            # W01*QTY*UOM*UPC*VN*SKU~
            builder.add_segment('W01', item.quantity, self._uom(item.uom), item.upc, VENDOR_PART_QUALIFIER, item.sku)

        builder.add_segment('CTT', len(order.items))


class FunctionalAcknowledgmentGenerator(TransactionGenerator):
    """997. AK9 carries the transaction set counts; there is no CTT."""
    transaction_type = TransactionType.FUNCTIONAL_ACKNOWLEDGMENT

    def _add_body(self, builder: X12Builder, ack: FunctionalAcknowledgment):
        # AK1: which group we are responding to
        builder.add_segment('AK1', ack.functional_identifier, ack.received_control_number)

        for response in ack.transaction_responses:
            builder.add_segment('AK2', response.transaction_set_code, response.control_number)
            builder.add_segment('AK5', FUNCTIONAL_ACK_CODES[response.status])

        responses = ack.transaction_responses
        included = ack.transaction_sets_included
        if included is None:
            included = len(responses) or 1
        received = ack.transaction_sets_received if ack.transaction_sets_received is not None else included
        accepted = ack.transaction_sets_accepted
        if accepted is None:
            if responses:
                accepted = sum(1 for r in responses if r.status != AckStatus.REJECTED)
            else:
                accepted = received if ack.accepted else 0

        builder.add_segment('AK9', FUNCTIONAL_ACK_CODES[ack.status], included, received, accepted)


class PurchaseOrderAcknowledgmentGenerator(TransactionGenerator):
    """855"""
    transaction_type = TransactionType.PURCHASE_ORDER_ACKNOWLEDGMENT

    def _add_body(self, builder: X12Builder, ack: PurchaseOrderAcknowledgment):
        # BAK*00*AT*PO123*20231027~
        builder.add_segment(
            'BAK', '00', BAK_STATUS_CODES[ack.ack_status], ack.po_number,
            self._document_date(builder, ack.ack_date),
        )

        for index, item in enumerate(ack.items):
            uom = self._uom(item.uom)
            builder.add_segment(
                'PO1', item.line_number or index + 1, item.quantity, uom, '', '',
                VENDOR_PART_QUALIFIER, item.sku,
            )
            builder.add_segment('ACK', ACK_ITEM_STATUS_CODES[item.status], item.quantity, uom)

        builder.add_segment('CTT', len(ack.items))


class AdvanceShipNoticeGenerator(TransactionGenerator):
    """856. Shipment -> order -> item hierarchy; CTT counts HL segments."""
    transaction_type = TransactionType.ADVANCE_SHIP_NOTICE

    def _add_body(self, builder: X12Builder, asn: AdvanceShipNotice):
        date = x12_date(asn.ship_date)
        time = x12_time(asn.ship_date)

        builder.add_segment('BSN', '00', asn.shipment_id, date, time)

        hl_count = 1
        shipment_hl = hl_count
        # HL*ID*PARENT*LEVEL
        builder.add_segment('HL', shipment_hl, '', 'S')
        # B = origin carrier, 2 = SCAC, M = motor
        builder.add_segment('TD5', 'B', '2', asn.carrier, 'M')
        builder.add_segment('REF', 'CN', asn.tracking_number)
        builder.add_segment('DTM', '011', date, time)
        self._add_party_loop(builder, asn.ship_to)

        hl_count += 1
        order_hl = hl_count
        builder.add_segment('HL', order_hl, shipment_hl, 'O')
        builder.add_segment('PRF', asn.po_number)

        for item in asn.items:
            hl_count += 1
            builder.add_segment('HL', hl_count, order_hl, 'I')
            builder.add_segment('LIN', '', VENDOR_PART_QUALIFIER, item.sku)
            builder.add_segment('SN1', '', item.quantity, self._uom(item.uom))

        builder.add_segment('CTT', hl_count)


class InvoiceGenerator(TransactionGenerator):
    """810"""
    transaction_type = TransactionType.INVOICE

    def _add_body(self, builder: X12Builder, invoice: Invoice):
        date = self._document_date(builder, invoice.invoice_date)
        # BIG*INVDATE*INVNUM*PODATE*PONUM~
        builder.add_segment('BIG', date, invoice.invoice_number, date, invoice.po_number)
        if invoice.terms:
            # ITD12 carries the free-text terms description
            builder.add_segment('ITD', '01', '3', '', '', '', '', '', '', '', '', '', invoice.terms)
        self._add_party_loops(builder, invoice.parties)

        for index, item in enumerate(invoice.items):
            # IT1*LINE*QTY*UOM*PRICE*PE*VN*SKU~
            builder.add_segment(
                'IT1', index + 1, item.quantity, self._uom(item.uom), f"{item.unit_price:.2f}", 'PE',
                VENDOR_PART_QUALIFIER, item.sku,
            )

        # TDS01 is N2: two implied decimals
        cents = (Decimal(str(invoice.total_amount)) * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP)
        builder.add_segment('TDS', int(cents))
        builder.add_segment('CTT', len(invoice.items))


class InventoryAdviceGenerator(TransactionGenerator):
    """846"""
    transaction_type = TransactionType.INVENTORY_ADVICE

    def _add_body(self, builder: X12Builder, advice: InventoryAdvice):
        # 00 = original, DD = distributor inventory report
        builder.add_segment('BIA', '00', 'DD', advice.advice_number, self._document_date(builder, advice.date))

        for item in advice.items:
            builder.add_segment('LIN', '', VENDOR_PART_QUALIFIER, item.sku)
            builder.add_segment('QTY', item.quantity_qualifier, item.quantity, self._uom(item.uom))
            if item.location:
                # WS = warehouse storage location
                builder.add_segment('REF', 'WS', item.location)

        builder.add_segment('CTT', len(advice.items))
