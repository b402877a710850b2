import logging
from typing import Any, Callable, Dict, Optional, Type, Union

from pydantic import BaseModel, ValidationError

from control_numbers import ControlNumberSequence, ControlNumberSource
from envelope_settings import DEFAULT_SETTINGS, EnvelopeSettings, PartnerSettingsManager
from errors import PayloadValidationError, UnsupportedTransactionError
from inbound_parsers import (
    AdvanceShipNoticeParser, CarrierStatusParser, FunctionalAcknowledgmentParser,
    PurchaseOrderChangeParser, PurchaseOrderParser, RemittanceParser, ReturnAuthorizationParser,
    TransactionParser,
)
from legacy_adapters import adapt_payload
from outbound_generators import (
    AdvanceShipNoticeGenerator, FunctionalAcknowledgmentGenerator, InventoryAdviceGenerator,
    InvoiceGenerator, PurchaseOrderAcknowledgmentGenerator, PurchaseOrderChangeGenerator,
    PurchaseOrderGenerator, TransactionGenerator, WarehouseShippingOrderGenerator,
)
from transaction_log import TransactionRecord, TransactionRecorder
from transaction_models import (
    AdvanceShipNotice, CarrierStatus, FunctionalAcknowledgment, InventoryAdvice, Invoice,
    PurchaseOrder, PurchaseOrderAcknowledgment, PurchaseOrderBatch, PurchaseOrderChange,
    Remittance, ReturnAuthorization, WarehouseShippingOrder,
)
from x12_defs import Direction, TransactionType

logger = logging.getLogger(__name__)

BUSINESS_NUMBER_MAX_LENGTH = 100


def _purchase_order_numbers(document: Union[PurchaseOrderBatch, PurchaseOrder]) -> str:
    if isinstance(document, PurchaseOrder):
        return document.po_number
    numbers = ", ".join(order.po_number for order in document.transaction_sets)
    if len(numbers) > BUSINESS_NUMBER_MAX_LENGTH:
        numbers = numbers[:BUSINESS_NUMBER_MAX_LENGTH - 3] + "..."
    return numbers


class TransactionHandler:
    """What the service knows about one transaction type."""

    def __init__(
        self,
        document_model: Type[BaseModel],
        business_number: Callable[[Any], str],
        generator_cls: Optional[Type[TransactionGenerator]] = None,
        parser_cls: Optional[Type[TransactionParser]] = None,
    ):
        self.document_model = document_model
        self.business_number = business_number
        self.generator_cls = generator_cls
        self.parser_cls = parser_cls


TRANSACTION_HANDLERS: Dict[TransactionType, TransactionHandler] = {
    TransactionType.PURCHASE_ORDER: TransactionHandler(
        PurchaseOrderBatch, _purchase_order_numbers, PurchaseOrderGenerator, PurchaseOrderParser),
    TransactionType.PURCHASE_ORDER_CHANGE: TransactionHandler(
        PurchaseOrderChange, lambda d: d.change_order_number or d.po_number,
        PurchaseOrderChangeGenerator, PurchaseOrderChangeParser),
    TransactionType.WAREHOUSE_SHIPPING_ORDER: TransactionHandler(
        WarehouseShippingOrder, lambda d: d.po_number, WarehouseShippingOrderGenerator),
    TransactionType.FUNCTIONAL_ACKNOWLEDGMENT: TransactionHandler(
        FunctionalAcknowledgment, lambda d: d.received_control_number,
        FunctionalAcknowledgmentGenerator, FunctionalAcknowledgmentParser),
    TransactionType.PURCHASE_ORDER_ACKNOWLEDGMENT: TransactionHandler(
        PurchaseOrderAcknowledgment, lambda d: d.po_number, PurchaseOrderAcknowledgmentGenerator),
    TransactionType.ADVANCE_SHIP_NOTICE: TransactionHandler(
        AdvanceShipNotice, lambda d: d.shipment_id, AdvanceShipNoticeGenerator, AdvanceShipNoticeParser),
    TransactionType.INVOICE: TransactionHandler(
        Invoice, lambda d: d.invoice_number, InvoiceGenerator),
    TransactionType.INVENTORY_ADVICE: TransactionHandler(
        InventoryAdvice, lambda d: d.advice_number, InventoryAdviceGenerator),
    TransactionType.REMITTANCE_ADVICE: TransactionHandler(
        Remittance, lambda d: d.payment_number, parser_cls=RemittanceParser),
    TransactionType.CARRIER_SHIPMENT_STATUS: TransactionHandler(
        CarrierStatus, lambda d: d.shipment_id, parser_cls=CarrierStatusParser),
    TransactionType.RETURN_AUTHORIZATION: TransactionHandler(
        ReturnAuthorization, lambda d: d.rma_number, parser_cls=ReturnAuthorizationParser),
}

_unhandled = set(TransactionType) - set(TRANSACTION_HANDLERS)
if _unhandled:
    raise RuntimeError(f"No handler registered for transaction types: {sorted(t.value for t in _unhandled)}")


def infer_direction(payload: Any) -> Direction:
    """X12 text (starting with ISA) is inbound; anything else is a document to generate."""
    if isinstance(payload, str) and payload.strip().startswith('ISA'):
        return Direction.INBOUND
    return Direction.OUTBOUND


class TranslationService:
    """
    Routes one translation request to the matching generator or parser and
    records the outcome. Holds no per-call state.
    """

    def __init__(
        self,
        recorder: Optional[TransactionRecorder] = None,
        control_numbers: Optional[ControlNumberSource] = None,
        settings_manager: Optional[PartnerSettingsManager] = None,
    ):
        self.recorder = recorder
        self.control_numbers = control_numbers or ControlNumberSequence()
        self.settings_manager = settings_manager

    def process_transaction(self, transaction_type: str, sender: str, receiver: str, payload: Any):
        """
        Args:
            transaction_type: Transaction set code, e.g. "850"
            sender: Interchange sender id
            receiver: Interchange receiver id
            payload: X12 text (inbound) or a document / dict (outbound)

        Returns:
            X12 text for outbound requests, a parsed document for inbound ones.

        Raises:
            UnsupportedTransactionError: No generator/parser for this type and direction
            PayloadValidationError: The outbound document failed shape validation
        """
        tx_type = self._resolve_type(transaction_type)
        direction = infer_direction(payload)
        handler = TRANSACTION_HANDLERS[tx_type]
        partner = sender if direction == Direction.INBOUND else receiver
        settings = self._settings_for(partner)

        logger.info(f"Processing {tx_type.value} ({direction.value}) from {sender} to {receiver}")

        if direction == Direction.OUTBOUND:
            if handler.generator_cls is None:
                raise UnsupportedTransactionError(tx_type.value, direction.value)
            document = self._validate(tx_type, handler, payload)
            generator = handler.generator_cls(self.control_numbers.next_control_numbers(), settings)
            result = generator.generate(document, sender, receiver)
        else:
            if handler.parser_cls is None:
                raise UnsupportedTransactionError(tx_type.value, direction.value)
            document = handler.parser_cls(settings).parse(payload)
            result = document

        business_number = handler.business_number(document) or "UNKNOWN"
        self._record(tx_type, direction, sender, receiver, business_number, result)
        return result

    def _resolve_type(self, transaction_type: Union[str, TransactionType]) -> TransactionType:
        try:
            return TransactionType(transaction_type)
        except ValueError:
            raise UnsupportedTransactionError(str(transaction_type))

    def _settings_for(self, partner: str) -> EnvelopeSettings:
        if self.settings_manager is None:
            return DEFAULT_SETTINGS
        return self.settings_manager.get_settings(partner)

    def _validate(self, tx_type: TransactionType, handler: TransactionHandler, payload: Any) -> BaseModel:
        if isinstance(payload, BaseModel):
            payload = payload.model_dump(by_alias=True, exclude_none=True)
        payload = adapt_payload(tx_type, payload)
        try:
            return handler.document_model.model_validate(payload)
        except ValidationError as e:
            error = PayloadValidationError.from_validation_error(tx_type.value, e)
            logger.warning(f"{error} ({len(error.issues)} issues)")
            raise error from e

    def _record(self, tx_type: TransactionType, direction: Direction, sender: str, receiver: str,
                business_number: str, result: Any):
        if self.recorder is None:
            return
        try:
            record = TransactionRecord.create(tx_type.value, direction, sender, receiver, business_number, result)
            self.recorder.record(record)
        except Exception as e:
            logger.error(f"Failed to record {tx_type.value} transaction {business_number}: {e}", exc_info=True)
