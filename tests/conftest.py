# FILE: x12-translator/tests/conftest.py

import pytest
import sys
import os
import logging
from datetime import datetime, timezone
from typing import List

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from control_numbers import ControlNumbers
from transaction_models import LineItem, Party, PurchaseOrder
from x12_segment import tokenize

# ==============================================================================
# PYTEST CONFIGURATION & HOOKS
# ==============================================================================

def pytest_configure(config):
    """Configure pytest settings and markers."""
    config.addinivalue_line("markers", "unit: Pure unit tests with no external dependencies.")
    config.addinivalue_line("markers", "integration: Tests spanning the service, generators and parsers.")

@pytest.fixture(scope="session", autouse=True)
def setup_test_environment(pytestconfig):
    """Set up test environment with logging configuration."""
    # Use pytest's log_cli_level if available, otherwise default to INFO
    log_level = pytestconfig.getoption("log_cli_level") or "INFO"
    logging.basicConfig(
        level=log_level.upper(),
        format="[%(asctime)s] [%(levelname)s] [%(name)s:%(lineno)d] - %(message)s",
        stream=sys.stdout,
        force=True,
    )
    logging.info(f"Test logging configured with level: {log_level.upper()}")
    yield

# ==============================================================================
# TEST DATA UTILITIES
# ==============================================================================

def build_interchange(functional_id: str, transaction_sets: List[str], sender: str = "RETAILER",
                      receiver: str = "ACME", group_control_number: str = "101") -> str:
    """Wraps transaction set bodies (ST ... SE, already counted) in an ISA/GS envelope."""
    isa = (
        f"ISA*00*          *00*          *ZZ*{sender.ljust(15)}*ZZ*{receiver.ljust(15)}"
        f"*231027*1200*U*00401*{group_control_number.zfill(9)}*0*P*>~"
    )
    gs = f"GS*{functional_id}*{sender}*{receiver}*20231027*1200*{group_control_number}*X*004010~"
    ge = f"GE*{len(transaction_sets)}*{group_control_number}~"
    iea = f"IEA*1*{group_control_number.zfill(9)}~"
    return "\n".join([isa, gs, *transaction_sets, ge, iea])

def check_envelope(x12: str) -> List[List[str]]:
    """
    Asserts the envelope invariants of a generated interchange (trailer counts
    and control number echoes) and returns its tokenized segments.
    """
    assert all(line.endswith("~") for line in x12.split("\n"))
    segments = tokenize(x12)
    assert segments[0][0] == 'ISA'
    assert segments[-1][0] == 'IEA'

    isa13 = segments[0][13]
    gs06 = st02 = None
    group_count = group_transactions = transaction_segments = 0
    for seg in segments[1:]:
        tag = seg[0]
        if tag == 'GS':
            gs06 = seg[6]
            group_count += 1
            group_transactions = 0
        elif tag == 'ST':
            st02 = seg[2]
            transaction_segments = 1
        elif tag == 'SE':
            transaction_segments += 1
            assert int(seg[1]) == transaction_segments
            assert seg[2] == st02
            group_transactions += 1
            st02 = None
        elif tag == 'GE':
            assert int(seg[1]) == group_transactions
            assert seg[2] == gs06
        elif tag == 'IEA':
            assert int(seg[1]) == group_count
            assert seg[2] == isa13
        elif st02 is not None:
            transaction_segments += 1
    return segments

def body_of(segments: List[List[str]]) -> List[str]:
    """Renders the segments between ST and SE back to text, for readable asserts."""
    tags = [seg[0] for seg in segments]
    start, end = tags.index('ST'), tags.index('SE')
    return ["*".join(seg) + "~" for seg in segments[start + 1:end]]

# ==============================================================================
# UNIT TEST FIXTURES (Completely isolated, no external dependencies)
# ==============================================================================

@pytest.fixture(scope="session")
def wrap_interchange():
    return build_interchange

@pytest.fixture(scope="session")
def envelope_checker():
    return check_envelope

@pytest.fixture(scope="session")
def body_segments():
    """Checks the envelope of a generated interchange and returns its first ST/SE body as text lines."""
    def _body(x12: str) -> List[str]:
        return body_of(check_envelope(x12))
    return _body

@pytest.fixture
def fixed_control_numbers() -> ControlNumbers:
    return ControlNumbers(interchange=101, group=101, transaction=1)

@pytest.fixture
def fixed_timestamp() -> datetime:
    return datetime(2025, 1, 15, 9, 30, tzinfo=timezone.utc)

@pytest.fixture
def sample_purchase_order() -> PurchaseOrder:
    """A single order: one ship-to party with full geography and one item."""
    return PurchaseOrder(
        po_number="PO-2025-001",
        po_date="2025-01-10",
        parties=[Party(role="ST", name="Acme Logistics", address1="1 Main St",
                       city="Tech City", state="CA", zip="90210")],
        items=[LineItem(line_number=1, sku="WIDGET-01", quantity=10, price=12.5)],
    )

# ==============================================================================
# INBOUND X12 SAMPLES
# ==============================================================================

@pytest.fixture(scope="session")
def purchase_order_x12() -> str:
    """
    Two PO1 lines. The second carries BP before VN, so the positional
    fallback would pick the wrong identifier.
    """
    body = "\n".join([
        "ST*850*0001~",
        "BEG*00*SA*PO-12345**20231027~",
        "N1*ST*Main Warehouse*92*DC01~",
        "N3*100 Industrial Way~",
        "N4*Springfield*IL*62701*US~",
        "PO1*1*10*EA*15.50**VN*SKU-123*UP*012345678905~",
        "PID*F****Blue Widget~",
        "PO1*2*5*CS*42**BP*BUY-9*VN*SKU-456~",
        "CTT*2~",
        "SE*10*0001~",
    ])
    return build_interchange("PO", [body])

@pytest.fixture(scope="session")
def purchase_order_change_x12() -> str:
    body = "\n".join([
        "ST*860*0001~",
        "BCH*04*NE*PO-12345*CO-7*20231101~",
        "N1*ST*Main Warehouse*92*DC01~",
        "POC*1*QD*8*0*EA*15.50**VN*SKU-123~",
        "POC*2*ZZ*3*0*EA*9.99**BP*BUY-1~",
        "POC*3*DI~",
        "CTT*3~",
        "SE*8*0001~",
    ])
    return build_interchange("PC", [body])

@pytest.fixture(scope="session")
def remittance_x12() -> str:
    body = "\n".join([
        "ST*820*0001~",
        "BPR*I*150.00*C*ACH*CTX*01*011000015*DA*123456789*1234567890**01*021000021*DA*987654321*20231105~",
        "TRN*1*PAY-2023-88*1234567890~",
        "N1*PR*Big Retail Inc~",
        "N1*PE*Acme Supply~",
        "RMR*IV*INV-1001**100.00~",
        "RMR*IV*INV-1002**50.00~",
        "RMR*CR*CM-1**5.00~",
        "SE*9*0001~",
    ])
    return build_interchange("RA", [body], sender="BANK")

@pytest.fixture(scope="session")
def carrier_status_x12() -> str:
    """Two complete status details and a trailing LX with no AT7."""
    body = "\n".join([
        "ST*214*0001~",
        "B10*PRO-555*SHIP-2023-01*ABCD~",
        "LX*1~",
        "AT7*X6*NS***20231102*0830~",
        "MS1*Chicago*IL*US~",
        "LX*2~",
        "AT7*D1*NS***20231103*1415~",
        "MS1*Springfield*IL*US~",
        "LX*3~",
        "SE*10*0001~",
    ])
    return build_interchange("QM", [body], sender="CARRIER")

@pytest.fixture(scope="session")
def return_authorization_x12() -> str:
    body = "\n".join([
        "ST*180*0001~",
        "BGN*00*RMA-778*20231110~",
        "N1*BY*Big Retail Inc*92*BR01~",
        "REF*PO*PO-12345~",
        "LIN**VN*SKU-123~",
        "QTY*21*2*EA~",
        "PID*F****DAMAGED~",
        "LIN*2*UP*012345678905~",
        "QTY*21*1*EA~",
        "SE*10*0001~",
    ])
    return build_interchange("AN", [body])

@pytest.fixture(scope="session")
def functional_ack_x12() -> str:
    body = "\n".join([
        "ST*997*0001~",
        "AK1*PO*101~",
        "AK2*850*0001~",
        "AK5*A~",
        "AK9*A*1*1*1~",
        "SE*6*0001~",
    ])
    return build_interchange("FA", [body])

@pytest.fixture(scope="session")
def advance_ship_notice_x12() -> str:
    body = "\n".join([
        "ST*856*0001~",
        "BSN*00*SHIP-001*20231028*1430~",
        "HL*1**S~",
        "TD5*B*2*UPSN*M~",
        "REF*CN*1Z999~",
        "DTM*011*20231028*1430~",
        "N1*ST*Main Warehouse*92*DC01~",
        "N3*100 Industrial Way~",
        "N4*Springfield*IL*62701~",
        "HL*2*1*O~",
        "PRF*PO-12345~",
        "HL*3*2*I~",
        "LIN**VN*SKU-123~",
        "SN1**10*EA~",
        "HL*4*2*I~",
        "LIN**VN*SKU-456~",
        "SN1**5*CS~",
        "CTT*4~",
        "SE*19*0001~",
    ])
    return build_interchange("SH", [body], sender="ACME", receiver="RETAILER")
