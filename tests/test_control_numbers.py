import pytest
from concurrent.futures import ThreadPoolExecutor
from pydantic import ValidationError

from control_numbers import ControlNumberSequence, ControlNumbers, FixedControlNumbers

pytestmark = pytest.mark.unit


def test_control_number_formatting():
    numbers = ControlNumbers(interchange=42, group=42, transaction=7)
    assert numbers.interchange_control_number == "000000042"
    assert numbers.group_control_number == "42"
    assert numbers.transaction_control_number() == "0007"
    assert numbers.transaction_control_number(2) == "0009"


def test_control_numbers_are_range_checked():
    with pytest.raises(ValidationError):
        ControlNumbers(interchange=0)
    with pytest.raises(ValidationError):
        ControlNumbers(interchange=1_000_000_000)


def test_fixed_source_repeats():
    source = FixedControlNumbers(ControlNumbers(interchange=5, group=5))
    assert source.next_control_numbers() == source.next_control_numbers()


def test_sequence_is_monotonic():
    source = ControlNumberSequence(start=10)
    first = source.next_control_numbers()
    second = source.next_control_numbers()
    assert first.interchange == 10
    assert second.interchange == 11
    assert second.group == 11
    assert second.transaction == 1


def test_sequence_wraps_after_maximum():
    source = ControlNumberSequence(start=ControlNumberSequence.MAX_CONTROL_NUMBER)
    assert source.next_control_numbers().interchange == 999999999
    assert source.next_control_numbers().interchange == 1


def test_sequence_rejects_invalid_start():
    with pytest.raises(ValueError):
        ControlNumberSequence(start=0)


def test_sequence_is_unique_across_threads():
    source = ControlNumberSequence()
    with ThreadPoolExecutor(max_workers=8) as executor:
        numbers = list(executor.map(lambda _: source.next_control_numbers().interchange, range(200)))
    assert len(set(numbers)) == 200
