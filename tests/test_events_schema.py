import pytest
from pydantic import ValidationError

from kipubank.events.schema import EventEnvelope, Deposit, Withdrawal
from kipubank.events.bus import encode


def test_event_envelope_roundtrip():
    dep = Deposit(ts=1, account="0x1", amount=500_000_000_000_000_000, balance=500_000_000_000_000_000)
    env = EventEnvelope(correlation_id="KipuBank:0x1", sequence=1, event=dep)
    js = env.model_dump_json()
    assert '"event_type":"deposit"' in js
    assert '"vault":"KipuBank"' in js


def test_encode_is_compact_single_line():
    wd = Withdrawal(ts=2, account="0x1", amount=5, balance=0)
    line = encode(EventEnvelope(correlation_id="c1", event=wd))
    assert "\n" not in line and ", " not in line
    assert '"event":{"event_type":"withdrawal"' in line


def test_event_amount_must_be_positive():
    with pytest.raises(ValidationError):
        Deposit(ts=1, account="0x1", amount=0, balance=0)
    with pytest.raises(ValidationError):
        Withdrawal(ts=1, account="0x1", amount=1, balance=-1)
