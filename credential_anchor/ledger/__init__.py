"""Host ledger boundary: the stub protocol, key layout and an in-memory ledger."""

from .codec import decode_record, encode_record
from .memory import InMemoryLedger, LedgerEvent, Transaction
from .stub import LedgerStub, create_composite_key, format_timestamp, split_composite_key

__all__ = [
    "InMemoryLedger",
    "LedgerEvent",
    "LedgerStub",
    "Transaction",
    "create_composite_key",
    "decode_record",
    "encode_record",
    "format_timestamp",
    "split_composite_key",
]
