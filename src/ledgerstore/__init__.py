"""
ledgerstore - persistence for an append-mostly ledger archive.

Stores two related record kinds, transactions and receipts, in SQLite and
serves them back through point lookups and cycle-ordered range queries.
It provides:
- A row codec that flattens nested records into relational rows and back
- Idempotent single and bulk INSERT OR REPLACE writes
- Paged, cycle-ranged and aggregate queries over the cycle axis
- Explicit write/read results instead of raised exceptions

Example usage:
    $ ledgerstore ingest receipts.json --kind receipts
    $ ledgerstore latest --kind receipts -n 10
    $ ledgerstore cycles 100 120
"""

__version__ = "0.1.0"
__author__ = "ledgerstore Contributors"

__all__ = [
    "__version__",
    "__author__",
]
