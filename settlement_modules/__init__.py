"""
Settlement modules: cash register, receivables and payables.

Each module ships its ORM models (``orm.py``) and a flush-only ledger
service (``service.py``).  Transaction boundaries belong to
``settlement_services``.
"""
