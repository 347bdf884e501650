"""
Module ORM Registry (``settlement_modules._orm_registry``).

Responsibility
--------------
Import every ORM model so ``Base.metadata`` knows all tables before
``create_tables()`` runs.  Kernel models go first: cash, receivable and
payable tables reference ``contracts.id``.

Usage
-----
``settlement_kernel.db.engine.create_tables()`` and ``drop_tables()`` call
``import_all_orm_models()`` before touching the metadata.
"""


def import_all_orm_models() -> None:
    """Register kernel and module ORM models (idempotent)."""
    import settlement_kernel.models  # noqa: F401
    # fmt: off
    import settlement_modules.ap.orm  # noqa: F401
    import settlement_modules.ar.orm  # noqa: F401
    import settlement_modules.cash.orm  # noqa: F401
    # fmt: on
