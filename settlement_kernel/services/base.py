"""
BaseService -- abstract base for flush-only services.

Responsibility:
    Common constructor for every service that writes through a caller-owned
    SQLAlchemy ``Session``.  Services flush; orchestrators in
    ``settlement_services`` commit or roll back.

Invariants enforced:
    - A service never calls ``session.commit()`` or ``session.rollback()``
      on the outer transaction, so a multi-step contract operation stays
      atomic.  Savepoints (``begin_nested``) for local retries are allowed.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from settlement_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for flush-only services.

    Non-goals:
        - Does NOT manage transaction lifecycle.
        - Does NOT provide read models; those live in ``selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session
