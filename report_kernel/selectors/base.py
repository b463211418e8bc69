"""
Read-only query objects over the movements store.

A selector borrows the caller's session and never adds, flushes or commits.
It hands back domain values (``MovementRow``), never ORM instances, so the
engines stay unaware of the database.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from report_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):

    def __init__(self, session: Session):
        self.session = session
