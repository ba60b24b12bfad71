"""Atomic unit-of-work helper shared by the domain services"""

import logging
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..exceptions import DispatchError, TransactionFailed

logger = logging.getLogger(__name__)


@contextmanager
def atomic(db: Session, operation: str):
    """
    Commit everything done on the session inside the block, or nothing.

    Every error rolls back. Store errors surface as TransactionFailed; any
    other exception propagates unchanged.
    """
    try:
        yield db
        db.commit()
    except DispatchError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ {operation} failed, transaction rolled back: {e}")
        raise TransactionFailed(f"{operation} failed: store write aborted") from e
    except Exception as e:
        db.rollback()
        logger.error(f"❌ {operation} failed, transaction rolled back: {e}")
        raise
