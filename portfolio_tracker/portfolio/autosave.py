"""
Debounced saving of inline transaction edits.
"""

from typing import Any, Optional, TYPE_CHECKING
import structlog

from ..config import config
from ..debounce import KeyedDebouncer
from ..exceptions import is_recoverable
from .holding import Holding
from .transaction import Transaction

if TYPE_CHECKING:
    from ..market.sources import PortfolioStore

logger = structlog.get_logger(__name__)


class TransactionAutosaver:
    """
    Save a holding's transactions once edits to a transaction settle.

    Edits are keyed by transaction id: typing into the price and then the
    shares field of one transaction produces one save, while edits to two
    different transactions each produce their own.

    Example:
        >>> saver = TransactionAutosaver(store)
        >>> saver.edit(holding, txn_id, price=101.5)
        >>> await saver.flush_all()
    """

    def __init__(self, store: "PortfolioStore", delay: Optional[float] = None):
        """
        Args:
            store: Portfolio store receiving update_transactions() calls
            delay: Seconds of inactivity before saving (defaults to config)
        """
        self.store = store
        self.delay = config.autosave_delay_seconds if delay is None else delay
        self._debouncer = KeyedDebouncer(self.delay, self._save)
        self.saves = 0

    def pending(self, transaction_id: str) -> bool:
        return self._debouncer.pending(transaction_id)

    def schedule(self, holding: Holding, transaction_id: str) -> None:
        """Schedule a save of `holding` after an edit to one of its transactions."""
        self._debouncer.schedule(transaction_id, holding)

    def edit(self, holding: Holding, transaction_id: str, **changes: Any) -> Transaction:
        """
        Apply an inline edit and schedule the save.

        Raises:
            TransactionNotFoundError: If the transaction is not on the holding
            TransactionValidationError: If the edited values are invalid
        """
        updated = holding.update_transaction(transaction_id, **changes)
        self.schedule(holding, transaction_id)
        return updated

    def discard(self, transaction_id: str) -> bool:
        """Drop a pending save, e.g. after the transaction was deleted."""
        return self._debouncer.cancel(transaction_id)

    async def flush_all(self) -> None:
        """Save every pending edit now."""
        await self._debouncer.drain()

    async def _save(self, transaction_id: str, holding: Holding) -> None:
        try:
            await self.store.update_transactions(
                holding.symbol,
                holding.asset_type,
                list(holding.transactions)
            )
        except Exception as e:
            if not is_recoverable(e):
                raise
            logger.error(
                "transaction_autosave_failed",
                symbol=holding.symbol,
                transaction_id=transaction_id,
                error=str(e)
            )
            return

        self.saves += 1
        logger.info(
            "transactions_autosaved",
            symbol=holding.symbol,
            type=holding.asset_type.value,
            transaction_id=transaction_id,
            count=len(holding.transactions)
        )
