"""
Supply account: issued derivative supply, bonded base tokens and claims.
"""

from typing import Callable

from ..logger import get_logger
from ..storage.base import Storage
from .state import total_supply
from .types import InconsistentBondedAmountError, Supply

logger = get_logger(__name__)


class SupplyAccount:
    """
    Load/save access to the Supply singleton.

    `update` is all-or-nothing: the transform receives the current supply
    and must return a new one; if it raises (including a negative field
    rejected by Supply itself), nothing is written.
    """

    def __init__(self, storage: Storage):
        self._singleton = total_supply(storage)

    def load(self) -> Supply:
        return self._singleton.load()

    def save(self, supply: Supply) -> None:
        self._singleton.save(supply)

    def update(self, transform: Callable[[Supply], Supply]) -> Supply:
        current = self.load()
        updated = transform(current)
        self.save(updated)
        logger.debug(
            f"Supply issued={updated.issued} bonded={updated.bonded} claims={updated.claims}"
        )
        return updated

    def assert_bonded(self, queried: int) -> Supply:
        """
        Fail if the recorded bonded total disagrees with the host.

        A mismatch means bookkeeping and reality diverged; it is reported,
        never repaired.
        """
        supply = self.load()
        if supply.bonded != queried:
            logger.error(f"Bonded mismatch: stored {supply.bonded}, host reports {queried}")
            raise InconsistentBondedAmountError(supply.bonded, queried)
        return supply
