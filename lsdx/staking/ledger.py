"""
Token ledger: derivative-token balances and pending claims, keyed by
canonical address. Missing entries read as zero; balances never go negative.
"""

from typing import Dict

from ..host.api import Api
from ..numeric import check_amount, checked_add
from ..storage.base import Storage
from .state import balances, claims
from .types import InsufficientBalanceError, NoClaimError


class TokenLedger:

    def __init__(self, storage: Storage, api: Api):
        self._balances = balances(storage)
        self._claims = claims(storage)
        self._api = api

    # ── Derivative balances ───────────────────────────────────────────

    def balance_of(self, address: str) -> int:
        return self._balances.may_load(self._api.canonicalize(address)) or 0

    def credit(self, address: str, amount: int) -> int:
        check_amount(amount)
        key = self._api.canonicalize(address)
        return self._balances.update(key, lambda bal: checked_add(bal or 0, amount, "balance"))

    def debit(self, address: str, amount: int) -> int:
        check_amount(amount)
        key = self._api.canonicalize(address)

        def subtract(balance):
            balance = balance or 0
            if amount > balance:
                raise InsufficientBalanceError(address, balance, amount)
            return balance - amount

        return self._balances.update(key, subtract)

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        self.debit(sender, amount)
        self.credit(recipient, amount)

    def holders(self) -> Dict[str, int]:
        """Every non-zero balance, by human address."""
        return {
            self._api.humanize(key): amount
            for key, amount in self._balances.range()
            if amount > 0
        }

    # ── Claims ────────────────────────────────────────────────────────

    def claim_of(self, address: str) -> int:
        return self._claims.may_load(self._api.canonicalize(address)) or 0

    def claimants(self) -> Dict[str, int]:
        """Every pending claim, by human address."""
        return {
            self._api.humanize(key): amount
            for key, amount in self._claims.range()
            if amount > 0
        }

    def credit_claim(self, address: str, amount: int) -> int:
        check_amount(amount)
        key = self._api.canonicalize(address)
        return self._claims.update(key, lambda claim: checked_add(claim or 0, amount, "claim"))

    def settle_claim(self, address: str, available: int) -> int:
        """
        Settle up to *available* of the address's claim.

        Returns the amount settled; the remainder stays claimable.
        """
        key = self._api.canonicalize(address)
        claim = self._claims.may_load(key) or 0
        if claim == 0:
            raise NoClaimError(address)
        settled = min(claim, available)
        if settled == claim:
            self._claims.remove(key)
        else:
            self._claims.save(key, claim - settled)
        return settled
