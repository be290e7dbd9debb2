"""
Token ledger for the host environment.

Holds every fungible balance and allowance the engine touches: want tokens,
reward tokens, the fee-bearing native token, LP tokens and vault shares.
Amounts are integers in the token's smallest unit.
"""

import copy
import logging
from collections import defaultdict
from typing import Dict, Tuple

from .errors import InsufficientAllowanceError, InsufficientBalanceError

logger = logging.getLogger(__name__)


MAX_UINT256 = 2 ** 256 - 1


class TokenLedger:
    """
    Balances and allowances for all tokens, keyed by token symbol/address.

    Features:
    - ERC20-style transfer / approve / transfer_from
    - Unlimited (MAX_UINT256) allowances are never decremented
    - Mint and burn for tokens issued by farms, routers (LP) and vaults
    - Snapshot / restore used by the Chain transaction scope
    """

    def __init__(self):
        self._balances: Dict[str, Dict[str, int]] = defaultdict(dict)
        self._allowances: Dict[Tuple[str, str, str], int] = {}
        self._supply: Dict[str, int] = defaultdict(int)

    @staticmethod
    def _check_amount(amount: int):
        if not isinstance(amount, int) or isinstance(amount, bool):
            raise TypeError(f"Token amounts must be integers, got {type(amount).__name__}")
        if amount < 0:
            raise ValueError(f"Token amount cannot be negative: {amount}")

    def balance_of(self, token: str, holder: str) -> int:
        """Return the balance of `holder` in `token` (0 when unknown)."""
        return self._balances.get(token, {}).get(holder, 0)

    def total_supply(self, token: str) -> int:
        return self._supply.get(token, 0)

    def mint(self, token: str, recipient: str, amount: int):
        """Create `amount` new units of `token` for `recipient`."""
        self._check_amount(amount)
        if amount == 0:
            return
        holders = self._balances[token]
        holders[recipient] = holders.get(recipient, 0) + amount
        self._supply[token] += amount
        logger.debug(f"Minted {amount} {token} to {recipient}")

    def burn(self, token: str, holder: str, amount: int):
        """Destroy `amount` units of `token` held by `holder`."""
        self._check_amount(amount)
        balance = self.balance_of(token, holder)
        if balance < amount:
            raise InsufficientBalanceError(
                f"Cannot burn {amount} {token} from {holder}: balance is {balance}"
            )
        if amount == 0:
            return
        self._balances[token][holder] = balance - amount
        self._supply[token] -= amount
        logger.debug(f"Burned {amount} {token} from {holder}")

    def transfer(self, token: str, sender: str, recipient: str, amount: int):
        """
        Move `amount` of `token` from `sender` to `recipient`.

        Raises:
            InsufficientBalanceError: If the sender holds less than `amount`
        """
        self._check_amount(amount)
        balance = self.balance_of(token, sender)
        if balance < amount:
            raise InsufficientBalanceError(
                f"Transfer of {amount} {token} from {sender} exceeds balance {balance}"
            )
        if amount == 0 or sender == recipient:
            return
        holders = self._balances[token]
        holders[sender] = balance - amount
        holders[recipient] = holders.get(recipient, 0) + amount

    def approve(self, token: str, owner: str, spender: str, amount: int):
        """Set the allowance of `spender` over `owner`'s `token` to `amount`."""
        self._check_amount(amount)
        if amount == 0:
            self._allowances.pop((token, owner, spender), None)
        else:
            self._allowances[(token, owner, spender)] = amount
        logger.debug(f"{owner} approved {spender} for {amount} {token}")

    def allowance(self, token: str, owner: str, spender: str) -> int:
        return self._allowances.get((token, owner, spender), 0)

    def transfer_from(self, token: str, spender: str, owner: str, recipient: str, amount: int):
        """
        Move `owner`'s tokens on behalf of `spender`.

        Raises:
            InsufficientAllowanceError: If the allowance does not cover `amount`
            InsufficientBalanceError: If the owner holds less than `amount`
        """
        self._check_amount(amount)
        if spender != owner:
            allowed = self.allowance(token, owner, spender)
            if allowed < amount:
                raise InsufficientAllowanceError(
                    f"{spender} may spend {allowed} {token} of {owner}, needs {amount}"
                )
            if allowed != MAX_UINT256:
                self._allowances[(token, owner, spender)] = allowed - amount
        self.transfer(token, owner, recipient, amount)

    def snapshot(self) -> dict:
        return {
            "balances": copy.deepcopy(dict(self._balances)),
            "allowances": dict(self._allowances),
            "supply": dict(self._supply),
        }

    def restore(self, state: dict):
        self._balances = defaultdict(dict, state["balances"])
        self._allowances = dict(state["allowances"])
        self._supply = defaultdict(int, state["supply"])
