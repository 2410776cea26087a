"""
fake_collaborators.py - Misbehaving collaborators for failure-path tests

- RefusingToken / RefusingStablecoin: report failure on demand
- ReentrantToken: calls back into the engine from inside a transfer
"""

from __future__ import annotations
from typing import Callable, Optional

from cdp_ledger import CollateralToken, Stablecoin


class RefusingToken(CollateralToken):
    """CollateralToken whose custody calls can be switched to fail."""

    def __init__(self, symbol: str):
        super().__init__(symbol)
        self.refuse_in = False
        self.refuse_out = False
        self.calls = []

    def transfer_in(self, owner: str, amount: int) -> bool:
        self.calls.append(("in", owner, amount))
        if self.refuse_in:
            return False
        return super().transfer_in(owner, amount)

    def transfer_out(self, recipient: str, amount: int) -> bool:
        self.calls.append(("out", recipient, amount))
        if self.refuse_out:
            return False
        return super().transfer_out(recipient, amount)


class RefusingStablecoin(Stablecoin):
    """Stablecoin whose mint and pull can be switched to fail."""

    def __init__(self):
        super().__init__("DSC")
        self.refuse_mint = False
        self.refuse_pull = False

    def mint(self, to: str, amount: int) -> bool:
        if self.refuse_mint:
            return False
        return super().mint(to, amount)

    def transfer_from(self, sender: str, recipient: str, amount: int) -> bool:
        if self.refuse_pull:
            return False
        return super().transfer_from(sender, recipient, amount)


class ReentrantToken(CollateralToken):
    """
    CollateralToken that runs a callback in the middle of transfer_in.

    The callback typically calls a mutating engine method; whatever it
    raises is recorded and re-raised out of the transfer.
    """

    def __init__(self, symbol: str):
        super().__init__(symbol)
        self.callback: Optional[Callable[[], object]] = None
        self.callback_error: Optional[BaseException] = None

    def transfer_in(self, owner: str, amount: int) -> bool:
        if self.callback is not None:
            callback, self.callback = self.callback, None
            try:
                callback()
            except Exception as e:
                self.callback_error = e
                raise
        return super().transfer_in(owner, amount)
