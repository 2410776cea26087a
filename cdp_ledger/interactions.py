"""
interactions.py - Deferred external calls

Managers never call custody or the issuance authority directly. They
schedule an Interaction on the operation's UnitOfWork, and the engine
commits the unit of work after every ledger effect and solvency check
has passed.

Commit order:
    1. PULLS  - tokens flowing into the engine (collateral in, stablecoin burn)
    2. before_push - the final solvency check, with the pulls settled
    3. PUSHES - tokens flowing out (collateral out, stablecoin mint)

Each public operation schedules at most one push and nothing runs after
it, so a failed operation only ever has pulls to compensate.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from .core import (
    CollateralCustody, IssuanceAuthority,
    MintFailure, TransferFailure,
)


class Direction(Enum):
    PULL = "pull"
    PUSH = "push"


@dataclass(frozen=True, slots=True)
class CollateralTransferIn:
    """Move collateral from its owner into engine custody."""
    custody: CollateralCustody
    asset: str
    owner: str
    amount: int
    direction: Direction = Direction.PULL

    def run(self) -> None:
        if not self.custody.transfer_in(self.owner, self.amount):
            raise TransferFailure(f"transfer in of {self.amount} {self.asset} from {self.owner} failed")

    def undo(self) -> None:
        if not self.custody.transfer_out(self.owner, self.amount):
            raise TransferFailure(f"refund of {self.amount} {self.asset} to {self.owner} failed")


@dataclass(frozen=True, slots=True)
class CollateralTransferOut:
    """Release collateral from engine custody to a recipient."""
    custody: CollateralCustody
    asset: str
    recipient: str
    amount: int
    direction: Direction = Direction.PUSH

    def run(self) -> None:
        if not self.custody.transfer_out(self.recipient, self.amount):
            raise TransferFailure(f"transfer out of {self.amount} {self.asset} to {self.recipient} failed")

    def undo(self) -> None:
        if not self.custody.transfer_in(self.recipient, self.amount):
            raise TransferFailure(f"reclaim of {self.amount} {self.asset} from {self.recipient} failed")


@dataclass(frozen=True, slots=True)
class StablecoinBurn:
    """Pull stablecoin from the payer into the engine, then burn it."""
    issuance: IssuanceAuthority
    payer: str
    vault: str
    amount: int
    direction: Direction = Direction.PULL

    def run(self) -> None:
        if not self.issuance.transfer_from(self.payer, self.vault, self.amount):
            raise TransferFailure(f"pull of {self.amount} stablecoin from {self.payer} failed")
        self.issuance.burn(self.amount)

    def undo(self) -> None:
        if not self.issuance.mint(self.payer, self.amount):
            raise MintFailure(f"re-issue of {self.amount} stablecoin to {self.payer} failed")


@dataclass(frozen=True, slots=True)
class StablecoinMint:
    """Issue freshly minted stablecoin to the borrower."""
    issuance: IssuanceAuthority
    recipient: str
    amount: int
    direction: Direction = Direction.PUSH

    def run(self) -> None:
        if not self.issuance.mint(self.recipient, self.amount):
            raise MintFailure(f"mint of {self.amount} stablecoin to {self.recipient} failed")

    def undo(self) -> None:
        # Issuer-side burn: the recipient never approved the engine.
        if not self.issuance.burn_from(self.recipient, self.amount):
            raise TransferFailure(f"reclaim of {self.amount} stablecoin from {self.recipient} failed")


INTERACTION_TYPES = (CollateralTransferIn, CollateralTransferOut, StablecoinBurn, StablecoinMint)


class UnitOfWork:
    """
    External calls of one public operation.

    Lifecycle:
    1. Managers schedule() interactions while applying ledger effects
    2. The engine calls commit() once every check has passed, passing
       the final solvency check as before_push
    3. On any later failure the engine calls rollback()

    Undo failures never replace the error that caused the rollback. They
    are collected in undo_failures for the caller to report.
    """

    def __init__(self):
        self.pending: List = []
        self.executed: List = []
        self.undo_failures: List[Exception] = []

    def schedule(self, interaction) -> None:
        if not isinstance(interaction, INTERACTION_TYPES):
            raise TypeError(f"not an interaction: {interaction!r}")
        self.pending.append(interaction)

    def commit(self, before_push: Optional[Callable[[], None]] = None) -> None:
        """
        Run pulls, then pushes, in scheduling order within each group.

        before_push runs after the last pull and before the first push.
        Collateral pulls can hand control to token code, so checks that
        depend on outside state belong there rather than after commit.

        If anything fails, the interactions already run are undone and
        the original error propagates.
        """
        pulls = [i for i in self.pending if i.direction is Direction.PULL]
        pushes = [i for i in self.pending if i.direction is Direction.PUSH]
        self.pending = []
        try:
            for interaction in pulls:
                interaction.run()
                self.executed.append(interaction)
            if before_push is not None:
                before_push()
            for interaction in pushes:
                interaction.run()
                self.executed.append(interaction)
        except Exception:
            self.rollback()
            raise

    def rollback(self) -> List[Exception]:
        """
        Undo executed interactions, newest first.

        A failing undo does not stop the ones after it. Returns the undo
        errors of this call, which are also appended to undo_failures.
        """
        failures: List[Exception] = []
        while self.executed:
            interaction = self.executed.pop()
            try:
                interaction.undo()
            except Exception as e:
                failures.append(e)
        self.pending = []
        self.undo_failures.extend(failures)
        return failures

    def __len__(self) -> int:
        return len(self.pending) + len(self.executed)

    def __repr__(self):
        return f"UnitOfWork({len(self.pending)} pending, {len(self.executed)} executed)"
