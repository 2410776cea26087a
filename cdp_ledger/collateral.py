"""
collateral.py - Deposit and redemption of collateral

Every operation runs in checks -> effects -> interactions order:
validate the request, update the ledger and emit the notification,
then schedule the custody transfer on the caller's UnitOfWork.
"""

from __future__ import annotations
from typing import Dict, Mapping

from .core import (
    CollateralCustody, CollateralDeposited, CollateralRedeemed,
    HealthFactorTooLow, UnsupportedAsset,
    require_positive_amount,
)
from .health import HealthFactorCalculator
from .interactions import CollateralTransferIn, CollateralTransferOut, UnitOfWork
from .ledger import AccountLedger


class CollateralManager:
    """Moves collateral between owners and engine custody."""

    def __init__(
        self,
        ledger: AccountLedger,
        calculator: HealthFactorCalculator,
        custodies: Mapping[str, CollateralCustody],
    ):
        """
        Args:
            ledger: Account ledger to write
            calculator: Health factors for post-redemption checks
            custodies: Asset symbol -> custody; must cover every registered asset
        """
        self.ledger = ledger
        self.calculator = calculator
        self._custodies: Dict[str, CollateralCustody] = {}
        for symbol in ledger.registry.symbols:
            if symbol not in custodies:
                raise UnsupportedAsset(f"no custody configured for {symbol}")
            self._custodies[symbol] = custodies[symbol]

    def custody_for(self, asset: str) -> CollateralCustody:
        self.ledger.registry.require(asset)
        return self._custodies[asset]

    def deposit(self, uow: UnitOfWork, account: str, asset: str, amount: int) -> int:
        """
        Credit `amount` of `asset` to `account`.

        The tokens are pulled from the account when the unit of work commits.

        Returns:
            The account's new balance in `asset`

        Raises:
            InvalidAmount: amount is not a positive int
            UnsupportedAsset: asset is not registered
        """
        require_positive_amount(amount)
        self.ledger.registry.require(asset)

        balance = self.ledger.credit_collateral(account, asset, amount)
        self.ledger.emit(CollateralDeposited(account=account, asset=asset, amount=amount))
        uow.schedule(CollateralTransferIn(
            custody=self._custodies[asset], asset=asset, owner=account, amount=amount,
        ))
        return balance

    def redeem(
        self,
        uow: UnitOfWork,
        from_account: str,
        to_recipient: str,
        asset: str,
        amount: int,
        check_health: bool = True,
    ) -> int:
        """
        Debit `amount` of `asset` from `from_account` and release it to `to_recipient`.

        from_account and to_recipient differ only during liquidation, where
        the debtor's collateral goes to the liquidator. Liquidation passes
        check_health=False because the debtor is below the minimum by
        definition; it runs its own improvement checks instead.

        Returns:
            from_account's remaining balance in `asset`

        Raises:
            InvalidAmount: amount is not a positive int
            UnsupportedAsset: asset is not registered
            InsufficientBalance: from_account holds less than amount
            HealthFactorTooLow: from_account would end below the minimum
        """
        require_positive_amount(amount)
        self.ledger.registry.require(asset)

        remaining = self.ledger.debit_collateral(from_account, asset, amount)
        self.ledger.emit(CollateralRedeemed(
            source=from_account, destination=to_recipient, asset=asset, amount=amount,
        ))
        uow.schedule(CollateralTransferOut(
            custody=self._custodies[asset], asset=asset, recipient=to_recipient, amount=amount,
        ))
        if check_health:
            self.require_healthy(from_account)
        return remaining

    def require_healthy(self, account: str) -> None:
        health_factor = self.calculator.health_factor(account)
        if health_factor < self.calculator.min_health_factor:
            raise HealthFactorTooLow(account, health_factor, self.calculator.min_health_factor)
