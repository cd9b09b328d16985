"""
Bet ledger - the player's balance, selected stake and single active wager.

Commands never raise for business rejections; they return the usual result
dicts ({"success": False, "error": ...}) and leave state untouched.
"""

from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional

from crashround.core.exceptions import InvalidAmountError, parse_amount, parse_delta
from crashround.core.crash.rounds import RoundPhase


# Money moves in whole cents
MONEY_PLACES = 2


class BetStatus(str, Enum):
    NONE = "none"
    PLACED = "placed"
    CASHED_OUT = "cashed_out"
    LOST = "lost"


@dataclass(frozen=True)
class Bet:
    amount: Decimal = Decimal("0")
    status: BetStatus = BetStatus.NONE
    cash_out_multiplier: Optional[Decimal] = None

    @property
    def payout(self) -> Decimal:
        if self.status is BetStatus.CASHED_OUT:
            return self.amount * self.cash_out_multiplier
        return Decimal("0")

    @property
    def is_settled(self) -> bool:
        return self.status in (BetStatus.CASHED_OUT, BetStatus.LOST)

    def to_dict(self) -> Dict:
        return {
            "amount": float(self.amount),
            "status": self.status.value,
            "cash_out_multiplier": (
                float(round(self.cash_out_multiplier, 2))
                if self.cash_out_multiplier is not None else None
            ),
            "payout": float(round(self.payout, 2)),
        }


NO_BET = Bet()


class BetLedger:
    """
    Balance bookkeeping for one player.

    Balance only moves on placement (debit) and cash-out (credit), and a
    placement is refused rather than letting it go negative.
    """

    def __init__(self, starting_balance=Decimal("10000.00"), default_stake=Decimal("0.20"),
                 min_stake=Decimal("0.10")):
        self.balance = Decimal(str(starting_balance))
        self.min_stake = Decimal(str(min_stake))
        self.stake = max(self.min_stake, Decimal(str(default_stake)))
        self.bet = NO_BET

    # ==================== Commands ====================

    def place_bet(self, phase: RoundPhase, amount=None) -> Dict:
        """
        Place a wager for the upcoming flight.

        Args:
            phase: Current round phase
            amount: Wager; defaults to the selected stake

        Returns:
            Dict with success flag, and the amount and new balance on success
        """
        try:
            value = self.stake if amount is None else parse_amount(amount, MONEY_PLACES)
        except InvalidAmountError as e:
            return {"success": False, "error": e.reason}
        if value < self.min_stake:
            return {"success": False, "error": f"Minimum bet is {self.min_stake}"}

        if phase is not RoundPhase.WAITING:
            return {"success": False, "error": "Bets are only accepted before takeoff"}
        if self.bet.status is BetStatus.PLACED:
            return {"success": False, "error": "A bet is already placed"}
        if self.balance < value:
            return {"success": False, "error": "Insufficient balance"}

        self.balance -= value
        self.bet = Bet(amount=value, status=BetStatus.PLACED)

        return {"success": True, "amount": value, "balance": self.balance}

    def cash_out(self, phase: RoundPhase, multiplier: Decimal) -> Dict:
        """Lock in amount x multiplier for the riding bet."""
        if self.bet.status is not BetStatus.PLACED:
            return {"success": False, "error": "No active bet to cash out"}
        if phase is not RoundPhase.FLYING:
            return {"success": False, "error": "Cash out is only possible in flight"}

        payout = self.bet.amount * multiplier
        self.balance += payout
        self.bet = replace(self.bet, status=BetStatus.CASHED_OUT, cash_out_multiplier=multiplier)

        return {
            "success": True,
            "multiplier": multiplier,
            "payout": payout,
            "balance": self.balance,
        }

    def adjust_stake(self, delta) -> Dict:
        """Move the selected stake by delta, never below the minimum stake."""
        try:
            change = parse_delta(delta, MONEY_PLACES)
        except InvalidAmountError as e:
            return {"success": False, "error": e.reason}

        self.stake = max(self.min_stake, self.stake + change)
        return {"success": True, "stake": self.stake}

    # ==================== Settlement ====================

    def settle_crash(self) -> Optional[Bet]:
        """Forfeit a bet still riding at the crash. Returns the lost bet, if any."""
        if self.bet.status is not BetStatus.PLACED:
            return None
        # Amount was debited at placement; nothing to move
        self.bet = replace(self.bet, status=BetStatus.LOST)
        return self.bet

    def clear_settled(self) -> None:
        """Forget a finished bet once the next round starts waiting."""
        if self.bet.is_settled:
            self.bet = NO_BET

    def display_value(self, multiplier: Decimal) -> Decimal:
        """What the riding bet would pay right now; informational only."""
        if self.bet.status is not BetStatus.PLACED:
            return Decimal("0")
        return self.bet.amount * multiplier
