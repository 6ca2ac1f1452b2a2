from dataclasses import dataclass, replace
from decimal import Decimal


@dataclass(frozen=True)
class Wallet:
    """A user's internal balance plus lifetime earnings (never decreases)."""

    user_id: str
    username: str = ""
    balance: Decimal = Decimal("0")
    total_earnings: Decimal = Decimal("0")
    version: int = 1

    def validate(self) -> None:
        assert self.user_id, "user_id required"
        assert self.balance >= 0, f"balance must not be negative, got {self.balance}"
        assert self.total_earnings >= 0, f"total_earnings must not be negative, got {self.total_earnings}"

    def credited(self, amount: Decimal) -> "Wallet":
        """Return a copy with `amount` added to both the balance and lifetime earnings."""
        return replace(self, balance=self.balance + amount, total_earnings=self.total_earnings + amount)

    def debited(self, amount: Decimal) -> "Wallet":
        return replace(self, balance=self.balance - amount)

    def to_dict(self) -> dict:
        return {
            "userId": self.user_id,
            "username": self.username,
            "balance": str(self.balance),
            "totalEarnings": str(self.total_earnings),
        }
