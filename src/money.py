from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

PRECISION = 4
_QUANTUM = Decimal(1).scaleb(-PRECISION)


@dataclass(frozen=True, order=True)
class Money:
    """
    Exact fixed-point amount with PRECISION fractional digits.
    Values are quantized once on construction, so addition and
    subtraction never drift. Magnitudes are bounded by the decimal context
    (28 significant digits, about 1e23 at this precision); beyond that
    construction raises decimal.InvalidOperation.
    """

    amount: Decimal = Decimal(0)

    def __post_init__(self):
        amount = self.amount
        if not isinstance(amount, Decimal):
            amount = Decimal(str(amount))
        object.__setattr__(self, "amount", amount.quantize(_QUANTUM, rounding=ROUND_HALF_UP))

    @classmethod
    def zero(cls) -> "Money":
        return cls(Decimal(0))

    @classmethod
    def parse(cls, text: str) -> "Money":
        """Build Money from input text. Raises ValueError on anything that is not a finite number."""
        # Decimal() would also take "1_0" and non-ASCII digits
        if not text.isascii() or "_" in text:
            raise ValueError(f"invalid amount: {text!r}")
        try:
            amount = Decimal(text)
            if not amount.is_finite():
                raise ValueError(f"non-finite amount: {text!r}")
            return cls(amount)
        except InvalidOperation:
            raise ValueError(f"invalid amount: {text!r}")

    def __add__(self, other: "Money") -> "Money":
        return Money(self.amount + other.amount)

    def __sub__(self, other: "Money") -> "Money":
        return Money(self.amount - other.amount)

    def __neg__(self) -> "Money":
        return Money(-self.amount)

    def is_negative(self) -> bool:
        return self.amount < 0

    def format(self) -> str:
        """Render without trailing zeros, e.g. 1.5000 -> 1.5 and 100.0000 -> 100."""
        if self.amount == 0:
            return "0"
        return f"{self.amount.normalize():f}"

    def __str__(self) -> str:
        return f"{self.amount:f}"

    def __repr__(self) -> str:
        return f"Money({self})"

