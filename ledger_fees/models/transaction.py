"""
Transaction Models for Ledger Fees

These models define the wire shapes exchanged with the console, the
fee engine and the ledger transaction service.
They are designed to:
1. Keep every monetary value a decimal string on the wire
2. Accept the camelCase wire names and the Python field names alike
3. Reject negative amounts early (sign lives in debit/credit, never in value)

DESIGN DECISION: The two shapes a calculation result can arrive in are
modelled as a discriminated union (CalculationResult). The variant is
chosen once, where the response is received, so the fee classifier
works on concrete types instead of sniffing dictionaries.
"""

from decimal import Decimal, InvalidOperation
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


def parse_decimal(value: Any) -> Decimal:
    """Parse a wire amount into a Decimal, treating blanks as zero."""
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Not a decimal amount: {value!r}") from e


def format_decimal(value: Decimal) -> str:
    """Serialize a Decimal without exponent notation."""
    return format(value, "f")


def _non_negative_decimal_string(value: Any) -> str:
    amount = parse_decimal(value)
    if not amount.is_finite():
        raise ValueError(f"Amount must be finite, got {value!r}")
    if amount < 0:
        raise ValueError(f"Amount must not be negative, got {value!r}")
    return str(value).strip() if not isinstance(value, Decimal) else format_decimal(value)


class WireModel(BaseModel):
    """Base for models that travel as camelCase JSON."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    def to_wire(self) -> dict:
        """Dump with wire names, dropping unset optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


# =============================================================================
# AMOUNTS AND ACCOUNT ENTRIES
# =============================================================================

class Amount(WireModel):
    """
    A monetary amount.

    `value` stays a decimal string; `operation` (DEBIT/CREDIT) is only
    filled in on fee engine responses.
    """

    asset: Optional[str] = Field(
        default=None,
        description="ISO-4217-like asset code"
    )
    value: str = Field(
        ...,
        description="Non-negative decimal string"
    )
    operation: Optional[str] = Field(
        default=None,
        description="DEBIT or CREDIT, as reported by the fee engine"
    )

    @field_validator('value', mode='before')
    @classmethod
    def validate_value(cls, v: Any) -> str:
        return _non_negative_decimal_string(v)

    @property
    def decimal_value(self) -> Decimal:
        return parse_decimal(self.value)

    @property
    def is_credit(self) -> bool:
        return self.operation is None or self.operation.upper() == "CREDIT"


class Share(WireModel):
    """A percentage share of one side of a transaction."""

    percentage: float = Field(
        ...,
        ge=0,
        le=100,
        description="Share of the side's total, 0..100"
    )

    @property
    def decimal_percentage(self) -> Decimal:
        return parse_decimal(self.percentage)


class AccountEntry(WireModel):
    """
    One participant of a transaction in the canonical wire shape.

    Amounts may arrive wrapped (`amount: {value}`) or bare (`value`);
    console forms use the bare form.
    """

    account_alias: str = Field(
        ...,
        min_length=1,
        description="Human-readable account identifier"
    )
    share: Optional[Share] = None
    amount: Optional[Amount] = None
    value: Optional[str] = Field(
        default=None,
        description="Bare numeric-string amount"
    )
    description: Optional[str] = None
    chart_of_accounts: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    route: Optional[str] = None

    @field_validator('value', mode='before')
    @classmethod
    def validate_value(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        return _non_negative_decimal_string(v)

    @model_validator(mode='after')
    def validate_single_mode(self) -> 'AccountEntry':
        """An entry is either share-based or amount-based, never both."""
        if self.share is not None and (self.amount is not None or self.value is not None):
            raise ValueError(
                f"Account entry {self.account_alias} cannot carry both a share and an amount"
            )
        return self

    @property
    def decimal_amount(self) -> Decimal:
        """Amount of this entry, from the wrapped or the bare representation."""
        if self.amount is not None:
            return self.amount.decimal_value
        return parse_decimal(self.value)

    @property
    def asset(self) -> Optional[str]:
        return self.amount.asset if self.amount is not None else None

    @property
    def fee_source(self) -> Optional[str]:
        """The `metadata.source` tag the fee engine puts on injected fee lines."""
        source = self.metadata.get("source")
        return str(source) if source else None

    def with_amount(self, value: Decimal) -> 'AccountEntry':
        """Copy of this entry carrying `value`, in the representation it already uses."""
        formatted = format_decimal(value)
        if self.amount is not None:
            return self.model_copy(
                update={"amount": self.amount.model_copy(update={"value": formatted})}
            )
        # A share-based entry becomes amount-based once it carries a fixed value.
        return self.model_copy(update={"share": None, "value": formatted})


# =============================================================================
# CONSOLE (USER-FACING) TRANSACTION
# =============================================================================

class TransactionEntry(WireModel):
    """One row of a complex (N:M) transaction form."""

    account_alias: str = Field(..., min_length=1)
    percentage: Optional[float] = Field(default=None, ge=0, le=100)
    value: Optional[str] = None
    description: Optional[str] = None
    chart_of_accounts: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator('value', mode='before')
    @classmethod
    def validate_value(cls, v: Any) -> Optional[str]:
        if v is None or v == "":
            return None
        return _non_negative_decimal_string(v)


class SimplePayload(WireModel):
    """A 1:1 transfer."""

    from_account: str = Field(..., alias="from", min_length=1)
    to_account: str = Field(..., alias="to", min_length=1)


class ComplexPayload(WireModel):
    """An N:M split."""

    source: list[TransactionEntry] = Field(default_factory=list)
    destination: list[TransactionEntry] = Field(default_factory=list)


class ConsoleTransaction(WireModel):
    """
    The transaction as authored in the console.

    Exactly one of `simple` / `complex` is expected; the format
    converter rejects anything else.
    """

    description: str = ""
    asset: str = Field(..., min_length=1)
    value: str
    chart_of_accounts_group_name: Optional[str] = None
    simple: Optional[SimplePayload] = None
    complex: Optional[ComplexPayload] = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator('value', mode='before')
    @classmethod
    def validate_value(cls, v: Any) -> str:
        return _non_negative_decimal_string(v)

    @property
    def decimal_value(self) -> Decimal:
        return parse_decimal(self.value)


# =============================================================================
# FEE ENGINE (CANONICAL WIRE) TRANSACTION
# =============================================================================

class SendSource(WireModel):
    from_: list[AccountEntry] = Field(default_factory=list, alias="from")


class SendDistribute(WireModel):
    to: list[AccountEntry] = Field(default_factory=list)


class Send(WireModel):
    asset: str
    value: str
    source: SendSource = Field(default_factory=SendSource)
    distribute: SendDistribute = Field(default_factory=SendDistribute)

    @field_validator('value', mode='before')
    @classmethod
    def validate_value(cls, v: Any) -> str:
        return _non_negative_decimal_string(v)

    @property
    def decimal_value(self) -> Decimal:
        return parse_decimal(self.value)


class FeeEngineTransaction(WireModel):
    """Canonical transaction shape sent to the fee engine and the ledger."""

    description: str = ""
    route: Optional[str] = None
    chart_of_accounts_group_name: Optional[str] = None
    send: Send
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def source_entries(self) -> list[AccountEntry]:
        return self.send.source.from_

    @property
    def destination_entries(self) -> list[AccountEntry]:
        return self.send.distribute.to


class FeeCalculations(WireModel):
    """Parameters of a fee's application rule."""

    flat_amount: Optional[Decimal] = None
    percentage: Optional[Decimal] = Field(
        default=None,
        description="Percentage of the reference amount, 0..100"
    )


class FeeRule(WireModel):
    """
    A fee definition from the package the fee engine applied.

    `application_rule` is one of flatFee, percentual or maxBetweenTypes;
    maxBetweenTypes charges the larger of the flat amount and the
    percentage of the reference amount.
    """

    fee_id: str
    fee_label: str = "Fee"
    priority: int = 1
    reference_amount: Literal["originalAmount", "afterFeesAmount"] = "originalAmount"
    is_deductible_from: bool = False
    credit_account: Optional[str] = None
    application_rule: Optional[Literal["flatFee", "percentual", "maxBetweenTypes"]] = None
    calculations: Optional[FeeCalculations] = None


class CalculatedTransaction(FeeEngineTransaction):
    """A fee engine transaction after fees were applied."""

    fee_rules: list[FeeRule] = Field(default_factory=list)
    is_deductible_from: Optional[bool] = None
    package_applied_id: Optional[str] = Field(default=None, alias="packageAppliedID")
    package_label: Optional[str] = None


# =============================================================================
# CALCULATION RESULTS (TAGGED UNION)
# =============================================================================

class FeeEngineCalculation(WireModel):
    """Fee engine response: the nested `transaction.send...` shape."""

    kind: Literal["fee_engine"] = "fee_engine"
    transaction: CalculatedTransaction


class LedgerOperation(WireModel):
    """One operation of a transaction as stored by the ledger service."""

    account_alias: str = Field(..., min_length=1)
    asset: Optional[str] = None
    amount: Decimal = Decimal("0")
    description: Optional[str] = None
    chart_of_accounts: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator('amount', mode='before')
    @classmethod
    def unwrap_amount(cls, v: Any) -> Decimal:
        if isinstance(v, dict):
            v = v.get("value")
        return parse_decimal(v)


class LedgerTransactionResult(WireModel):
    """Console-native transaction: flat source/destination operation lists."""

    kind: Literal["ledger"] = "ledger"
    id: Optional[str] = None
    description: Optional[str] = None
    asset: Optional[str] = None
    amount: Optional[Decimal] = None
    source: list[LedgerOperation] = Field(default_factory=list)
    destination: list[LedgerOperation] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator('amount', mode='before')
    @classmethod
    def parse_amount(cls, v: Any) -> Optional[Decimal]:
        if v is None or v == "":
            return None
        return parse_decimal(v)


CalculationResult = Annotated[
    Union[FeeEngineCalculation, LedgerTransactionResult],
    Field(discriminator="kind"),
]
