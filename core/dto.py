"""
Data Transfer Objects (DTOs).
Used for passing data between layers without exposing domain models.
"""
from dataclasses import dataclass, field, asdict
from typing import Optional, List, Dict, Any
from decimal import Decimal
from datetime import date


@dataclass(frozen=True)
class BillingPeriod:
    """A billing month"""
    month: int
    year: int

    def __post_init__(self):
        if not 1 <= self.month <= 12:
            from core.exceptions import ValidationError
            raise ValidationError(
                message=f"Invalid billing month: {self.month}",
                code="INVALID_PERIOD",
            )

    @classmethod
    def from_date(cls, value: date) -> 'BillingPeriod':
        return cls(month=value.month, year=value.year)

    @property
    def label(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


@dataclass(frozen=True)
class PriceBreakdown:
    """Itemized components of a room's monthly charge"""
    base_price: Decimal = Decimal('0')
    floor_rate: Decimal = Decimal('0')
    additional_services: Decimal = Decimal('0')
    special_items: Decimal = Decimal('0')
    water: Decimal = Decimal('0')
    electricity: Decimal = Decimal('0')

    def components(self) -> List[Decimal]:
        return [
            self.base_price,
            self.floor_rate,
            self.additional_services,
            self.special_items,
            self.water,
            self.electricity,
        ]

    def as_dict(self) -> Dict[str, Decimal]:
        return asdict(self)


@dataclass(frozen=True)
class PriceResult:
    """Output of the price calculator"""
    total: Decimal
    breakdown: PriceBreakdown
    configuration_missing: bool = False

    def as_dict(self) -> Dict[str, Any]:
        return {
            'total': self.total,
            'breakdown': self.breakdown.as_dict(),
            'configuration_missing': self.configuration_missing,
        }


@dataclass
class ServiceResult:
    """Uniform { success, data?, error? } envelope returned by exposed operations"""
    success: bool
    data: Any = None
    error: Optional[str] = None
    code: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    # HTTP status an API layer should answer with
    status_code: int = 200

    @classmethod
    def ok(cls, data=None) -> 'ServiceResult':
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, code: str = None, details: Dict[str, Any] = None,
             status_code: int = 400) -> 'ServiceResult':
        return cls(success=False, error=error, code=code, details=details or {}, status_code=status_code)

    def as_dict(self) -> Dict[str, Any]:
        payload = {'success': self.success}
        if self.success:
            payload['data'] = self.data
        else:
            payload['error'] = self.error
            payload['code'] = self.code
            if self.details:
                payload['details'] = self.details
        return payload


@dataclass
class BatchFailure:
    """One room that could not be billed in a batch run"""
    room_id: int
    room_number: str
    error: str
    code: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class BatchResult:
    """Per-room outcome of batch bill creation"""
    created: List[Any] = field(default_factory=list)
    failed: List[BatchFailure] = field(default_factory=list)

    @property
    def created_count(self) -> int:
        return len(self.created)

    @property
    def failed_count(self) -> int:
        return len(self.failed)


@dataclass
class SweepResult:
    """Outcome of one overdue sweep"""
    updated_count: int = 0
    bill_ids: List[int] = field(default_factory=list)
