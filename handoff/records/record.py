from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal


@dataclass(frozen=True)
class Record:
    """One sales row. Equality uses product id, sale date and amount only."""
    product_id: str
    product_name: str = field(compare=False)
    category: str = field(compare=False)
    sale_date: date
    amount: Decimal
    quantity: int = field(compare=False)
    region: str = field(compare=False)
    sales_rep: str = field(compare=False)

    def __post_init__(self) -> None:
        if not self.product_id or not self.product_id.strip():
            raise ValueError("Product ID cannot be empty")
        if not self.product_name or not self.product_name.strip():
            raise ValueError("Product name cannot be empty")
        if self.sale_date is None:
            raise ValueError("Sale date cannot be empty")
        if self.amount is None or self.amount < 0:
            raise ValueError("Amount must be non-negative")
        if self.quantity < 0:
            raise ValueError("Quantity must be non-negative")
        object.__setattr__(self, "product_id", self.product_id.strip())
        object.__setattr__(self, "product_name", self.product_name.strip())
        # only missing values get a default; a blank cell stays ""
        object.__setattr__(self, "category", "Uncategorized" if self.category is None else self.category.strip())
        object.__setattr__(self, "region", "Unknown" if self.region is None else self.region.strip())
        object.__setattr__(self, "sales_rep", "Unknown" if self.sales_rep is None else self.sales_rep.strip())

    @property
    def total_value(self) -> Decimal:
        return self.amount * self.quantity

    @property
    def year(self) -> int:
        return self.sale_date.year

    @property
    def month(self) -> int:
        return self.sale_date.month
