"""
Sale model for product sales.

Sales are read-only inputs to the production engine; they feed the
simple sales reports of the sale repository.
"""

from decimal import Decimal

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, Numeric, String

from .base import BaseModel
from .enums import PaymentMethod
from bakery_control.utils.datetime_utils import utc_now


class Sale(BaseModel):
    """
    Sale model.

    Attributes:
        product_id: Product sold
        quantity: Units sold
        unit_price: Price per unit at the time of sale
        total_price: quantity x unit_price
        sale_date: When the sale happened
        customer_name: Optional customer
        invoice_number: Invoice reference (YYYYMMDD-NNNN when generated)
        payment_method: One of PaymentMethod values
    """

    __tablename__ = "sales"

    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(18, 2), nullable=False)
    total_price = Column(Numeric(18, 2), nullable=False, default=Decimal("0.00"))
    sale_date = Column(DateTime, nullable=False, default=utc_now)
    customer_name = Column(String(200), nullable=True)
    invoice_number = Column(String(50), nullable=True)
    payment_method = Column(String(20), nullable=False, default=PaymentMethod.CASH.value)

    __table_args__ = (
        Index("idx_sale_date", "sale_date"),
        Index("idx_sale_product", "product_id"),
    )

    def calculate_total(self) -> Decimal:
        """Set and return total_price = quantity x unit_price."""
        self.total_price = Decimal(self.quantity or 0) * Decimal(str(self.unit_price or 0))
        return self.total_price

    def __repr__(self) -> str:
        return (
            f"Sale(id={self.id}, product_id={self.product_id}, "
            f"quantity={self.quantity}, total_price={self.total_price})"
        )
