"""
Product model for items the bakery sells.

Products are read-only inputs for costing and feasibility: their sale
price drives revenue and margin figures of a production plan.
"""

from decimal import Decimal

from sqlalchemy import Boolean, Column, DateTime, Index, Numeric, String, Text

from .base import BaseModel
from bakery_control.utils.datetime_utils import utc_now


class Product(BaseModel):
    """
    Product model.

    Attributes:
        name: Unique product name
        description: Optional description
        category: Product category (e.g., "Bread", "Pastry")
        sale_price: Price per unit sold
        production_cost: Last computed production cost per unit
        profit_margin: Last computed margin percentage
        creation_date: When the product was created
        is_active: False once the product is retired (soft delete)
    """

    __tablename__ = "products"

    name = Column(String(200), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True, index=True)
    sale_price = Column(Numeric(18, 2), nullable=False, default=Decimal("0.00"))
    production_cost = Column(Numeric(18, 2), nullable=False, default=Decimal("0.00"))
    profit_margin = Column(Numeric(18, 2), nullable=False, default=Decimal("0.00"))
    creation_date = Column(DateTime, nullable=False, default=utc_now)
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (Index("idx_product_name", "name"),)
