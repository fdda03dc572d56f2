"""
ORM models for the takeaway catalog and orders.

Catalog rows (products, variants, modifiers) are read by the menu provider to
build per-turn menu snapshots and re-read by order persistence at finalize
time. Datetimes are stored as naive UTC; money columns hold amounts already
rounded by the pricing rules.
"""
from sqlalchemy import (
    Column,
    Integer,
    String,
    Float,
    Boolean,
    JSON,
    DateTime,
    ForeignKey,
    Text,
    Index,
    func,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    shop_id = Column(Integer, nullable=False, default=1, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False)
    vat_rate = Column(Float, nullable=False, default=0.0)  # e.g. 0.10 for 10%
    is_available = Column(Boolean, nullable=False, default=True)
    # Used when the product has no variants, or an order does not pick one
    stock_quantity = Column(Integer, nullable=False, default=0)

    variants = relationship(
        "ProductVariant",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductVariant.id",
    )
    modifiers = relationship(
        "ProductModifier",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductModifier.id",
    )

    __table_args__ = (
        Index("ix_products_shop_available", "shop_id", "is_available"),
    )


class ProductVariant(Base):
    __tablename__ = "product_variants"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    name = Column(String, nullable=False)  # e.g. "Regular", "Large"
    # Null price/vat falls back to the product's values
    price = Column(Float, nullable=True)
    vat_rate = Column(Float, nullable=True)
    is_default = Column(Boolean, nullable=False, default=False)
    stock_quantity = Column(Integer, nullable=False, default=0)

    product = relationship("Product", back_populates="variants")


class ProductModifier(Base):
    __tablename__ = "product_modifiers"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    name = Column(String, nullable=False)  # e.g. "Extra Cheese"
    price = Column(Float, nullable=False, default=0.0)
    vat_rate = Column(Float, nullable=False, default=0.0)

    product = relationship("Product", back_populates="modifiers")


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    shop_id = Column(Integer, nullable=False, index=True)
    order_channel_id = Column(Integer, nullable=True)
    status = Column(String, nullable=False, default="Received", index=True)
    # Start of the 15-minute pickup slot (naive UTC)
    pickup_at = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    total_amount = Column(Float, nullable=False, default=0.0)
    # Assigned after the row has an id, e.g. ORD-202610181830-000042
    order_code = Column(String, nullable=True, unique=True, index=True)
    notes = Column(Text, nullable=True)

    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")
    audit_logs = relationship("AuditLog", back_populates="order", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_orders_shop_pickup_at", "shop_id", "pickup_at"),
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    product_variant_id = Column(Integer, ForeignKey("product_variants.id"), nullable=True)

    product_name = Column(String, nullable=False)
    variant_name = Column(String, nullable=True)
    modifiers = Column(JSON, nullable=True)  # list of modifier names

    quantity = Column(Integer, nullable=False)
    unit_price = Column(Float, nullable=False)
    subtotal = Column(Float, nullable=False)

    order = relationship("Order", back_populates="items")


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=True, index=True)
    event_type = Column(String, nullable=False)  # OrderCreated, OrderCancelled
    created_at = Column(DateTime, nullable=False)
    payload = Column(Text, nullable=True)  # JSON document

    order = relationship("Order", back_populates="audit_logs")
