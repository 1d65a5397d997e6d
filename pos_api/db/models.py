import enum
import uuid
from sqlalchemy import (
    Column, Integer, String, DateTime, Time, Boolean, ForeignKey,
    Enum, Numeric, JSON, Table, UniqueConstraint, Index
)
from sqlalchemy.orm import relationship
from pos_api.db.base import Base

def new_id() -> str:
    return str(uuid.uuid4())

# -----------------------
# Enums
# -----------------------
class OrderType(str, enum.Enum):
    DINE_IN = "DINE_IN"
    TAKEAWAY = "TAKEAWAY"
    DELIVERY = "DELIVERY"
    BANQUET = "BANQUET"

class AdjustmentType(str, enum.Enum):
    FIXED = "FIXED"
    PERCENTAGE = "PERCENTAGE"

class OrderStatus(str, enum.Enum):
    CREATED = "CREATED"
    CONFIRMED = "CONFIRMED"
    PREPARING = "PREPARING"
    READY = "READY"
    DELIVERING = "DELIVERING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

class PaymentMethod(str, enum.Enum):
    CASH = "CASH"
    CARD = "CARD"
    CASH_TO_COURIER = "CASH_TO_COURIER"
    CARD_TO_COURIER = "CARD_TO_COURIER"

class PaymentProvider(str, enum.Enum):
    YOOKASSA = "YOOKASSA"
    CLOUDPAYMENTS = "CLOUDPAYMENTS"
    SBERBANK = "SBERBANK"
    ALFABANK = "ALFABANK"
    SBP = "SBP"
    TINKOFF = "TINKOFF"

# -----------------------
# Association tables
# -----------------------
product_additive = Table(
    "product_additive",
    Base.metadata,
    Column("product_id", String(36), ForeignKey("product.id"), primary_key=True),
    Column("additive_id", String(36), ForeignKey("additive.id"), primary_key=True),
)

discount_restaurant = Table(
    "discount_restaurant",
    Base.metadata,
    Column("discount_id", String(36), ForeignKey("discount.id"), primary_key=True),
    Column("restaurant_id", String(36), ForeignKey("restaurant.id"), primary_key=True),
)

surcharge_restaurant = Table(
    "surcharge_restaurant",
    Base.metadata,
    Column("surcharge_id", String(36), ForeignKey("surcharge.id"), primary_key=True),
    Column("restaurant_id", String(36), ForeignKey("restaurant.id"), primary_key=True),
)

# -----------------------
# Master
# -----------------------
class Network(Base):
    __tablename__ = "network"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(128), nullable=False)
    created_at = Column(DateTime, nullable=False)

    restaurants = relationship("Restaurant", back_populates="network")
    products = relationship("Product", back_populates="network")

class Restaurant(Base):
    __tablename__ = "restaurant"

    id = Column(String(36), primary_key=True, default=new_id)
    network_id = Column(String(36), ForeignKey("network.id"), nullable=False)
    title = Column(String(128), nullable=False)
    address = Column(String(256))
    # offset of the restaurant's wall clock from UTC; working hours are local
    utc_offset_minutes = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False)

    network = relationship("Network", back_populates="restaurants")
    delivery_zones = relationship("DeliveryZone", back_populates="restaurant", cascade="all, delete-orphan")
    payment_integrations = relationship("PaymentIntegration", back_populates="restaurant", cascade="all, delete-orphan")
    working_hours = relationship(
        "RestaurantWorkingHours",
        back_populates="restaurant",
        cascade="all, delete-orphan",
        order_by="RestaurantWorkingHours.weekday",
    )

    __table_args__ = (
        Index("ix_restaurant_network", "network_id"),
    )

class RestaurantWorkingHours(Base):
    __tablename__ = "restaurant_working_hours"

    id = Column(Integer, primary_key=True, autoincrement=True)
    restaurant_id = Column(String(36), ForeignKey("restaurant.id"), nullable=False)
    weekday = Column(Integer, nullable=False)  # 0 = Monday
    is_working = Column(Boolean, nullable=False, default=True)
    open_time = Column(Time)
    close_time = Column(Time)

    restaurant = relationship("Restaurant", back_populates="working_hours")

    __table_args__ = (
        UniqueConstraint("restaurant_id", "weekday", name="uq_restaurant_working_hours_day"),
    )

class Additive(Base):
    __tablename__ = "additive"

    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String(128), nullable=False)
    price = Column(Numeric(12, 2), nullable=False)

class Product(Base):
    __tablename__ = "product"

    id = Column(String(36), primary_key=True, default=new_id)
    network_id = Column(String(36), ForeignKey("network.id"), nullable=False)
    title = Column(String(128), nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False)

    network = relationship("Network", back_populates="products")
    restaurant_prices = relationship("ProductRestaurantPrice", back_populates="product", cascade="all, delete-orphan")
    additives = relationship("Additive", secondary=product_additive)

    __table_args__ = (
        Index("ix_product_network_active", "network_id", "active"),
    )

class ProductRestaurantPrice(Base):
    __tablename__ = "product_restaurant_price"

    id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(String(36), ForeignKey("product.id"), nullable=False)
    restaurant_id = Column(String(36), ForeignKey("restaurant.id"), nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    is_stop_list = Column(Boolean, nullable=False, default=False)

    product = relationship("Product", back_populates="restaurant_prices")

    __table_args__ = (
        UniqueConstraint("product_id", "restaurant_id", name="uq_product_restaurant_price"),
    )

class DeliveryZone(Base):
    __tablename__ = "delivery_zone"

    id = Column(String(36), primary_key=True, default=new_id)
    restaurant_id = Column(String(36), ForeignKey("restaurant.id"), nullable=False)
    title = Column(String(128), nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    min_order = Column(Numeric(12, 2))
    polygon = Column(String, nullable=False)  # WKT: POLYGON((lng lat, ...))
    priority = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False)

    restaurant = relationship("Restaurant", back_populates="delivery_zones")

    __table_args__ = (
        Index("ix_delivery_zone_restaurant_priority", "restaurant_id", "priority"),
    )

# -----------------------
# Promotions
# -----------------------
class Surcharge(Base):
    __tablename__ = "surcharge"

    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String(128), nullable=False)
    description = Column(String(512))
    type = Column(Enum(AdjustmentType), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    order_types = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True)
    start_date = Column(DateTime)
    end_date = Column(DateTime)
    created_at = Column(DateTime, nullable=False)

    restaurants = relationship("Restaurant", secondary=surcharge_restaurant)

class Discount(Base):
    __tablename__ = "discount"

    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String(128), nullable=False)
    description = Column(String(512))
    type = Column(Enum(AdjustmentType), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    min_order_amount = Column(Numeric(12, 2))
    max_order_amount = Column(Numeric(12, 2))
    order_types = Column(JSON, nullable=False, default=list)
    code = Column(String(64), unique=True)
    is_active = Column(Boolean, nullable=False, default=True)
    start_date = Column(DateTime)
    end_date = Column(DateTime)
    max_uses = Column(Integer)
    current_uses = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False)

    restaurants = relationship("Restaurant", secondary=discount_restaurant)

# -----------------------
# Customers / Orders
# -----------------------
class Customer(Base):
    __tablename__ = "customer"

    id = Column(String(36), primary_key=True, default=new_id)
    phone = Column(String(32), nullable=False, unique=True)
    name = Column(String(128))
    created_at = Column(DateTime, nullable=False)

class Order(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=new_id)
    restaurant_id = Column(String(36), ForeignKey("restaurant.id"), nullable=False)
    number = Column(Integer, nullable=False)
    type = Column(Enum(OrderType), nullable=False)
    status = Column(Enum(OrderStatus), nullable=False)
    payment_method = Column(Enum(PaymentMethod))

    base_price = Column(Numeric(12, 2), nullable=False)
    total = Column(Numeric(12, 2), nullable=False)
    savings = Column(Numeric(12, 2), nullable=False)

    delivery_address = Column(String(512))
    delivery_zone_id = Column(String(36), ForeignKey("delivery_zone.id"))
    delivery_price = Column(Numeric(12, 2))
    customer_id = Column(String(36), ForeignKey("customer.id"))
    comment = Column(String(1024))
    number_of_people = Column(Integer)
    table_number = Column(Integer)
    scheduled_at = Column(DateTime)
    created_at = Column(DateTime, nullable=False)

    customer = relationship("Customer")
    delivery_zone = relationship("DeliveryZone")
    lines = relationship("OrderLine", back_populates="order", cascade="all, delete-orphan")
    surcharges = relationship("OrderSurcharge", back_populates="order", cascade="all, delete-orphan")
    discounts = relationship("OrderDiscount", back_populates="order", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("restaurant_id", "number", name="uq_order_restaurant_number"),
        Index("ix_order_restaurant_created", "restaurant_id", "created_at"),
    )

class OrderLine(Base):
    __tablename__ = "order_line"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=False)
    product_id = Column(String(36), ForeignKey("product.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    additive_ids = Column(JSON, nullable=False, default=list)
    additives_price = Column(Numeric(12, 2), nullable=False)
    line_total = Column(Numeric(12, 2), nullable=False)
    comment = Column(String(512))

    order = relationship("Order", back_populates="lines")
    product = relationship("Product")

    __table_args__ = (
        Index("ix_order_line_order", "order_id"),
    )

class OrderSurcharge(Base):
    __tablename__ = "order_surcharge"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=False)
    surcharge_id = Column(String(36), ForeignKey("surcharge.id"), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    description = Column(String(128))

    order = relationship("Order", back_populates="surcharges")

class OrderDiscount(Base):
    __tablename__ = "order_discount"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=False)
    discount_id = Column(String(36), ForeignKey("discount.id"), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    description = Column(String(128))

    order = relationship("Order", back_populates="discounts")

# -----------------------
# Payments
# -----------------------
class PaymentIntegration(Base):
    __tablename__ = "payment_integration"

    id = Column(String(36), primary_key=True, default=new_id)
    restaurant_id = Column(String(36), ForeignKey("restaurant.id"), nullable=False)
    name = Column(String(128), nullable=False)
    provider = Column(Enum(PaymentProvider), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    is_test_mode = Column(Boolean, nullable=False, default=False)
    credentials = Column(JSON, nullable=False, default=dict)
    webhook_url = Column(String(512))
    success_url = Column(String(512))
    fail_url = Column(String(512))
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    restaurant = relationship("Restaurant", back_populates="payment_integrations")

    __table_args__ = (
        Index("ix_payment_integration_restaurant", "restaurant_id"),
    )
