from sqlalchemy import Table, Column, String, Integer, DateTime, JSON, MetaData, ForeignKey
from sqlalchemy.sql import func

metadata = MetaData()


orders_tbl = Table(
    "orders",
    metadata,
    Column("id", String, primary_key=True),
    # Строка, а не Enum: в старых записях встречаются active/printed
    Column("status", String(32), nullable=False, index=True),
    Column("user_id", String, nullable=False, default="guest"),
    # NULL у завершенных заказов, поэтому индекс держит уникальность только живых кодов
    Column("pickup_code", String(6), nullable=True, unique=True),
    Column("print_settings", JSON, nullable=False),
    Column("amount", Integer, nullable=False),
    Column("total_pages", Integer, nullable=False),
    Column("payment_ref", String, nullable=True),
    Column("payment_id", String, nullable=True),
    Column("reprint_of", String, nullable=True),
    Column("detached_asset_refs", JSON, nullable=False, default=list),
    Column("version", Integer, nullable=False, default=0),
    Column("created_at", DateTime(timezone=True), server_default=func.now(), index=True),
    Column("expires_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), server_default=func.now()),
    Column("printed_at", DateTime(timezone=True), nullable=True),
    Column("reclaim_started_at", DateTime(timezone=True), nullable=True),
    Column("reclaimed_at", DateTime(timezone=True), nullable=True),
)


# Индекс ссылок на файлы для SharedAssetGuard
order_assets_tbl = Table(
    "order_assets",
    metadata,
    Column("order_id", String, ForeignKey("orders.id", ondelete="CASCADE"), primary_key=True),
    Column("position", Integer, primary_key=True),
    Column("asset_ref", String, nullable=False, index=True),
)
