from __future__ import annotations

from sqlalchemy import JSON, CheckConstraint, Float, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class PharmacyStore(Base):
    __tablename__ = "pharmacy_stores"

    # Autoincrement ids preserve registration order, which search uses for tie-breaks
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    store_name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str] = mapped_column(String(512), nullable=False, default="")
    lat: Mapped[float] = mapped_column(Float, nullable=False)
    lng: Mapped[float] = mapped_column(Float, nullable=False)

    inventory: Mapped[list["InventoryItem"]] = relationship(
        back_populates="store",
        order_by="InventoryItem.id",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_pharmacy_store_name", "store_name"),
    )


class InventoryItem(Base):
    __tablename__ = "inventory_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    store_id: Mapped[int] = mapped_column(ForeignKey("pharmacy_stores.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    brands: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    store: Mapped[PharmacyStore] = relationship(back_populates="inventory")

    __table_args__ = (
        UniqueConstraint("store_id", "name", name="uq_inventory_store_medicine"),
        CheckConstraint("stock >= 0", name="ck_inventory_stock_non_negative"),
        Index("ix_inventory_store_id", "store_id"),  # FK index for JOINs
    )


__all__ = ["PharmacyStore", "InventoryItem"]
