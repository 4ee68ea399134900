"""Database tables / schema"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Enum, ForeignKey, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from chessbot.core.shared_types import Color, Termination


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class DBUser(Base):
    __tablename__ = "users"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=False)


class DBGame(Base):
    __tablename__ = "games"
    id: Mapped[int] = mapped_column(primary_key=True)
    white_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), index=True)
    black_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), index=True)
    ended: Mapped[bool] = mapped_column(default=False, index=True)
    winner: Mapped[Optional[Color]] = mapped_column(
        Enum(Color, native_enum=False, values_callable=lambda e: [c.value for c in e])
    )
    termination: Mapped[Optional[Termination]] = mapped_column(
        Enum(Termination, native_enum=False, values_callable=lambda e: [t.value for t in e])
    )
    fen: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(default=utc_now, onupdate=utc_now)


class DBMove(Base):
    __tablename__ = "moves"
    game_id: Mapped[int] = mapped_column(ForeignKey("games.id"), primary_key=True)
    ply: Mapped[int] = mapped_column(primary_key=True, autoincrement=False)
    notation: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(default=utc_now)
