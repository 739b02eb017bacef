"""
Canteen Service — Document DB model

One table holds every collection (orders, menu, users, accounts,
revoked_tokens). Field payloads are schemaless JSON; timestamps are
assigned by the database, never by the writer.
"""
import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from canteen.db.database import Base


class Document(Base):
    __tablename__ = "documents"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    collection: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    data: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def to_dict(self) -> dict:
        return {**self.data, "id": self.id, "createdAt": self.created_at, "updatedAt": self.updated_at}

    def __repr__(self) -> str:
        return f"<Document {self.collection}/{self.id}>"
