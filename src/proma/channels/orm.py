"""SQLAlchemy ORM model for channels."""

import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, LargeBinary, String
from sqlalchemy.orm import Mapped, mapped_column

from proma.conversation.models import utc_now
from proma.storage.base_model import Base


class ChannelModel(Base):
    """ORM model for a configured backend.

    Attributes:
        id: Channel identifier (UUID string)
        name: Display name
        provider: Wire protocol tag
        base_url: API base URL
        api_key_encrypted: Fernet-encrypted API key
        models: Model catalog (JSON list)
        enabled: Enabled flag
        created_at: Creation timestamp
        updated_at: Last modification timestamp
    """

    __tablename__ = "channels"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    provider: Mapped[str] = mapped_column(String(50), nullable=False)
    base_url: Mapped[str] = mapped_column(String(1000), nullable=False)
    api_key_encrypted: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    models: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
