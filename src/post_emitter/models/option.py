"""Key/value installation options."""

from sqlalchemy import VARCHAR, Text
from sqlalchemy.orm import Mapped, mapped_column

from post_emitter.db.session import Base

ENCRYPTION_SECRET_OPTION = "encryption_key"


class Option(Base):
    """Named installation-wide value, e.g. the generated encryption secret."""

    __tablename__ = "options"

    name: Mapped[str] = mapped_column(VARCHAR(191), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
