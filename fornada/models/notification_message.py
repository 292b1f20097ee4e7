"""Canned notification messages."""

from sqlalchemy import Column, Integer, Text

from fornada.database import Base


class NotificationMessage(Base):
    """A filler message picked at random when a notification has no explicit text."""

    __tablename__ = "notification_messages"

    id = Column(Integer, primary_key=True, index=True)
    message = Column(Text, nullable=False)
