from sqlalchemy import Column, DateTime, Float, Integer, Text
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    pass


class Location(Base):
    __tablename__ = "locations"
    # AUTOINCREMENT keeps SQLite from handing out the id of a deleted max row.
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    location_name = Column(Text, nullable=False, comment="Place name as supplied by the caller")
    articles = Column(Text, nullable=False, comment="JSON array of Wikipedia article URLs")
    created_at = Column(DateTime, server_default=func.current_timestamp())

    def __repr__(self) -> str:
        return f"<Location id={self.id} name={self.location_name!r}>"
