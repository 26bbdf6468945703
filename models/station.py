from sqlalchemy import Column, String, Float, DateTime, Index
from sqlalchemy.orm import relationship
from models.base import Base


class Station(Base):
    """
    A docking station, keyed by the feed's station identifier.

    Purpose:
    - Created implicitly the first time a ride references its id
    - Never deleted by the importer

    Design:
    - first_seen_at / last_seen_at only widen as observations arrive
    - name and coordinates are only overwritten by non-empty incoming values
    """
    __tablename__ = "stations"

    station_id = Column(String(64), primary_key=True)

    name = Column(String(256), nullable=True)
    lat = Column(Float, nullable=True)
    lng = Column(Float, nullable=True)

    first_seen_at = Column(DateTime, nullable=False)
    last_seen_at = Column(DateTime, nullable=False)

    # Relationships
    start_rides = relationship("Ride", foreign_keys="Ride.start_station_id", back_populates="start_station")
    end_rides = relationship("Ride", foreign_keys="Ride.end_station_id", back_populates="end_station")

    __table_args__ = (
        Index("idx_station_name", "name"),
    )

    def __repr__(self) -> str:
        return f"<Station {self.station_id} {self.name!r}>"
