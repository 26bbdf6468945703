from sqlalchemy import Column, String, Float, DateTime, Enum, ForeignKey, Index
from sqlalchemy.orm import relationship
from models.base import Base, MemberType


class Ride(Base):
    """
    One trip from the feed, keyed by its externally assigned ride id.

    Design Decisions:
    - ended_at >= started_at is enforced before insert; violators never land here
    - Station references are optional and point at stations.station_id;
      the importer writes the referenced stations earlier in the same
      transaction
    - A later import carrying the same ride id only overwrites optional
      fields with present values
    """
    __tablename__ = "rides"

    ride_id = Column(String(64), primary_key=True)
    rideable_type = Column(String(32), nullable=True)

    started_at = Column(DateTime, nullable=False)
    ended_at = Column(DateTime, nullable=False)

    start_station_id = Column(String(64), ForeignKey("stations.station_id"), nullable=True)
    end_station_id = Column(String(64), ForeignKey("stations.station_id"), nullable=True)

    start_lat = Column(Float, nullable=True)
    start_lng = Column(Float, nullable=True)
    end_lat = Column(Float, nullable=True)
    end_lng = Column(Float, nullable=True)

    member_type = Column(Enum(MemberType), nullable=False, default=MemberType.UNKNOWN)

    # Relationships
    start_station = relationship("Station", foreign_keys=[start_station_id], back_populates="start_rides")
    end_station = relationship("Station", foreign_keys=[end_station_id], back_populates="end_rides")

    # Indexes for the reporting queries
    __table_args__ = (
        Index("idx_ride_started", "started_at"),
        Index("idx_ride_start_station_started", "start_station_id", "started_at"),
        Index("idx_ride_end_station_started", "end_station_id", "started_at"),
    )

    @property
    def duration_seconds(self) -> int:
        return int((self.ended_at - self.started_at).total_seconds())

    def __repr__(self) -> str:
        return f"<Ride {self.ride_id} {self.started_at} -> {self.ended_at}>"
