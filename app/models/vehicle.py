from sqlalchemy import Column, Integer, String, Float, DateTime, JSON, func
from sqlalchemy.orm import relationship
from core.db import Base

class Car(Base):
    __tablename__ = "cars"
    id = Column(Integer, primary_key=True, index=True)
    make = Column(String, nullable=False)
    model = Column(String, nullable=False)
    name = Column(String, nullable=True)  # display name, e.g. 'Mercedes-AMG C43'
    year = Column(Integer, nullable=True)
    transmission = Column(String, nullable=True)  # 'Automatic' | 'Manual'
    fuel_type = Column(String, nullable=True)  # 'gasoline' | 'diesel' | 'hybrid' | 'electric'
    status = Column(String, nullable=True)  # 'available' | 'deleted' | ...
    price_per_day = Column(Float, nullable=True)
    image_url = Column(String, nullable=True)
    photo_gallery = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    rentals = relationship("Rental", back_populates="car")
