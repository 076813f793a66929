from sqlalchemy import Column, Integer, String, DateTime, JSON, ForeignKey, func
from sqlalchemy.orm import relationship
from core.db import Base

class Rental(Base):
    __tablename__ = "rentals"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=True)
    car_id = Column(Integer, ForeignKey("cars.id"), nullable=True)
    request_id = Column(Integer, ForeignKey("borrow_requests.id"), nullable=True, index=True)
    # dates are kept as text: rows arrive as 'YYYY-MM-DD' or full ISO instants
    start_date = Column(String, nullable=True)
    start_time = Column(String, nullable=True)
    end_date = Column(String, nullable=True)
    end_time = Column(String, nullable=True)
    rental_status = Column(String, nullable=True)  # 'ACTIVE' | 'COMPLETED' | 'CANCELLED' | 'PENDING'
    total_amount = Column(String, nullable=True)  # numeric text
    price_per_day = Column(String, nullable=True)
    contract_url = Column(String, nullable=True)
    options = Column(JSON, nullable=True)  # mapping or JSON-encoded string
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    car = relationship("Car", back_populates="rentals")
