from sqlalchemy import Column, Integer, String, DateTime, JSON, ForeignKey, func
from core.db import Base

class BorrowRequest(Base):
    __tablename__ = "borrow_requests"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=True)
    car_id = Column(Integer, ForeignKey("cars.id"), nullable=True)
    start_date = Column(String, nullable=True)
    start_time = Column(String, nullable=True)
    end_date = Column(String, nullable=True)
    end_time = Column(String, nullable=True)
    status = Column(String, nullable=True)  # 'PENDING' | 'APPROVED' | 'REJECTED' | 'EXECUTED'
    total_amount = Column(String, nullable=True)
    price_per_day = Column(String, nullable=True)
    contract_url = Column(String, nullable=True)
    options = Column(JSON, nullable=True)
    customer_first_name = Column(String, nullable=True)
    customer_last_name = Column(String, nullable=True)
    customer_email = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
