# Alembic will detect models here
from .vehicle import Car
from .rental import Rental
from .borrow_request import BorrowRequest
