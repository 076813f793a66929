class RentalDomainError(Exception):
    """Base class for all rental domain errors."""

class VehicleNotFoundError(RentalDomainError):
    """Raised by a direct single-vehicle lookup when the id does not exist."""

    def __init__(self, vehicle_id):
        self.vehicle_id = vehicle_id
        super().__init__(f"Vehicle {vehicle_id} not found.")

class AssetStorageError(RentalDomainError):
    """Raised when the object store cannot be listed or reached."""

class DatabaseQueryError(RentalDomainError):
    """Raised when a database query fails or returns unexpected results."""

class InvalidQueryParametersError(RentalDomainError):
    """Raised when pagination, sorting or filter parameters are invalid."""
