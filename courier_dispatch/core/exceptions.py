# courier_dispatch/core/exceptions.py
"""Domain exceptions for the dispatch engine.

Services raise these; the HTTP layer maps them to status codes in
core/middleware.py.

Exception Hierarchy:
    DispatchError
    ├── NotFoundError
    │   ├── UserNotFound
    │   ├── AddressNotFound
    │   ├── CourierNotFound
    │   ├── PackageNotFound
    │   └── DeliveryNotFound
    ├── InvalidStateError
    │   ├── PackageNotAvailable
    │   ├── PackageLocked
    │   ├── InvalidTransition
    │   ├── CourierUnavailable
    │   ├── RouteNotSet
    │   ├── OwnPackage
    │   ├── AlreadyCourier
    │   ├── LiveLocationUnavailable
    │   └── UntrackableState
    ├── GeocodingFailed
    ├── InvalidCoordinate
    ├── InvalidRadius
    └── ConsistencyError
        ├── PackageLinkMissing
        └── PackageStatusDrift
"""


class DispatchError(Exception):
    """Base exception for all dispatch engine errors."""

    error_code = "dispatch_error"
    retryable = False


class NotFoundError(DispatchError):
    """A referenced entity does not exist."""

    error_code = "not_found"

    def __init__(self, entity: str, identifier):
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} {identifier} not found")


class UserNotFound(NotFoundError):
    error_code = "user_not_found"

    def __init__(self, user_id: int):
        super().__init__("User", user_id)


class AddressNotFound(NotFoundError):
    error_code = "address_not_found"

    def __init__(self, address_id: int):
        super().__init__("Address", address_id)


class CourierNotFound(NotFoundError):
    """Raised when a courier id is unknown or a user never onboarded as courier."""

    error_code = "courier_not_found"

    def __init__(self, identifier, by_user: bool = False):
        self.by_user = by_user
        super().__init__("Courier for user" if by_user else "Courier", identifier)


class PackageNotFound(NotFoundError):
    error_code = "package_not_found"

    def __init__(self, package_id: int):
        super().__init__("Package", package_id)


class DeliveryNotFound(NotFoundError):
    error_code = "delivery_not_found"

    def __init__(self, delivery_id: int):
        super().__init__("Delivery", delivery_id)


class InvalidStateError(DispatchError):
    """A status precondition does not hold."""

    error_code = "invalid_state"


class PackageNotAvailable(InvalidStateError):
    """Raised when a package is no longer pending (already claimed or finished)."""

    error_code = "package_not_available"

    def __init__(self, package_id: int, status: str = None):
        self.package_id = package_id
        self.status = status
        detail = f" (status: {status})" if status else ""
        super().__init__(f"Package {package_id} is not available for assignment{detail}")


class PackageLocked(InvalidStateError):
    """Raised when a package is edited or deleted after it left pending."""

    error_code = "package_locked"

    def __init__(self, package_id: int, status: str = None):
        self.package_id = package_id
        self.status = status
        detail = f" (status: {status})" if status else ""
        super().__init__(f"Package {package_id} can no longer be changed{detail}")


class InvalidTransition(InvalidStateError):
    error_code = "invalid_transition"

    def __init__(self, delivery_id: int, current: str, target: str):
        self.delivery_id = delivery_id
        self.current = current
        self.target = target
        super().__init__(f"Delivery {delivery_id}: transition {current} -> {target} is not allowed")


class CourierUnavailable(InvalidStateError):
    error_code = "courier_unavailable"

    def __init__(self, courier_id: int):
        self.courier_id = courier_id
        super().__init__(f"Courier {courier_id} is not available")


class RouteNotSet(InvalidStateError):
    error_code = "route_not_set"

    def __init__(self, courier_id: int):
        self.courier_id = courier_id
        super().__init__(f"Courier {courier_id} must have a start and destination address set")


class OwnPackage(InvalidStateError):
    error_code = "own_package"

    def __init__(self, package_id: int, courier_id: int):
        self.package_id = package_id
        self.courier_id = courier_id
        super().__init__(f"Courier {courier_id} cannot deliver their own package {package_id}")


class AlreadyCourier(InvalidStateError):
    error_code = "already_courier"

    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(f"User {user_id} is already a courier")


class LiveLocationUnavailable(InvalidStateError):
    error_code = "live_location_unavailable"

    def __init__(self, courier_id: int):
        self.courier_id = courier_id
        super().__init__(f"Courier {courier_id} has not reported a location yet")


class UntrackableState(InvalidStateError):
    error_code = "untrackable_state"

    def __init__(self, entity: str, identifier: int, status: str):
        self.entity = entity
        self.identifier = identifier
        self.status = status
        super().__init__(f"{entity} {identifier} cannot be tracked in status '{status}'")


class GeocodingFailed(DispatchError):
    """The geocoder errored, timed out or returned no usable coordinates.

    Safe to retry: nothing is written when this is raised.
    """

    error_code = "geocoding_failed"
    retryable = True

    def __init__(self, address: str, reason: str):
        self.address = address
        self.reason = reason
        super().__init__(f"Geocoding failed for '{address}': {reason}")


class InvalidCoordinate(DispatchError):
    error_code = "invalid_coordinate"

    def __init__(self, value, reason: str = "latitude and longitude are required"):
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid coordinate {value!r}: {reason}")


class InvalidRadius(DispatchError):
    error_code = "invalid_radius"

    def __init__(self, name: str, value):
        self.name = name
        self.value = value
        super().__init__(f"{name} must be a positive number of kilometers, got {value!r}")


class ConsistencyError(DispatchError):
    """Stored rows contradict each other. Never patched silently."""

    error_code = "consistency_error"


class PackageLinkMissing(ConsistencyError):
    error_code = "package_link_missing"

    def __init__(self, delivery_id: int, package_id: int):
        self.delivery_id = delivery_id
        self.package_id = package_id
        super().__init__(f"Delivery {delivery_id} references missing package {package_id}")


class PackageStatusDrift(ConsistencyError):
    error_code = "package_status_drift"

    def __init__(self, package_id: int, expected: str, actual: str):
        self.package_id = package_id
        self.expected = expected
        self.actual = actual
        super().__init__(f"Package {package_id} is '{actual}', expected '{expected}'")
