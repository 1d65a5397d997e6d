from __future__ import annotations


class PosError(RuntimeError):
    """Base error scoped to the single action that raised it."""
    status_code = 400
    code = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


# -----------------------
# Validation: action blocked, draft kept for correction
# -----------------------
class ValidationFailed(PosError):
    status_code = 400
    code = "validation_failed"

class DiscountNotApplicable(ValidationFailed):
    code = "discount_not_applicable"

class PromotionIncompatible(ValidationFailed):
    code = "promotion_incompatible"

class ProductUnavailable(ValidationFailed):
    code = "product_unavailable"

class DeliveryZoneRequired(ValidationFailed):
    code = "delivery_zone_required"

class MissingRestaurant(ValidationFailed):
    code = "missing_restaurant"

class NegativeTotal(ValidationFailed):
    code = "negative_total"

class TotalMismatch(ValidationFailed):
    code = "total_mismatch"

class InvalidCredentials(ValidationFailed):
    code = "invalid_credentials"

class InvalidPolygon(ValidationFailed):
    code = "invalid_polygon"

class RestaurantClosed(ValidationFailed):
    code = "restaurant_closed"


# -----------------------
# Lookup-not-found: caller continues in a degraded state
# -----------------------
class LookupNotFound(PosError):
    status_code = 404
    code = "not_found"

class PromoCodeNotFound(LookupNotFound):
    code = "promo_code_not_found"

class ProductNotFound(LookupNotFound):
    code = "product_not_found"

class RecordNotFound(LookupNotFound):
    code = "record_not_found"

class AddressNotFound(LookupNotFound):
    code = "address_not_found"

class OutsideDeliveryArea(LookupNotFound):
    code = "outside_delivery_area"


# -----------------------
# Conflict: a concurrent write won, retrying the action may succeed
# -----------------------
class Conflict(PosError):
    status_code = 409
    code = "conflict"

class OrderNumberConflict(Conflict):
    code = "order_number_conflict"


# -----------------------
# Upstream: external API failed, nothing was changed
# -----------------------
class UpstreamFailure(PosError):
    status_code = 502
    code = "upstream_failure"

class GeocodingFailed(UpstreamFailure):
    code = "geocoding_failed"

class AIClientError(UpstreamFailure):
    code = "ai_failed"
