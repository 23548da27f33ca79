class ServiceError(Exception):
    """Base for refusals a caller can show to the user as-is."""

    message = "Something went wrong. Please try again."
    status_code = 400

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


# Validation


class InvalidHandle(ServiceError):
    message = "Please enter your Telegram username."


class InvalidGiveaway(ServiceError):
    message = "Giveaway data is invalid."


class InvalidOrder(ServiceError):
    message = "Order data is invalid."


class InvalidSellRequest(ServiceError):
    message = "Please fill in all required fields."


class InvalidProduct(ServiceError):
    message = "Product data is invalid."


# Business rules


class GiveawayNotFound(ServiceError):
    message = "Giveaway not found."
    status_code = 404


class GiveawayNotStarted(ServiceError):
    message = "This giveaway has not started yet."


class GiveawayEnded(ServiceError):
    message = "This giveaway has ended."


class GiveawayFull(ServiceError):
    message = "This giveaway is full."


class NoParticipants(ServiceError):
    message = "There are no participants in this giveaway."


class ProductNotFound(ServiceError):
    message = "Product not found."
    status_code = 404


class OutOfStock(ServiceError):
    message = "Not enough items in stock."


class DiscountCodeInvalid(ServiceError):
    message = "Discount code is invalid or has expired."


class OrderNotFound(ServiceError):
    message = "Order not found."
    status_code = 404


class SellRequestNotFound(ServiceError):
    message = "Sell request not found."
    status_code = 404


# Storage conflicts


class AlreadyJoined(ServiceError):
    message = "You have already joined this giveaway with this Telegram username."
    status_code = 409
