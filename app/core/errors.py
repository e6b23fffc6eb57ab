class BookingError(Exception):
    """Base class for errors surfaced to API callers as {ok: false, message}."""

    status_code = 500
    message = "Unable to process the request."

    def __init__(self, message: str = None):
        self.message = message or self.message
        super().__init__(self.message)


class AuthorizationError(BookingError):
    status_code = 401
    message = "Admin passcode required."


class StoreError(BookingError):
    status_code = 500
    message = "Unable to save bookings."


class MalformedRequestError(BookingError):
    status_code = 400
    message = "Invalid JSON body."


class MissingBookingIdError(BookingError):
    status_code = 400
    message = "Booking id is required."


class DuplicateBookingError(BookingError):
    status_code = 409
    message = "A booking with this id already exists."
