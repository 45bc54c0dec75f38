"""
Order Stats Exceptions
"""


class OrderStatsError(Exception):
    """Base class for errors raised by the stats core"""


class InvalidPeriod(OrderStatsError):
    """Period identifier is not one of the supported reporting windows"""

    def __init__(self, period):
        self.period = period
        super().__init__(f"Invalid period specified: {period!r}")


class Forbidden(OrderStatsError):
    """Caller is not allowed to use the endpoint"""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class UpstreamDataError(OrderStatsError):
    """The order or options store failed while serving statistics"""
